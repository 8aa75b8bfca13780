"""A request waiting on the store lock must not stall the event loop."""

from __future__ import annotations

import threading
import time

from fastapi.testclient import TestClient

from app.main import app
from app.repos.unit_of_work import unit_of_work
from tests.conftest import auth, token_for


def test_waiting_mutation_leaves_loop_free(student, course) -> None:
    holding = threading.Event()
    release = threading.Event()

    def hold_store() -> None:
        with unit_of_work.transaction():
            holding.set()
            release.wait(timeout=10)

    # One client, one event loop shared by every request below
    with TestClient(app) as client:
        holder = threading.Thread(target=hold_store)
        holder.start()
        assert holding.wait(timeout=5)

        results: dict[str, int] = {}

        def enroll() -> None:
            resp = client.post(f"/v1/enrollments/{course.id}", headers=auth(token_for(student)))
            results["enroll"] = resp.status_code

        def ready() -> None:
            results["ready"] = client.get("/ready").status_code

        enroller = threading.Thread(target=enroll)
        enroller.start()
        time.sleep(0.2)  # let the enroll request reach the lock
        prober = threading.Thread(target=ready)
        prober.start()
        prober.join(timeout=5)
        served_while_locked = not prober.is_alive()

        release.set()
        holder.join(timeout=5)
        enroller.join(timeout=5)
        prober.join(timeout=5)

    assert served_while_locked
    assert results == {"enroll": 201, "ready": 200}
