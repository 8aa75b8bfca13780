from __future__ import annotations

from typing import Protocol
from uuid import UUID

from app.models.transaction import Transaction
from app.repos.memory import SnapshotMixin, UniqueViolation


class TransactionRepo(Protocol):
    def get(self, transaction_id: UUID) -> Transaction | None: ...
    def add(self, txn: Transaction) -> None: ...
    def save(self, txn: Transaction) -> None: ...
    def find_pending(self, user_id: UUID, course_id: UUID) -> Transaction | None: ...
    def list_by_user(self, user_id: UUID) -> list[Transaction]: ...
    def list_by_course(self, course_id: UUID) -> list[Transaction]: ...
    def list_all(self) -> list[Transaction]: ...


class InMemoryTransactionRepo(SnapshotMixin):
    _state_attrs = ("_by_id", "_references")

    def __init__(self) -> None:
        self._by_id: dict[UUID, Transaction] = {}
        self._references: set[str] = set()

    def get(self, transaction_id: UUID) -> Transaction | None:
        return self._by_id.get(transaction_id)

    def add(self, txn: Transaction) -> None:
        if txn.reference in self._references:
            raise UniqueViolation("transaction reference already exists")
        self._by_id[txn.id] = txn
        self._references.add(txn.reference)

    def save(self, txn: Transaction) -> None:
        if txn.id not in self._by_id:
            raise KeyError("transaction not found")
        self._by_id[txn.id] = txn

    def find_pending(self, user_id: UUID, course_id: UUID) -> Transaction | None:
        for t in self._by_id.values():
            if t.user_id == user_id and t.course_id == course_id and t.status == "pending":
                return t
        return None

    def list_by_user(self, user_id: UUID) -> list[Transaction]:
        return [t for t in self.list_all() if t.user_id == user_id]

    def list_by_course(self, course_id: UUID) -> list[Transaction]:
        return [t for t in self.list_all() if t.course_id == course_id]

    def list_all(self) -> list[Transaction]:
        return sorted(self._by_id.values(), key=lambda t: t.created_at, reverse=True)
