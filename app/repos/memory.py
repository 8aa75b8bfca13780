"""Shared pieces of the in-memory repositories.

Every in-memory repo keeps its state in plain dicts of frozen dataclasses,
so a shallow copy of those dicts is a complete, consistent snapshot.  The
unit of work takes one snapshot per repo when a transaction opens and
restores it if the transaction fails.
"""

from __future__ import annotations

import copy


class UniqueViolation(ValueError):
    """A write would break a uniqueness constraint held by the store."""


class SnapshotMixin:
    # Names of the attributes that hold this repo's state.
    _state_attrs: tuple[str, ...] = ()

    def snapshot(self) -> dict[str, object]:
        return {name: copy.copy(getattr(self, name)) for name in self._state_attrs}

    def restore(self, state: dict[str, object]) -> None:
        for name, value in state.items():
            setattr(self, name, value)

    def clear(self) -> None:
        for name in self._state_attrs:
            getattr(self, name).clear()
