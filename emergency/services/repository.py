"""
Per-patient keyed storage.

Event history, follow-ups, care-plan adjustments, outcomes and contacts are
all lists keyed by patient id. Appends and read-modify-write operations for
one patient are serialized by that patient's lock; different patients never
share a lock, so they never contend.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from typing import Generic, Protocol, TypeVar

ItemT = TypeVar("ItemT")
ReturnT = TypeVar("ReturnT")


class PatientRepository(Protocol[ItemT]):
    """Storage contract for patient-scoped lists."""

    def append(self, patient_id: str, items: Iterable[ItemT]) -> None: ...

    def list(self, patient_id: str) -> list[ItemT]: ...

    def update(self, patient_id: str, mutator: Callable[[list[ItemT]], ReturnT]) -> ReturnT: ...

    def patient_ids(self) -> list[str]: ...


class InMemoryPatientRepository(Generic[ItemT]):
    """Dict-of-lists store with one lock per patient id."""

    def __init__(self) -> None:
        self._items: dict[str, list[ItemT]] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def lock_for(self, patient_id: str) -> threading.Lock:
        """Return the lock serializing writes for one patient, creating it on first use."""
        with self._locks_guard:
            lock = self._locks.get(patient_id)
            if lock is None:
                lock = self._locks[patient_id] = threading.Lock()
            return lock

    def append(self, patient_id: str, items: Iterable[ItemT]) -> None:
        batch = list(items)
        if not batch:
            return
        with self.lock_for(patient_id):
            self._items.setdefault(patient_id, []).extend(batch)

    def list(self, patient_id: str) -> list[ItemT]:
        """Snapshot copy in insertion order; unknown patients yield an empty list."""
        with self._locks_guard:
            lock = self._locks.get(patient_id)
        # Nothing was ever written for this id
        if lock is None:
            return []
        with lock:
            return list(self._items.get(patient_id, ()))

    def update(self, patient_id: str, mutator: Callable[[list[ItemT]], ReturnT]) -> ReturnT:
        """
        Run ``mutator`` on the live list while holding the patient's lock.

        A list left empty by the mutator is not kept.
        """
        with self.lock_for(patient_id):
            items = self._items.get(patient_id, [])
            result = mutator(items)
            if items:
                self._items[patient_id] = items
            else:
                self._items.pop(patient_id, None)
            return result

    def patient_ids(self) -> list[str]:
        with self._locks_guard:
            return [pid for pid, items in list(self._items.items()) if items]
