"""
Tests for per-patient storage and its locking.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

from emergency.services.repository import InMemoryPatientRepository


class TestInMemoryPatientRepository:
    """Keyed list storage."""

    def test_unknown_patient_is_empty(self) -> None:
        repo: InMemoryPatientRepository[int] = InMemoryPatientRepository()
        assert repo.list("nobody") == []
        assert repo.patient_ids() == []

    def test_reading_unknown_patients_keeps_no_state(self) -> None:
        repo: InMemoryPatientRepository[int] = InMemoryPatientRepository()

        for i in range(1000):
            assert repo.list(f"unknown-{i}") == []

        assert repo._locks == {}
        assert repo._items == {}

    def test_update_leaves_no_empty_list(self) -> None:
        repo: InMemoryPatientRepository[int] = InMemoryPatientRepository()
        repo.append("p1", [1])

        assert repo.update("ghost", lambda items: len(items)) == 0
        repo.update("p1", lambda items: items.clear())

        assert repo._items == {}
        assert repo.patient_ids() == []

    def test_list_returns_a_copy(self) -> None:
        repo: InMemoryPatientRepository[int] = InMemoryPatientRepository()
        repo.append("p1", [1, 2])

        snapshot = repo.list("p1")
        snapshot.append(3)

        assert repo.list("p1") == [1, 2]

    def test_patients_are_isolated(self) -> None:
        repo: InMemoryPatientRepository[str] = InMemoryPatientRepository()
        repo.append("p1", ["a"])
        repo.append("p2", ["b", "c"])

        assert repo.list("p1") == ["a"]
        assert repo.list("p2") == ["b", "c"]
        assert sorted(repo.patient_ids()) == ["p1", "p2"]

    def test_update_runs_on_live_list(self) -> None:
        repo: InMemoryPatientRepository[int] = InMemoryPatientRepository()
        repo.append("p1", [1, 2, 3])

        removed = repo.update("p1", lambda items: items.pop(0))

        assert removed == 1
        assert repo.list("p1") == [2, 3]

    def test_locks_are_per_patient(self) -> None:
        repo: InMemoryPatientRepository[int] = InMemoryPatientRepository()

        assert repo.lock_for("p1") is repo.lock_for("p1")
        assert repo.lock_for("p1") is not repo.lock_for("p2")

    def test_other_patient_not_blocked(self) -> None:
        repo: InMemoryPatientRepository[int] = InMemoryPatientRepository()
        done = threading.Event()

        with repo.lock_for("p1"):
            worker = threading.Thread(target=lambda: (repo.append("p2", [1]), done.set()))
            worker.start()
            assert done.wait(timeout=2.0)
            worker.join()

        assert repo.list("p2") == [1]

    def test_concurrent_appends_are_not_lost(self) -> None:
        repo: InMemoryPatientRepository[int] = InMemoryPatientRepository()

        def append_many(offset: int) -> None:
            for i in range(200):
                repo.append("p1", [offset + i])

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(append_many, range(0, 1600, 200)))

        items = repo.list("p1")
        assert len(items) == 1600
        assert sorted(items) == list(range(1600))

    def test_concurrent_read_modify_write(self) -> None:
        repo: InMemoryPatientRepository[int] = InMemoryPatientRepository()
        repo.append("p1", [0])

        def increment(items: list[int]) -> None:
            items[0] += 1

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda _: repo.update("p1", increment), range(500)))

        assert repo.list("p1") == [500]
