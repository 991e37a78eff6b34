from __future__ import annotations

from datetime import datetime, timezone

import pytest

from appointme.errors import DuplicateEmailError, NotFoundError
from appointme.models import UserRecord, UserStatus, UserType
from appointme.store import UserStore

NOW = datetime(2026, 1, 5, 9, 30, tzinfo=timezone.utc)


def _record(user_id: int, email: str, **overrides) -> UserRecord:
    values = dict(
        id=user_id,
        first_name="Test",
        last_name=f"User{user_id}",
        email=email,
        phone="555",
        user_type=UserType.CLIENT,
        created_at=NOW,
        last_active=NOW,
    )
    values.update(overrides)
    return UserRecord(**values)


@pytest.fixture()
def store() -> UserStore:
    return UserStore()


def test_allocated_ids_only_move_forward(store: UserStore) -> None:
    first = store.allocate_id()
    store.add(_record(first, "one@example.com"))
    store.remove(first)
    assert store.allocate_id() == first + 1


def test_add_rejects_exact_duplicate_email(store: UserStore) -> None:
    store.add(_record(1, "dup@example.com"))
    with pytest.raises(DuplicateEmailError):
        store.add(_record(2, "dup@example.com"))
    store.add(_record(3, "DUP@example.com"))
    assert len(store) == 2


def test_replace_keeps_position_and_checks_other_owners(store: UserStore) -> None:
    store.add(_record(1, "a@example.com"))
    store.add(_record(2, "b@example.com"))

    store.replace(_record(1, "a@example.com", status=UserStatus.INACTIVE))
    assert [record.id for record in store.snapshot()] == [1, 2]
    assert store.get(1).status is UserStatus.INACTIVE

    with pytest.raises(DuplicateEmailError):
        store.replace(_record(1, "b@example.com"))
    with pytest.raises(NotFoundError):
        store.replace(_record(9, "z@example.com"))


def test_remove_unknown_id_raises(store: UserStore) -> None:
    with pytest.raises(NotFoundError):
        store.remove(42)


def test_search_is_case_insensitive_and_blank_returns_everything(store: UserStore) -> None:
    store.add(_record(1, "sarah.smith@clinic.com", first_name="Sarah", last_name="Smith", user_type=UserType.PROVIDER))
    store.add(_record(2, "john@example.com", first_name="John", last_name="Doe"))

    assert [r.id for r in store.search("SMITH")] == [1]
    assert [r.id for r in store.search("  provid ")] == [1]
    assert [r.id for r in store.search("example")] == [2]
    assert store.search("") == store.snapshot()
    assert store.search(None) == store.snapshot()
    assert store.search("nobody") == []


def test_snapshot_is_a_copy(store: UserStore) -> None:
    store.add(_record(1, "a@example.com"))
    snapshot = store.snapshot()
    snapshot.clear()
    assert len(store) == 1


def test_reset_never_moves_the_counter_backwards(store: UserStore) -> None:
    for _ in range(5):
        store.allocate_id()
    store.reset([_record(2, "a@example.com"), _record(3, "b@example.com")])
    assert store.next_id == 6

    fresh = UserStore()
    fresh.reset([_record(2, "a@example.com"), _record(7, "b@example.com")])
    assert fresh.next_id == 8
    assert [record.id for record in fresh.by_type("client")] == [2, 7]
