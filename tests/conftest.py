from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, List, Tuple

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from appointme.events import ServiceEvent  # noqa: E402
from appointme.service import UserService  # noqa: E402
from appointme.storage import MemoryStorage  # noqa: E402


class FixedClock:
    """Deterministic replacement for ``datetime.now`` in service tests."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now = self.now + timedelta(**delta)


class EventRecorder:
    def __init__(self) -> None:
        self.events: List[Tuple[ServiceEvent, Any]] = []

    def __call__(self, event: ServiceEvent, payload: Any) -> None:
        self.events.append((event, payload))

    @property
    def names(self) -> List[str]:
        return [event.value for event, _ in self.events]

    def payloads(self, event: ServiceEvent) -> List[Any]:
        return [payload for name, payload in self.events if name is event]

    def clear(self) -> None:
        self.events.clear()


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock(datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc))


@pytest.fixture()
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture()
def service(storage: MemoryStorage, clock: FixedClock) -> UserService:
    return UserService(storage, clock=clock)


@pytest.fixture()
def recorder(service: UserService) -> EventRecorder:
    recorder = EventRecorder()
    service.subscribe(recorder)
    return recorder


def make_user(**overrides: str) -> dict:
    data = {
        "firstName": "Ada",
        "lastName": "Lovelace",
        "email": "ada@example.com",
        "phone": "+44 20 7946 0000",
        "userType": "client",
    }
    data.update(overrides)
    return data
