import os
import pathlib
import sys
import tempfile
from datetime import datetime, timedelta, timezone

os.environ.setdefault("REQUEST_HUB_STORAGE_BACKEND", "memory")
os.environ.setdefault("REQUEST_HUB_DATA_DIR", tempfile.mkdtemp(prefix="request-hub-tests-"))
os.environ.setdefault("REQUEST_HUB_SECRET_KEY", "test-secret")

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from request_hub.core.rbac import Role
from request_hub.models.auth import CurrentUser
from request_hub.models.request import RequestRecord, RequestStatus, RequestType
from request_hub.repositories.data_store import InMemoryBackend, RequestStore
from request_hub.services.container import notifier, store
from request_hub.services.lifecycle_service import RequestLifecycleEngine
from request_hub.services.notification_service import Notifier

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def make_request(**overrides) -> RequestRecord:
    fields = {
        "id": "req-1",
        "type": RequestType.REQUEST,
        "creator": "alice",
        "department": "Finance",
        "title": "Quarterly report",
        "status": RequestStatus.PENDING,
        "accepted_by": set(),
    }
    fields.update(overrides)
    return RequestRecord(**fields)


def make_project(**overrides) -> RequestRecord:
    fields = {
        "id": "proj-1",
        "type": RequestType.PROJECT,
        "creator": "alice",
        "department": "Engineering",
        "title": "Office move",
        "status": RequestStatus.PENDING,
        "accepted_by": set(),
        "users_needed": 3,
        "users_accepted": 0,
        "participants_completed": set(),
        "archived": False,
    }
    fields.update(overrides)
    return RequestRecord(**fields)


def member(user_id: str, department: str = "Engineering") -> CurrentUser:
    return CurrentUser(user_id=user_id, role=Role.MEMBER, department=department)


def admin(user_id: str, department: str = "Engineering") -> CurrentUser:
    return CurrentUser(user_id=user_id, role=Role.ADMIN, department=department)


@pytest.fixture(autouse=True)
def reset_store():
    store.reset()
    notifier.clear()
    yield


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def engine(clock: FakeClock) -> RequestLifecycleEngine:
    isolated = RequestStore(backend=InMemoryBackend(), key="jd-requests")
    return RequestLifecycleEngine(store=isolated, notifier=Notifier(feed_size=20), clock=clock)
