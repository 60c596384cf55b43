# tests/conftest.py
import asyncio
import os
import tempfile
from datetime import datetime

# Settings are cached on first access, so the test environment has to be in
# place before anything from attendance_hub is imported.
_TMP_DIR = tempfile.mkdtemp(prefix="attendance_hub_tests_")
os.environ["APP_ENV"] = "test"
os.environ["DB_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ.pop("API_BEARER_TOKENS", None)
os.environ.pop("API_TOKEN", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from attendance_hub.api.routes import meetings as meetings_routes  # noqa: E402
from attendance_hub.db.session import AsyncSessionLocal, reset_db  # noqa: E402
from attendance_hub.main import create_app  # noqa: E402
from attendance_hub.models.member import Member  # noqa: E402
from tests.helpers import FIXED_NOW, MEMBER_ID, OTHER_MEMBER_ID  # noqa: E402


@pytest.fixture(scope="session")
def client() -> TestClient:
    """
    Shared TestClient fixture for all API tests.
    """
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client


async def _seed_members() -> None:
    async with AsyncSessionLocal() as session:
        session.add_all(
            [
                Member(id=MEMBER_ID, first_name="Grace", last_name="Hopper", email="grace@example.org"),
                Member(id=OTHER_MEMBER_ID, first_name="Ada", last_name="Lovelace"),
            ]
        )
        await session.commit()


@pytest.fixture
def clean_db(client):
    """
    Empty schema plus two known members, for tests that go through the API.
    """
    asyncio.run(reset_db())
    asyncio.run(_seed_members())
    yield


class FrozenClock:
    """
    Mutable request clock injected in place of the routes' `get_now`.
    """

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def frozen_clock(client):
    clock = FrozenClock(FIXED_NOW)
    client.app.dependency_overrides[meetings_routes.get_now] = clock
    yield clock
    client.app.dependency_overrides.pop(meetings_routes.get_now, None)
