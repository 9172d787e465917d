import httpx
import pytest

from api.app import FastAPIManager
from api.database import get_session
from api.deps import get_cipher, get_payout_processor, get_role_guard

SERVICE_KEY = "test-service-key"


def headers(caller, **extra):
    values = {
        "X-API-Key": SERVICE_KEY,
        "X-Organization-Id": caller.organization_id,
        "X-User-Id": caller.user_id,
        "X-Org-Role": "org:admin" if caller.is_admin else "org:member",
    }
    values.update(extra)
    return values


@pytest.fixture
def app(session_factory, guard, cipher, processor):
    app = FastAPIManager().get_app()

    async def override_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_role_guard] = lambda: guard
    app.dependency_overrides[get_cipher] = lambda: cipher
    app.dependency_overrides[get_payout_processor] = lambda: processor
    return app


@pytest.fixture
async def client(app):
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
def as_member(member):
    return headers(member)


@pytest.fixture
def as_admin(admin):
    return headers(admin)
