"""Pytest configuration and shared fixtures for all tests."""

import os
import sys
from pathlib import Path

from cryptography.fernet import Fernet

# Minimal environment so config.ENV() validates without a .env file
os.environ.setdefault("POSTGRES_HOST", "localhost")
os.environ.setdefault("POSTGRES_PORT", "5432")
os.environ.setdefault("POSTGRES_NAME", "test")
os.environ.setdefault("POSTGRES_USER", "test")
os.environ.setdefault("POSTGRES_PASS", "test")
os.environ.setdefault("redis_url", "redis://localhost:6379/0")
os.environ.setdefault("CELERY_BROKER_URL", "redis://localhost:6379/1")
os.environ.setdefault("CELERY_RESULT_BACKEND", "redis://localhost:6379/2")
os.environ.setdefault("service_api_token", "test-service-key")
os.environ.setdefault("XENDIT_API_KEY", "xnd_development_test")
os.environ.setdefault("XENDIT_CALLBACK_TOKEN", "test-callback-token")
os.environ.setdefault("ENCRYPTION_KEY", Fernet.generate_key().decode())

# Add the project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import asyncio
import uuid
from dataclasses import replace

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError, LockError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from api.models import Base, Booth, RevenueShare, Transaction, TransactionStatus
from services.crypto import AccountCipher
from services.payouts import PayoutProcessor, PayoutResult
from services.settlement import Caller, RoleLockGuard

ORG = "org_1"
OTHER_ORG = "org_2"


class FakeLock:
    """Stand-in for redis.asyncio.lock.Lock backed by a shared asyncio.Lock."""

    def __init__(self, redis: "FakeRedis", name: str, timeout, blocking_timeout):
        self.redis = redis
        self.name = name
        self.blocking_timeout = blocking_timeout
        self._owned = False

    async def acquire(self) -> bool:
        if self.redis.unavailable:
            raise RedisConnectionError("Error 111 connecting to localhost:6379. Connection refused.")
        lock = self.redis.locks.setdefault(self.name, asyncio.Lock())
        try:
            await asyncio.wait_for(lock.acquire(), self.blocking_timeout)
        except asyncio.TimeoutError:
            return False
        self._owned = True
        self.redis.acquired.append(self.name)
        if self.name in self.redis.expire_on_acquire:
            self._owned = False
        return True

    async def owned(self) -> bool:
        return self._owned

    async def release(self) -> None:
        lock = self.redis.locks[self.name]
        lock.release()
        if not self._owned:
            raise LockError("Cannot release a lock that's no longer owned")
        self._owned = False


class FakeRedis:
    def __init__(self):
        self.locks: dict[str, asyncio.Lock] = {}
        self.acquired: list[str] = []
        # lock names whose lease is lost right after acquiring
        self.expire_on_acquire: set[str] = set()
        self.unavailable = False

    def lock(self, name, timeout=None, blocking_timeout=None):
        return FakeLock(self, name, timeout, blocking_timeout)


class FakeProcessor(PayoutProcessor):
    """
    Scriptable payout processor. `script` maps a withdrawal reference id (any attempt) to a
    status string, an exception to raise, or "hang" to never answer.
    """

    def __init__(self, default_status: str = "SUCCEEDED"):
        self.default_status = default_status
        self.script: dict[str, object] = {}
        self.calls: list[dict] = []
        self.payouts: dict[str, PayoutResult] = {}

    async def submit_payout(self, idempotency_key, amount, bank_code, account_number, account_holder_name, reference_id=None):
        self.calls.append({
            "idempotency_key": idempotency_key,
            "amount": amount,
            "bank_code": bank_code,
            "account_number": account_number,
            "account_holder_name": account_holder_name,
            "reference_id": reference_id,
        })
        action = self.script.get(reference_id.rpartition("-")[0], self.default_status)
        if action == "hang":
            await asyncio.sleep(10)
        if isinstance(action, Exception):
            raise action

        external_id = f"disb-{idempotency_key}"
        # Same key answers with the payout created first
        if external_id not in self.payouts:
            self.payouts[external_id] = PayoutResult(external_id=external_id, status=action, reference_id=reference_id)
        return self.payouts[external_id]

    async def get_payout(self, external_id):
        return self.payouts.get(external_id)

    def settle(self, external_id, status, failure_code=None):
        """Processor-side status change, seen by the next get_payout."""
        self.payouts[external_id] = replace(self.payouts[external_id], status=status, failure_code=failure_code)


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'settlement.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def guard(fake_redis):
    return RoleLockGuard(fake_redis, lock_timeout=5, wait_timeout=0.5)


@pytest.fixture
def cipher():
    return AccountCipher(Fernet.generate_key().decode())


@pytest.fixture
def processor():
    return FakeProcessor()


@pytest.fixture
def admin():
    return Caller(organization_id=ORG, user_id="admin_1", is_admin=True)


@pytest.fixture
def member():
    return Caller(organization_id=ORG, user_id="member_1")


@pytest.fixture
def seed(session_factory):
    """Writes booths, sales and revenue shares the way the payment side would."""

    class Seeder:
        async def booth(self, organization_id=ORG, assigned_to=None, name="Booth") -> Booth:
            async with session_factory() as s:
                booth = Booth(id=uuid.uuid4(), organization_id=organization_id, name=name, assigned_to=assigned_to, price=35000)
                s.add(booth)
                await s.commit()
                return booth

        async def sale(self, booth: Booth, amount: int, status=TransactionStatus.PAID) -> Transaction:
            async with session_factory() as s:
                tx = Transaction(id=f"TX-{uuid.uuid4().hex[:12]}", booth_id=booth.id, amount=amount, status=status)
                s.add(tx)
                await s.commit()
                return tx

        async def share(self, user_id: str, percent: int, organization_id=ORG) -> None:
            async with session_factory() as s:
                s.add(RevenueShare(organization_id=organization_id, user_id=user_id, percent_to_member=percent))
                await s.commit()

    return Seeder()
