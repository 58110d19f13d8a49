"""Shared fixtures: in-memory customer store, fake clock, flow engine."""

from __future__ import annotations

import copy
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock

import pytest

from auth.flows import AuthFlowEngine
from auth.tokens import SessionTokenCodec
from database.customer_store import (
    _UNSET,
    ConcurrentUpdateError,
    CustomerNotFound,
    CustomerRecord,
    CustomerStore,
    DuplicateEmail,
)
from notifications.mailer import DeliveryResult

SESSION_SECRET = "test-session-secret"


class InMemoryCustomerStore(CustomerStore):
    """Dict-backed ``CustomerStore`` with the same version semantics as SQL."""

    def __init__(self) -> None:
        self.records: Dict[str, CustomerRecord] = {}
        self.update_calls: List[str] = []

    async def create(self, *, email, first_name, last_name, attributes, phone=None) -> CustomerRecord:
        if any(r.email == email for r in self.records.values()):
            raise DuplicateEmail(email)
        record = CustomerRecord(
            id=f"cus_{uuid.uuid4().hex}",
            email=email,
            first_name=first_name,
            last_name=last_name,
            phone=phone,
            attributes=copy.deepcopy(attributes),
            version=1,
        )
        self.records[record.id] = record
        return record.model_copy(deep=True)

    async def retrieve(self, customer_id: str) -> CustomerRecord:
        if customer_id not in self.records:
            raise CustomerNotFound(customer_id)
        return self.records[customer_id].model_copy(deep=True)

    async def list(self, *, email: Optional[str] = None) -> List[CustomerRecord]:
        return [
            r.model_copy(deep=True)
            for r in self.records.values()
            if email is None or r.email == email
        ]

    async def find_by_attribute(self, key: str, value: str) -> Optional[CustomerRecord]:
        for record in self.records.values():
            if record.attributes.get(key) == value:
                return record.model_copy(deep=True)
        return None

    async def update(self, customer_id, *, expected_version, attributes=_UNSET, phone=_UNSET) -> CustomerRecord:
        self.update_calls.append(customer_id)
        if customer_id not in self.records:
            raise CustomerNotFound(customer_id)
        current = self.records[customer_id]
        if current.version != expected_version:
            raise ConcurrentUpdateError(customer_id, expected_version)
        changes: Dict[str, Any] = {"version": current.version + 1}
        if attributes is not _UNSET:
            changes["attributes"] = copy.deepcopy(attributes)
        if phone is not _UNSET:
            changes["phone"] = phone
        self.records[customer_id] = current.model_copy(update=changes)
        return self.records[customer_id].model_copy(deep=True)


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def _delivered(email: str, token: str) -> DeliveryResult:
    return DeliveryResult(to=email, subject="test", success=True)


@pytest.fixture
def store() -> InMemoryCustomerStore:
    return InMemoryCustomerStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 14, 9, 26, 53, tzinfo=timezone.utc))


@pytest.fixture
def session_codec() -> SessionTokenCodec:
    return SessionTokenCodec(SESSION_SECRET, ttl_seconds=7 * 24 * 3600)


@pytest.fixture
def notifier() -> AsyncMock:
    mock = AsyncMock()
    mock.send_verification_email = AsyncMock(side_effect=_delivered)
    mock.send_password_reset_email = AsyncMock(side_effect=_delivered)
    return mock


@pytest.fixture
def engine(store, session_codec, notifier, clock) -> AuthFlowEngine:
    return AuthFlowEngine(
        store,
        session_codec,
        notifier,
        reset_token_ttl_seconds=3600,
        clock=clock,
    )
