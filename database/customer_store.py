"""
Customer record store — the persistence seam used by the auth flows.

``CustomerStore`` is the abstract contract; ``SqlCustomerStore`` backs it
with the ``customers`` table.  Every ``update`` is conditional on the
record version the caller read, so two flows racing on the same customer
cannot silently overwrite each other.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from database.models import Customer

logger = logging.getLogger(__name__)

_UNSET: Any = object()


class CustomerStoreError(Exception):
    """Base class for store failures."""


class CustomerNotFound(CustomerStoreError):
    def __init__(self, customer_id: str) -> None:
        super().__init__(f"Customer {customer_id} not found")
        self.customer_id = customer_id


class DuplicateEmail(CustomerStoreError):
    def __init__(self, email: str) -> None:
        super().__init__("A customer with this email already exists")
        self.email = email


class ConcurrentUpdateError(CustomerStoreError):
    def __init__(self, customer_id: str, expected_version: int) -> None:
        super().__init__(
            f"Customer {customer_id} changed since version {expected_version}"
        )
        self.customer_id = customer_id
        self.expected_version = expected_version


class CustomerRecord(BaseModel):
    """Detached snapshot of a customer row."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    attributes: Dict[str, Any] = Field(default_factory=dict)
    version: int = 1


class CustomerStore(ABC):
    """Abstract customer persistence."""

    @abstractmethod
    async def create(
        self,
        *,
        email: str,
        first_name: Optional[str],
        last_name: Optional[str],
        attributes: Dict[str, Any],
        phone: Optional[str] = None,
    ) -> CustomerRecord:
        """Insert a customer.  Raises ``DuplicateEmail`` if the email is taken."""
        ...

    @abstractmethod
    async def retrieve(self, customer_id: str) -> CustomerRecord:
        """Raises ``CustomerNotFound``."""
        ...

    @abstractmethod
    async def list(self, *, email: Optional[str] = None) -> List[CustomerRecord]:
        """All customers, or those whose email matches exactly."""
        ...

    @abstractmethod
    async def find_by_attribute(self, key: str, value: str) -> Optional[CustomerRecord]:
        """First customer whose ``attributes[key]`` equals ``value``."""
        ...

    @abstractmethod
    async def update(
        self,
        customer_id: str,
        *,
        expected_version: int,
        attributes: Dict[str, Any] = _UNSET,
        phone: Optional[str] = _UNSET,
    ) -> CustomerRecord:
        """
        Replace the given fields if the stored version still equals
        ``expected_version``; bump the version.

        Raises ``CustomerNotFound`` or ``ConcurrentUpdateError``.
        """
        ...

    async def get_by_email(self, email: str) -> Optional[CustomerRecord]:
        matches = await self.list(email=email)
        return matches[0] if matches else None


class SqlCustomerStore(CustomerStore):
    """``CustomerStore`` over the SQLAlchemy ``customers`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create(
        self,
        *,
        email: str,
        first_name: Optional[str],
        last_name: Optional[str],
        attributes: Dict[str, Any],
        phone: Optional[str] = None,
    ) -> CustomerRecord:
        customer = Customer(
            email=email,
            first_name=first_name,
            last_name=last_name,
            phone=phone,
            attributes=dict(attributes),
            version=1,
        )
        async with self._session_factory() as session:
            session.add(customer)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                raise DuplicateEmail(email)
            record = CustomerRecord.model_validate(customer)
        logger.debug("Created customer %s", record.id)
        return record

    async def retrieve(self, customer_id: str) -> CustomerRecord:
        async with self._session_factory() as session:
            customer = await session.get(Customer, customer_id)
            if customer is None:
                raise CustomerNotFound(customer_id)
            return CustomerRecord.model_validate(customer)

    async def list(self, *, email: Optional[str] = None) -> List[CustomerRecord]:
        stmt = select(Customer).order_by(Customer.created_at)
        if email is not None:
            stmt = stmt.where(Customer.email == email)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [CustomerRecord.model_validate(c) for c in result.scalars()]

    async def find_by_attribute(self, key: str, value: str) -> Optional[CustomerRecord]:
        stmt = (
            select(Customer)
            .where(Customer.attributes[key].as_string() == value)
            .order_by(Customer.created_at)
            .limit(1)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            customer = result.scalar_one_or_none()
            return CustomerRecord.model_validate(customer) if customer else None

    async def update(
        self,
        customer_id: str,
        *,
        expected_version: int,
        attributes: Dict[str, Any] = _UNSET,
        phone: Optional[str] = _UNSET,
    ) -> CustomerRecord:
        values: Dict[str, Any] = {
            "version": Customer.version + 1,
            "updated_at": datetime.now(timezone.utc),
        }
        if attributes is not _UNSET:
            values["attributes"] = dict(attributes)
        if phone is not _UNSET:
            values["phone"] = phone

        stmt = (
            update(Customer)
            .where(Customer.id == customer_id, Customer.version == expected_version)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            if result.rowcount == 0:
                await session.rollback()
                if await session.get(Customer, customer_id) is None:
                    raise CustomerNotFound(customer_id)
                raise ConcurrentUpdateError(customer_id, expected_version)
            await session.commit()
            customer = await session.get(Customer, customer_id, populate_existing=True)
            return CustomerRecord.model_validate(customer)
