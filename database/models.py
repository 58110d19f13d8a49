"""
SQLAlchemy ORM model for storefront customers.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase


def _new_customer_id() -> str:
    return f"cus_{uuid.uuid4().hex}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class Customer(Base):
    __tablename__ = "customers"

    id = Column(String(64), primary_key=True, default=_new_customer_id)
    email = Column(String(255), unique=True, nullable=False, index=True)
    first_name = Column(String(128))
    last_name = Column(String(128))
    phone = Column(String(64), nullable=True)
    attributes = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=dict)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
