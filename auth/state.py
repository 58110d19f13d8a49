"""
Typed view over the customer attribute map.

All auth state is persisted inside ``Customer.attributes``.  ``AuthState``
owns a fixed set of keys in that map; everything else in it belongs to
other parts of the storefront and must survive every write untouched.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Address(BaseModel):
    """Address as stored on the customer record."""

    first_name: str = ""
    last_name: str = ""
    address_1: str = ""
    address_2: Optional[str] = None
    city: str = ""
    country_code: str = ""
    postal_code: str = ""
    province: str = ""
    phone: Optional[str] = None
    company: Optional[str] = None


class AddressInput(BaseModel):
    """Address as submitted by the profile-completion form."""

    model_config = ConfigDict(populate_by_name=True)

    company: Optional[str] = None
    country: str
    street: str
    house_number: Optional[str] = Field(None, alias="houseNumber")
    flat_number: Optional[str] = Field(None, alias="flatNumber")
    postal_code: str = Field(..., alias="postalCode")
    city: str
    state: str


def build_address(
    source: AddressInput,
    *,
    fallback_first_name: Optional[str],
    last_name: Optional[str],
    phone: Optional[str],
    address_1: Optional[str] = None,
) -> Address:
    # The storefront derives the addressee from the first word of the street.
    first_name = source.street.split(" ")[0] or fallback_first_name or ""
    return Address(
        first_name=first_name,
        last_name=last_name or "",
        address_1=source.street if address_1 is None else address_1,
        address_2=source.flat_number or None,
        city=source.city,
        country_code=source.country,
        postal_code=source.postal_code,
        province=source.state,
        phone=phone or None,
        company=source.company or None,
    )


class AuthState(BaseModel):
    """Auth-related slice of ``Customer.attributes``."""

    username: Optional[str] = None
    email_verified: bool = False
    verification_token: Optional[str] = None
    password_hash: Optional[str] = None
    password_reset_token: Optional[str] = None
    password_reset_expires: Optional[datetime] = None
    customer_number: Optional[str] = None
    watermark_id: Optional[str] = None
    billing_address: Optional[Address] = None
    shipping_address: Optional[Address] = None
    landline: Optional[str] = None
    registration_complete: bool = False

    @field_validator("password_reset_expires")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @classmethod
    def from_attributes(cls, attributes: Optional[Dict[str, Any]]) -> "AuthState":
        attributes = attributes or {}
        return cls.model_validate(
            {key: attributes[key] for key in AUTH_KEYS if key in attributes}
        )

    def merge_into(self, attributes: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Return a new attribute map carrying this state.

        Auth keys whose value is ``None`` are dropped from the map; keys not
        owned by ``AuthState`` are copied through unchanged.
        """
        merged = {k: v for k, v in (attributes or {}).items() if k not in AUTH_KEYS}
        merged.update(self.model_dump(mode="json", exclude_none=True))
        return merged

    @property
    def is_verified(self) -> bool:
        return self.email_verified is True

    def reset_pending(self, now: datetime) -> bool:
        # Tokens written without an expiry stay usable until consumed.
        if self.password_reset_token is None:
            return False
        return self.password_reset_expires is None or now < self.password_reset_expires


AUTH_KEYS = frozenset(AuthState.model_fields)
