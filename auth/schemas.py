"""
Request / response schemas for the customer auth routes.

Request models accept both the snake_case names and the camelCase names the
storefront forms post.  Required-field checks happen in the flow engine so
that a missing field is a 400 with a readable message.
"""

from __future__ import annotations

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from auth.state import AddressInput


# ── Requests ───────────────────────────────────────────────────────────


class RegisterRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    first_name: Optional[str] = Field(
        None, validation_alias=AliasChoices("first_name", "firstName")
    )
    last_name: Optional[str] = Field(
        None, validation_alias=AliasChoices("last_name", "lastName")
    )
    username: Optional[str] = None


class LoginRequest(BaseModel):
    identifier: Optional[str] = Field(
        None, validation_alias=AliasChoices("identifier", "email")
    )
    password: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    email: Optional[str] = None


class ResetPasswordRequest(BaseModel):
    token: Optional[str] = None
    password: Optional[str] = None


class CompleteRegistrationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    customer_id: Optional[str] = None
    billing: Optional[AddressInput] = None
    shipping: Optional[AddressInput] = None
    shipping_same_as_billing: bool = Field(False, alias="shippingSameAsBilling")
    mobile_phone: Optional[str] = Field(None, alias="mobilePhone")
    landline: Optional[str] = None


# ── Results ────────────────────────────────────────────────────────────


class PublicProfile(BaseModel):
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class LoginResult(BaseModel):
    customer: PublicProfile
    token: str


class CustomerSummary(BaseModel):
    id: str
    email: str


class MessageResponse(BaseModel):
    message: str


class RegisterResponse(MessageResponse):
    customer_id: str


class VerifyEmailResponse(MessageResponse):
    customer_id: str


class CompleteRegistrationResponse(MessageResponse):
    customer: CustomerSummary
