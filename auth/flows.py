"""
Customer account flows — register, verify email, login, forgot / reset
password, complete registration.

All auth state lives in the customer's attribute map (see ``auth.state``).
Each flow reads the record, computes the new ``AuthState`` and writes
it back with a single conditional ``update`` keyed on the version it read.

Password hashing is CPU-bound and runs in a worker thread.  Verification
and reset emails are fire-and-forget tasks: their outcome is logged and
never changes what the caller sees.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Optional, Protocol, Set

from auth.errors import (
    AuthError,
    BadRequest,
    Conflict,
    Expired,
    Forbidden,
    Internal,
    NotFound,
    Unauthorized,
)
from auth.identifiers import generate_customer_number, generate_watermark_id
from auth.password import hash_password, verify_password
from auth.schemas import CustomerSummary, LoginResult, PublicProfile
from auth.state import AddressInput, AuthState, build_address
from auth.tokens import (
    SessionTokenCodec,
    issue_reset_token,
    issue_verification_token,
)
from database.customer_store import (
    ConcurrentUpdateError,
    CustomerNotFound,
    CustomerRecord,
    CustomerStore,
    CustomerStoreError,
    DuplicateEmail,
)

logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = (
    "If an account exists with this email, a password reset link has been sent"
)
_INVALID_VERIFICATION_TOKEN = "Invalid or expired verification token"
_INVALID_RESET_TOKEN = "Invalid or expired reset token"


class Notifier(Protocol):
    async def send_verification_email(self, email: str, token: str) -> Any: ...

    async def send_password_reset_email(self, email: str, token: str) -> Any: ...


def _flow(failure_message: str) -> Callable:
    """Map anything that is not an ``AuthError`` onto ``Internal``."""

    def decorator(fn: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        @functools.wraps(fn)
        async def wrapper(self: "AuthFlowEngine", *args: Any, **kwargs: Any) -> Any:
            try:
                return await fn(self, *args, **kwargs)
            except AuthError:
                raise
            except ConcurrentUpdateError as exc:
                logger.warning("%s: %s", fn.__name__, exc)
                raise Conflict("Customer record was modified concurrently, please retry") from exc
            except Exception as exc:
                logger.exception("%s failed", fn.__name__)
                raise Internal(failure_message) from exc

        return wrapper

    return decorator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _profile(customer: CustomerRecord) -> PublicProfile:
    return PublicProfile(
        id=customer.id,
        email=customer.email,
        first_name=customer.first_name,
        last_name=customer.last_name,
    )


class AuthFlowEngine:
    """Orchestrates the customer account flows against a ``CustomerStore``."""

    def __init__(
        self,
        store: CustomerStore,
        session_codec: SessionTokenCodec,
        notifier: Notifier,
        *,
        reset_token_ttl_seconds: int = 3600,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._sessions = session_codec
        self._notifier = notifier
        self._reset_ttl = timedelta(seconds=reset_token_ttl_seconds)
        self._clock = clock
        self._pending: Set[asyncio.Task] = set()

    # ── Notifications ──────────────────────────────────────────────────

    def _notify(self, label: str, coro: Awaitable[Any]) -> None:
        task = asyncio.ensure_future(coro)
        self._pending.add(task)
        task.add_done_callback(functools.partial(self._on_notified, label))

    def _on_notified(self, label: str, task: asyncio.Future) -> None:
        self._pending.discard(task)
        if task.cancelled():
            logger.warning("%s email cancelled", label)
            return
        exc = task.exception()
        if exc is not None:
            logger.error("%s email failed", label, exc_info=exc)
            return
        result = task.result()
        if getattr(result, "success", True) is False:
            logger.warning("%s email to %s not delivered: %s", label, result.to, result.error)

    async def wait_for_notifications(self) -> None:
        """Block until every scheduled email has been attempted."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _discard_reset(self, customer: CustomerRecord, state: AuthState) -> None:
        """Clear a stale reset window; losing a race to another writer is fine."""
        state.password_reset_token = None
        state.password_reset_expires = None
        try:
            await self._store.update(
                customer.id,
                expected_version=customer.version,
                attributes=state.merge_into(customer.attributes),
            )
        except ConcurrentUpdateError:
            logger.info("Stale reset token for %s already superseded", customer.id)
        except CustomerStoreError as exc:
            logger.warning("Could not clear stale reset token for %s: %s", customer.id, exc)

    # ── Flows ──────────────────────────────────────────────────────────

    @_flow("Registration failed")
    async def register(
        self,
        email: Optional[str],
        password: Optional[str],
        first_name: Optional[str],
        last_name: Optional[str],
        username: Optional[str] = None,
    ) -> str:
        """Create an unverified customer and send the verification link."""
        if not (email and password and first_name and last_name):
            raise BadRequest("Email, password, first name, and last name are required")

        if await self._store.get_by_email(email) is not None:
            raise Conflict()

        verification_token = issue_verification_token(email)
        state = AuthState(
            username=username or None,
            email_verified=False,
            verification_token=verification_token,
            password_hash=await asyncio.to_thread(hash_password, password),
            customer_number=generate_customer_number(self._clock()),
            watermark_id=generate_watermark_id(),
        )
        try:
            customer = await self._store.create(
                email=email,
                first_name=first_name,
                last_name=last_name,
                attributes=state.merge_into({}),
            )
        except DuplicateEmail as exc:
            raise Conflict() from exc

        logger.info("Registered customer %s (%s)", customer.id, state.customer_number)
        self._notify(
            "Verification",
            self._notifier.send_verification_email(email, verification_token),
        )
        return customer.id

    @_flow("Verification failed")
    async def verify_email(self, token: Optional[str]) -> str:
        """Consume a verification token; returns the customer id."""
        if not token:
            raise BadRequest("Verification token is required")

        customer = await self._store.find_by_attribute("verification_token", token)
        if customer is None:
            raise NotFound(_INVALID_VERIFICATION_TOKEN)
        state = AuthState.from_attributes(customer.attributes)
        if state.is_verified:
            raise NotFound(_INVALID_VERIFICATION_TOKEN)

        state.email_verified = True
        state.verification_token = None
        try:
            await self._store.update(
                customer.id,
                expected_version=customer.version,
                attributes=state.merge_into(customer.attributes),
            )
        except ConcurrentUpdateError as exc:
            raise NotFound(_INVALID_VERIFICATION_TOKEN) from exc

        logger.info("Verified email for customer %s", customer.id)
        return customer.id

    @_flow("Login failed")
    async def login(self, identifier: Optional[str], password: Optional[str]) -> LoginResult:
        """Check credentials by email or username and mint a session token."""
        if not identifier or not password:
            raise BadRequest("Email/username and password are required")

        customer = await self._store.get_by_email(identifier)
        if customer is None:
            customer = await self._store.find_by_attribute("username", identifier)
        if customer is None:
            raise Unauthorized()

        state = AuthState.from_attributes(customer.attributes)
        if not state.is_verified:
            raise Forbidden()
        if not state.password_hash:
            raise Unauthorized()
        if not await asyncio.to_thread(verify_password, password, state.password_hash):
            logger.info("Rejected password for customer %s", customer.id)
            raise Unauthorized()

        token = self._sessions.issue(customer.id, now=int(self._clock().timestamp()))
        logger.info("Login: customer %s", customer.id)
        return LoginResult(customer=_profile(customer), token=token)

    @_flow("Request failed")
    async def forgot_password(self, email: Optional[str]) -> str:
        """
        Start a password reset.

        The returned message is the same whether or not ``email`` belongs
        to a customer.
        """
        if not email:
            raise BadRequest("Email is required")

        # One retry on a fresh read if another writer changed the record;
        # a conflict must never surface, or the answer would reveal the account.
        for _ in range(2):
            customer = await self._store.get_by_email(email)
            if customer is None:
                return FORGOT_PASSWORD_MESSAGE

            state = AuthState.from_attributes(customer.attributes)
            state.password_reset_token = issue_reset_token(customer.id, email)
            state.password_reset_expires = self._clock() + self._reset_ttl
            try:
                await self._store.update(
                    customer.id,
                    expected_version=customer.version,
                    attributes=state.merge_into(customer.attributes),
                )
                break
            except ConcurrentUpdateError:
                logger.info("Password reset for customer %s raced another write", customer.id)
        else:
            logger.warning("Gave up issuing password reset for customer %s", customer.id)
            return FORGOT_PASSWORD_MESSAGE

        logger.info("Issued password reset for customer %s", customer.id)
        self._notify(
            "Password reset",
            self._notifier.send_password_reset_email(email, state.password_reset_token),
        )
        return FORGOT_PASSWORD_MESSAGE

    @_flow("Password reset failed")
    async def reset_password(self, token: Optional[str], new_password: Optional[str]) -> None:
        """Consume a reset token and replace the password hash."""
        if not token or not new_password:
            raise BadRequest("Token and password are required")

        customer = await self._store.find_by_attribute("password_reset_token", token)
        if customer is None:
            raise NotFound(_INVALID_RESET_TOKEN)

        state = AuthState.from_attributes(customer.attributes)
        if not state.reset_pending(self._clock()):
            await self._discard_reset(customer, state)
            raise Expired()

        state.password_hash = await asyncio.to_thread(hash_password, new_password)
        state.password_reset_token = None
        state.password_reset_expires = None
        try:
            await self._store.update(
                customer.id,
                expected_version=customer.version,
                attributes=state.merge_into(customer.attributes),
            )
        except ConcurrentUpdateError as exc:
            raise NotFound(_INVALID_RESET_TOKEN) from exc

        logger.info("Password reset for customer %s", customer.id)

    @_flow("Registration completion failed")
    async def complete_registration(
        self,
        customer_id: Optional[str],
        billing: Optional[AddressInput],
        shipping: Optional[AddressInput],
        shipping_same_as_billing: bool,
        mobile_phone: Optional[str],
        landline: Optional[str] = None,
    ) -> CustomerSummary:
        """Store billing / shipping addresses and phone numbers."""
        if not customer_id:
            raise BadRequest("Customer ID is required")
        if billing is None or shipping is None:
            raise BadRequest("Billing and shipping addresses are required")

        try:
            customer = await self._store.retrieve(customer_id)
        except CustomerNotFound as exc:
            raise NotFound("Customer not found") from exc

        phone = mobile_phone or landline or None
        billing_address = build_address(
            billing,
            fallback_first_name=customer.first_name,
            last_name=customer.last_name,
            phone=phone,
            # Same-as-billing copies the shipping street onto billing.
            address_1=shipping.street if shipping_same_as_billing else None,
        )
        if shipping_same_as_billing:
            shipping_address = billing_address
        else:
            shipping_address = build_address(
                shipping,
                fallback_first_name=customer.first_name,
                last_name=customer.last_name,
                phone=phone,
            )

        state = AuthState.from_attributes(customer.attributes)
        state.billing_address = billing_address
        state.shipping_address = shipping_address
        state.landline = landline or None
        state.registration_complete = True

        changes: dict = {"attributes": state.merge_into(customer.attributes)}
        if mobile_phone:
            changes["phone"] = mobile_phone
        await self._store.update(customer.id, expected_version=customer.version, **changes)

        logger.info("Completed registration for customer %s", customer.id)
        return CustomerSummary(id=customer.id, email=customer.email)

    @_flow("Authentication failed")
    async def authenticate(self, token: Optional[str]) -> PublicProfile:
        """Resolve a session token to the customer's public profile."""
        claims = self._sessions.decode(token or "", now=int(self._clock().timestamp()))
        if claims is None:
            raise Unauthorized("Invalid or expired session token")
        try:
            customer = await self._store.retrieve(claims.entity_id)
        except CustomerNotFound as exc:
            raise Unauthorized("Invalid or expired session token") from exc
        return _profile(customer)
