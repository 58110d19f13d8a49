"""
FastAPI dependencies for the customer auth routes.

Provides ``get_auth_engine`` (the app-wide ``AuthFlowEngine``) and
``get_current_customer`` for routes that need a session token.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from auth.errors import Unauthorized
from auth.flows import AuthFlowEngine
from auth.schemas import PublicProfile
from auth.tokens import SessionTokenCodec
from config.settings import Settings, config
from database.customer_store import SqlCustomerStore
from database.session import get_session_factory
from notifications.mailer import EmailDispatcher

_bearer_scheme = HTTPBearer(auto_error=False)


def build_auth_engine(settings: Settings = config) -> AuthFlowEngine:
    """Wire the flow engine to the SQL store, signed sessions and SMTP."""
    return AuthFlowEngine(
        store=SqlCustomerStore(get_session_factory()),
        session_codec=SessionTokenCodec(
            settings.session_secret, settings.session_expiry_seconds
        ),
        notifier=EmailDispatcher(settings),
        reset_token_ttl_seconds=settings.reset_token_ttl_seconds,
    )


def get_auth_engine(request: Request) -> AuthFlowEngine:
    return request.app.state.auth_engine


async def get_current_customer(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    engine: AuthFlowEngine = Depends(get_auth_engine),
) -> PublicProfile:
    """Verify the Bearer session token and return the customer's profile."""
    if credentials is None:
        raise Unauthorized("Missing Bearer token")
    return await engine.authenticate(credentials.credentials)
