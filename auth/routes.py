"""
Customer auth API routes.

Route prefix: /store/custom/auth
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, status

from auth.dependencies import get_auth_engine, get_current_customer
from auth.flows import AuthFlowEngine
from auth.schemas import (
    CompleteRegistrationRequest,
    CompleteRegistrationResponse,
    ForgotPasswordRequest,
    LoginRequest,
    LoginResult,
    MessageResponse,
    PublicProfile,
    RegisterRequest,
    RegisterResponse,
    ResetPasswordRequest,
    VerifyEmailResponse,
)

router = APIRouter(tags=["auth"])


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    req: RegisterRequest,
    engine: AuthFlowEngine = Depends(get_auth_engine),
) -> Dict[str, Any]:
    """Register a new, unverified customer."""
    customer_id = await engine.register(
        req.email, req.password, req.first_name, req.last_name, req.username
    )
    return {
        "message": "Registration successful. Please check your email for verification.",
        "customer_id": customer_id,
    }


@router.get("/verify-email", response_model=VerifyEmailResponse)
async def verify_email(
    token: Optional[str] = None,
    engine: AuthFlowEngine = Depends(get_auth_engine),
) -> Dict[str, Any]:
    customer_id = await engine.verify_email(token)
    return {"customer_id": customer_id, "message": "Email verified successfully"}


@router.post("/login", response_model=LoginResult)
async def login(
    req: LoginRequest,
    engine: AuthFlowEngine = Depends(get_auth_engine),
) -> LoginResult:
    """Login with email or username + password."""
    return await engine.login(req.identifier, req.password)


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    req: ForgotPasswordRequest,
    engine: AuthFlowEngine = Depends(get_auth_engine),
) -> Dict[str, Any]:
    return {"message": await engine.forgot_password(req.email)}


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    req: ResetPasswordRequest,
    engine: AuthFlowEngine = Depends(get_auth_engine),
) -> Dict[str, Any]:
    await engine.reset_password(req.token, req.password)
    return {"message": "Password reset successfully"}


@router.post("/complete-registration", response_model=CompleteRegistrationResponse)
async def complete_registration(
    req: CompleteRegistrationRequest,
    engine: AuthFlowEngine = Depends(get_auth_engine),
) -> Dict[str, Any]:
    """Attach billing / shipping addresses and phone numbers."""
    summary = await engine.complete_registration(
        req.customer_id,
        req.billing,
        req.shipping,
        req.shipping_same_as_billing,
        req.mobile_phone,
        req.landline,
    )
    return {"customer": summary.model_dump(), "message": "Registration completed successfully"}


@router.get("/me", response_model=PublicProfile)
async def me(customer: PublicProfile = Depends(get_current_customer)) -> PublicProfile:
    return customer
