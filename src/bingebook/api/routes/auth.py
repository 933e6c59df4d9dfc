from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Header
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from bingebook.api.dependencies import bearer_token, get_logger, get_settings, get_supabase
from bingebook.config import Settings
from bingebook.exceptions import AuthenticationError, SupabaseError, UpstreamError, ValidationError
from bingebook.supabase_client import SupabaseClient

router = APIRouter(prefix="/api/auth", tags=["auth"])


class Credentials(BaseModel):
    email: str = Field(min_length=3)
    password: str = Field(min_length=1)


class RefreshRequest(BaseModel):
    refresh_token: Optional[str] = None


class ResendRequest(BaseModel):
    email: Optional[str] = None


class GoogleAuthRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    origin: Optional[str] = None
    code_challenge: Optional[str] = Field(default=None, alias="codeChallenge")


def _client_errors_as_validation(error: SupabaseError) -> Exception:
    # GoTrue answers bad credentials and malformed input with 4xx
    if error.status is not None and 400 <= error.status < 500:
        return ValidationError(error.message, code="AUTH_REJECTED")
    return error


@router.post("/signup")
def sign_up(
    body: Credentials,
    supabase: SupabaseClient = Depends(get_supabase),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    try:
        payload = supabase.sign_up(body.email, body.password, redirect_to=f"{settings.site_url}/email-confirmation")
    except SupabaseError as error:
        raise _client_errors_as_validation(error) from error
    # no session until the address is confirmed
    return {
        "user": payload["user"],
        "session": None,
        "message": "Please check your email and click the confirmation link to complete your registration.",
    }


@router.post("/signin")
def sign_in(
    body: Credentials,
    supabase: SupabaseClient = Depends(get_supabase),
    logger: logging.Logger = Depends(get_logger),
) -> Any:
    try:
        payload = supabase.sign_in_with_password(body.email, body.password)
    except SupabaseError as error:
        raise _client_errors_as_validation(error) from error

    user = payload["user"] or {}
    if not user.get("email_confirmed_at"):
        access_token = (payload["session"] or {}).get("access_token")
        if access_token:
            try:
                supabase.sign_out(access_token)
            except UpstreamError as error:
                logger.warning("signout_failed", extra={"user_id": user.get("id"), "error": str(error)})
        return JSONResponse(
            status_code=400,
            content={
                "error": "Please confirm your email address before signing in. Check your inbox for the confirmation link.",
                "code": "EMAIL_NOT_CONFIRMED",
                "requiresEmailConfirmation": True,
            },
        )
    return payload


@router.post("/signout")
def sign_out(
    authorization: Optional[str] = Header(default=None),
    supabase: SupabaseClient = Depends(get_supabase),
) -> dict[str, str]:
    token = bearer_token(authorization)
    if token:
        supabase.sign_out(token)
    return {"message": "Signed out successfully"}


@router.get("/user")
def get_user(
    authorization: Optional[str] = Header(default=None),
    supabase: SupabaseClient = Depends(get_supabase),
) -> dict[str, Any]:
    token = bearer_token(authorization)
    if token is None:
        raise AuthenticationError("Missing or invalid authorization header", code="MISSING_AUTH_HEADER")
    user = supabase.get_user(token)
    if user is None:
        raise AuthenticationError("Invalid or expired token", code="INVALID_TOKEN")
    return {"user": user.raw}


@router.post("/refresh")
def refresh(body: RefreshRequest, supabase: SupabaseClient = Depends(get_supabase)) -> dict[str, Any]:
    if not body.refresh_token:
        raise ValidationError("Refresh token is required")
    try:
        payload = supabase.refresh_session(body.refresh_token)
    except SupabaseError as error:
        raise _client_errors_as_validation(error) from error
    return payload


@router.post("/resend-confirmation")
def resend_confirmation(
    body: ResendRequest,
    supabase: SupabaseClient = Depends(get_supabase),
    settings: Settings = Depends(get_settings),
) -> dict[str, str]:
    if not body.email:
        raise ValidationError("Email is required")
    try:
        supabase.resend_signup(body.email, redirect_to=f"{settings.site_url}/email-confirmation")
    except SupabaseError as error:
        raise _client_errors_as_validation(error) from error
    return {"message": "Confirmation email sent! Please check your inbox."}


@router.post("/google")
def google_auth(
    body: GoogleAuthRequest,
    supabase: SupabaseClient = Depends(get_supabase),
    settings: Settings = Depends(get_settings),
) -> dict[str, str]:
    origin = (body.origin or settings.site_url).rstrip("/")
    url = supabase.build_oauth_url(
        "google",
        redirect_to=f"{origin}/auth/callback",
        query_params={"access_type": "offline", "prompt": "consent"},
        code_challenge=body.code_challenge,
    )
    return {"url": url, "message": "Redirect to Google OAuth"}


@router.get("/google/callback")
def google_callback(
    code: Optional[str] = None,
    code_verifier: Optional[str] = None,
    supabase: SupabaseClient = Depends(get_supabase),
) -> dict[str, Any]:
    if not code:
        raise ValidationError("Authorization code is required")
    try:
        payload = supabase.exchange_code_for_session(code, code_verifier)
    except SupabaseError as error:
        raise _client_errors_as_validation(error) from error
    return {**payload, "message": "Google authentication successful"}
