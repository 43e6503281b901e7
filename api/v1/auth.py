"""
Authentication endpoints.

Handles registration, password and Google login, logout and the current
account. Every successful login returns a bearer token and sets the
session cookie.
"""

import logging
import secrets
from typing import Optional

from fastapi import APIRouter, Request, Response, status
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, Field

from identity_core.auth import Account
from identity_core.errors import StateMismatchError
from identity_core.services import IdentityContext, LoginGrant

from ..deps import ContextDep, CurrentAccount, ProofDep

logger = logging.getLogger(__name__)

router = APIRouter()


# Request/Response models

class RegisterRequest(BaseModel):
    """Account registration request."""
    email: str = Field(..., description="Email address")
    password: str = Field(..., description="Password (min 6 chars)")
    name: Optional[str] = Field(None, description="Display name")
    first_name: Optional[str] = Field(None, alias="firstName", description="First name")
    last_name: Optional[str] = Field(None, alias="lastName", description="Last name")
    phone: Optional[str] = Field(None, description="Phone number")

    model_config = {"populate_by_name": True}


class LoginRequest(BaseModel):
    """Login request."""
    email: str = Field(..., description="Email address")
    password: str = Field(..., description="Password")


class ChangePasswordRequest(BaseModel):
    """Password change request."""
    current_password: str = Field(..., description="Current password")
    new_password: str = Field(..., description="New password (min 6 chars)")


class TokenResponse(BaseModel):
    """Token response."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int = 86400


class AccountResponse(BaseModel):
    """Account info response."""
    account_id: str
    email: str
    name: Optional[str]
    role: str
    avatar: Optional[str] = None
    auth_methods: str
    is_active: bool
    last_login: Optional[str] = None

    @classmethod
    def from_account(cls, account: Account) -> "AccountResponse":
        return cls(
            account_id=account.account_id,
            email=account.email,
            name=account.name,
            role=account.role.value,
            avatar=account.avatar,
            auth_methods=account.credential_kind.value,
            is_active=account.is_active,
            last_login=account.last_login
        )


class AuthResponse(BaseModel):
    """Authentication response with token and account info."""
    success: bool
    message: Optional[str] = None
    tokens: Optional[TokenResponse] = None
    account: Optional[AccountResponse] = None


def _grant_response(
    context: IdentityContext,
    response: Response,
    grant: LoginGrant,
    message: str
) -> AuthResponse:
    """Set the session cookie and build the login response."""
    session_cfg = context.config.session
    response.set_cookie(
        key=session_cfg.cookie_name,
        value=grant.session.session_id,
        max_age=session_cfg.ttl_seconds,
        httponly=True,
        secure=session_cfg.cookie_secure,
        samesite="lax"
    )

    return AuthResponse(
        success=True,
        message=message,
        tokens=TokenResponse(**grant.to_dict()),
        account=AccountResponse.from_account(grant.account)
    )


# Endpoints

@router.post("/register", response_model=AuthResponse)
def register(request: RegisterRequest, response: Response, context: ContextDep):
    """
    Register a new account.

    Creates an ordinary account with email and password.
    Returns a bearer token and sets the session cookie on success.
    """
    account = context.local.register(
        email=request.email,
        password=request.password,
        name=request.name,
        phone=request.phone,
        first_name=request.first_name,
        last_name=request.last_name
    )
    grant = context.establish(account)
    return _grant_response(context, response, grant, "Registration successful! Welcome to TravelExplore!")


@router.post("/login", response_model=AuthResponse)
def login(request: LoginRequest, response: Response, context: ContextDep):
    """
    Login with email and password.

    Returns a bearer token and sets the session cookie on success.
    """
    account = context.local.login(email=request.email, password=request.password)
    grant = context.establish(account)
    return _grant_response(context, response, grant, "Login successful")


@router.post("/logout")
async def logout(proof: ProofDep, response: Response, context: ContextDep):
    """
    Logout.

    Destroys the server-side session and clears the cookie. Bearer tokens
    already issued stay valid until they expire.
    """
    context.logout(proof.session_id)
    response.delete_cookie(context.config.session.cookie_name)
    return {"success": True, "message": "Logged out successfully"}


@router.get("/me", response_model=AccountResponse)
async def get_current_account_info(current_account: CurrentAccount):
    """
    Get current authenticated account info.

    Accepts a bearer token or the session cookie.
    """
    return AccountResponse.from_account(current_account)


@router.post("/password")
def change_password(
    request: ChangePasswordRequest,
    current_account: CurrentAccount,
    context: ContextDep
):
    """Change the current account's password."""
    context.local.change_password(
        account_id=current_account.account_id,
        current_password=request.current_password,
        new_password=request.new_password
    )
    return {"success": True, "message": "Password updated"}


@router.get("/google")
def google_login(context: ContextDep):
    """
    Redirect the browser to Google's consent screen.

    The state is also set in a short-lived cookie so the callback only
    completes in the browser that started the login.
    """
    url, state = context.federated.start()
    google_cfg = context.config.google

    response = RedirectResponse(url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
    response.set_cookie(
        key=google_cfg.state_cookie_name,
        value=state,
        max_age=google_cfg.state_ttl_seconds,
        httponly=True,
        secure=context.config.session.cookie_secure,
        samesite="lax"
    )
    return response


@router.get("/google/callback", response_model=AuthResponse)
def google_callback(
    request: Request,
    response: Response,
    context: ContextDep,
    code: str = "",
    state: str = ""
):
    """
    Complete a Google login.

    Returns a bearer token and sets the session cookie, exactly as a
    password login does.
    """
    cookie_name = context.config.google.state_cookie_name
    bound_state = request.cookies.get(cookie_name)
    if not bound_state or not state or not secrets.compare_digest(bound_state, state):
        logger.info("Google callback state does not match this browser")
        raise StateMismatchError()

    account = context.federated.callback(code=code, state=state)
    grant = context.establish(account)
    response.delete_cookie(cookie_name)
    return _grant_response(context, response, grant, "Login successful")
