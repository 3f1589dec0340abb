"""Authentication router.

Staff self-registration, cookie-based login and logout, and the current
user's profile. Admin accounts are created with scripts/create-admin.py.
"""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from workorders.config import settings
from workorders.core.auth import CurrentUser
from workorders.core.security import create_access_token, hash_password, verify_password
from workorders.database import get_db
from workorders.logging_config import get_logger
from workorders.middleware.rate_limit import AUTH_RATE_LIMIT, limiter
from workorders.models.activity_log import ActivityAction, ActivityEntityType
from workorders.models.user import User, UserRole
from workorders.schemas.auth import (
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    LogoutResponse,
    UserRegistrationRequest,
    UserRegistrationResponse,
    UserResponse,
)
from workorders.services.activity_log import client_details, log_activity

logger = get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["authentication"])


@router.post(
    "/register",
    response_model=UserRegistrationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        201: {"description": "User registered successfully"},
        409: {"model": ErrorResponse, "description": "Email already exists"},
    },
)
@limiter.limit(AUTH_RATE_LIMIT)
async def register_user(
    body: UserRegistrationRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> UserRegistrationResponse:
    """Register a new staff account.

    Raises:
        HTTPException 409: If the email is already registered
    """
    email = body.email.lower()
    existing = await db.execute(select(User).where(User.email == email))
    if existing.scalar_one_or_none():
        logger.warning("Registration attempt with existing email", email=email)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Registration failed. Please try again or contact support.",
        )

    user = User(
        email=email,
        name=body.name,
        hashed_password=hash_password(body.password),
        role=UserRole.STAFF,
        is_active=True,
    )

    try:
        db.add(user)
        await db.commit()
        await db.refresh(user)
    except IntegrityError:
        await db.rollback()
        logger.warning("Registration failed - integrity error", email=email)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Registration failed. Please try again or contact support.",
        )

    logger.info("User registered", user_id=str(user.id), email=user.email)
    return UserRegistrationResponse(id=user.id, email=user.email, role=user.role)


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={
        200: {"description": "Login successful"},
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
    },
)
@limiter.limit(AUTH_RATE_LIMIT)
async def login(
    body: LoginRequest,
    response: Response,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    """Validate credentials and set the session cookie."""
    ip_address, user_agent = client_details(request)

    result = await db.execute(select(User).where(User.email == body.email.lower()))
    user = result.scalar_one_or_none()

    if not user or not verify_password(body.password, user.hashed_password):
        logger.warning(
            "Failed login attempt",
            email=body.email,
            client_ip=ip_address,
            reason="invalid_credentials",
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    if not user.is_active:
        logger.warning(
            "Failed login attempt",
            email=body.email,
            client_ip=ip_address,
            reason="account_disabled",
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    token = create_access_token(
        user_id=user.id,
        email=user.email,
        role=user.role.value,
    )
    response.set_cookie(
        key=settings.jwt_cookie_name,
        value=token,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        max_age=settings.session_expire_hours * 3600,
        path="/",
    )

    user.last_login_at = datetime.now(UTC)
    await log_activity(
        db,
        user_id=user.id,
        action=ActivityAction.LOGIN,
        entity_type=ActivityEntityType.USER,
        entity_id=user.id,
        description=f"{user.email} logged in",
        ip_address=ip_address,
        user_agent=user_agent,
    )
    await db.commit()

    logger.info("User logged in", user_id=str(user.id), client_ip=ip_address)
    return LoginResponse(user=UserResponse.model_validate(user))


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    response: Response,
    request: Request,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
) -> LogoutResponse:
    """Clear the session cookie."""
    ip_address, user_agent = client_details(request)
    response.delete_cookie(
        key=settings.jwt_cookie_name,
        path="/",
        secure=settings.cookie_secure,
        httponly=True,
        samesite="lax",
    )
    await log_activity(
        db,
        user_id=current_user.id,
        action=ActivityAction.LOGOUT,
        entity_type=ActivityEntityType.USER,
        entity_id=current_user.id,
        description=f"{current_user.email} logged out",
        ip_address=ip_address,
        user_agent=user_agent,
    )
    await db.commit()

    logger.info("User logged out", user_id=str(current_user.id))
    return LogoutResponse()


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: CurrentUser) -> UserResponse:
    return UserResponse.model_validate(current_user)
