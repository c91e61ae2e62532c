"""
Auth endpoints — registration, login and the current actor.
"""

import logging

from fastapi import APIRouter, Depends, status

from issuedesk.api.deps import (
    enforce_login_limit,
    get_current_actor,
    get_token_service,
    get_user_store,
)
from issuedesk.core.exceptions import DuplicateEmail, ValidationFailure
from issuedesk.core.policy import Actor
from issuedesk.core.security import TokenService
from issuedesk.schemas.user import (
    LoginRequest,
    LoginResponse,
    RegisterResponse,
    UserCreate,
    UserRead,
)
from issuedesk.stores.base import UserStore

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials."


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    body: UserCreate,
    users: UserStore = Depends(get_user_store),
) -> RegisterResponse:
    """Create an account. Unknown roles fall back to ``customer``."""
    if await users.find_by_email(body.email) is not None:
        raise DuplicateEmail()

    user = await users.create(body.model_dump())
    logger.info("Registered user %s (id %s, role %s)", user.email, user.id, user.role)
    return RegisterResponse(
        message="User registered successfully",
        user=UserRead.model_validate(user),
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    dependencies=[Depends(enforce_login_limit)],
)
async def login(
    body: LoginRequest,
    users: UserStore = Depends(get_user_store),
    tokens: TokenService = Depends(get_token_service),
) -> LoginResponse:
    """Exchange email + password for a one-hour session token."""
    user = await users.find_by_email(body.email)
    # same answer for an unknown email and a wrong password
    if user is None or not users.verify_password(body.password, user.hashed_password):
        logger.info("Failed login for %s", body.email)
        raise ValidationFailure(INVALID_CREDENTIALS)

    return LoginResponse(token=tokens.issue(user), user=UserRead.model_validate(user))


@router.get("/me", response_model=UserRead)
async def read_current_actor(
    actor: Actor = Depends(get_current_actor),
) -> UserRead:
    """Return the identity carried by the bearer token."""
    return UserRead(
        id=actor.id,
        username=actor.username,
        email=actor.email,
        phone_number=actor.phone_number,
        role=actor.role.value,
    )
