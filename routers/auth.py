import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from auth.jwt import REFRESH, InvalidToken, get_current_user, hash_password, issue_token_pair, read_token, verify_password
from config import Settings, get_settings
from crud import create_user, get_user, get_user_by_username
from db import get_db
from errors import NotFoundError, UnauthorizedError
from schemas import AuthResult, LoginRequest, RefreshRequest, TokenPayload, UserCreate, UserPublic
from utils.responses import fail, ok

router = APIRouter(prefix="/auth", tags=["Auth"])

logger = logging.getLogger(__name__)


@router.post("/register", status_code=status.HTTP_201_CREATED, summary="Register user (returns token pair)")
def register_user(
    body: UserCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    hashed = hash_password(body.password, rounds=settings.BCRYPT_ROUNDS)
    # a duplicate username/email surfaces as ConflictError from the unique constraint
    user = create_user(db, username=body.username, email=body.email, password_hash=hashed)
    tokens = issue_token_pair(user.id, user.username, settings)
    logger.info("User registered: %s", user.username)
    return ok(AuthResult(user=UserPublic.model_validate(user), **tokens.model_dump()))


@router.post("/login", summary="Login with username and password")
def login(body: LoginRequest, db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    user = get_user_by_username(db, body.username)
    if not user or not verify_password(body.password, user.password_hash):
        raise UnauthorizedError("Invalid credentials")
    tokens = issue_token_pair(user.id, user.username, settings)
    return ok(AuthResult(user=UserPublic.model_validate(user), **tokens.model_dump()))


@router.post("/refresh", summary="Exchange a refresh token for a new token pair")
def refresh(body: RefreshRequest, settings: Settings = Depends(get_settings)):
    if not body.refresh_token:
        return fail(status.HTTP_400_BAD_REQUEST, "Refresh token is required")
    try:
        payload = read_token(body.refresh_token, REFRESH, settings)
    except InvalidToken:
        raise UnauthorizedError("Invalid refresh token")
    # the user row is not re-read here
    return ok(issue_token_pair(payload.user_id, payload.username, settings))


@router.post("/logout", summary="Logout (client discards its tokens)")
def logout():
    return ok(None, message="Logged out")


@router.get("/me", summary="Get current user")
def read_users_me(current_user: TokenPayload = Depends(get_current_user), db: Session = Depends(get_db)):
    user = get_user(db, current_user.user_id)
    if user is None:
        raise NotFoundError("User not found")
    return ok(UserPublic.model_validate(user))
