from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config import Settings, get_settings
from errors import UnauthorizedError
from schemas import TokenPair, TokenPayload

bearer_scheme = HTTPBearer(auto_error=False, scheme_name="BearerJWT")

ACCESS = "access"
REFRESH = "refresh"


class InvalidToken(Exception):
    """Raised for expired, tampered or malformed tokens."""


def hash_password(password: str, rounds: int = 12) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        return False


def generate_token(payload: Dict[str, Any], secret: str, ttl: timedelta, algorithm: str = "HS256") -> str:
    now = datetime.now(timezone.utc)
    to_encode = {**payload, "iat": now, "exp": now + ttl}
    return jwt.encode(to_encode, secret, algorithm=algorithm)


def verify_token(token: str, secret: str, algorithm: str = "HS256") -> Dict[str, Any]:
    try:
        return jwt.decode(token, secret, algorithms=[algorithm])
    except jwt.PyJWTError as e:
        # expired and malformed are deliberately not told apart
        raise InvalidToken(str(e)) from e


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    """Read the claims without checking the signature or expiry."""
    try:
        return jwt.decode(token, options={"verify_signature": False, "verify_exp": False})
    except jwt.PyJWTError:
        return None


def issue_token_pair(user_id: str, username: str, settings: Settings) -> TokenPair:
    payload = {"userId": user_id, "username": username}
    access_ttl = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    refresh_ttl = timedelta(minutes=settings.REFRESH_TOKEN_EXPIRE_MINUTES)
    return TokenPair(
        access_token=generate_token(
            {**payload, "type": ACCESS}, settings.JWT_SECRET, access_ttl, settings.JWT_ALGORITHM
        ),
        refresh_token=generate_token(
            {**payload, "type": REFRESH}, settings.JWT_SECRET, refresh_ttl, settings.JWT_ALGORITHM
        ),
        expires_in=int(access_ttl.total_seconds()),
    )


def read_token(token: str, expected_type: str, settings: Settings) -> TokenPayload:
    claims = verify_token(token, settings.JWT_SECRET, settings.JWT_ALGORITHM)
    if claims.get("type") != expected_type:
        raise InvalidToken(f"expected {expected_type} token")
    try:
        return TokenPayload.model_validate(claims)
    except ValueError as e:
        raise InvalidToken("token payload is incomplete") from e


# Dependency to get current user identity from the bearer token
async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    settings: Settings = Depends(get_settings),
) -> TokenPayload:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthorizedError("Not authenticated")
    try:
        return read_token(credentials.credentials, ACCESS, settings)
    except InvalidToken:
        raise UnauthorizedError("Not authenticated")
