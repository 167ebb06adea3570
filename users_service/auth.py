import hashlib
import os
from datetime import datetime, timedelta, timezone
from typing import Annotated, Optional

from fastapi import Header
from jose import jwt, JWTError
from passlib.context import CryptContext

from shared.errors import UnauthorizedError
from shared.validation import parse_id


JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-change-me")
JWT_ALG = os.getenv("JWT_ALG", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

GRAVATAR_URL = "https://www.gravatar.com/avatar/{digest}?s=200&r=pg&d=mm"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def gravatar_url(email: str) -> str:
    digest = hashlib.md5(email.strip().lower().encode("utf-8")).hexdigest()
    return GRAVATAR_URL.format(digest=digest)


def create_access_token(subject: str) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=JWT_EXPIRES_MINUTES)).timestamp()),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALG)


def decode_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALG])
    except JWTError:
        return None


def get_current_user_id(authorization: Annotated[str | None, Header()] = None) -> int:
    if not authorization or not authorization.startswith("Bearer "):
        raise UnauthorizedError("Missing bearer token")
    payload = decode_token(authorization.split(" ", 1)[1])
    user_id = parse_id(str(payload.get("sub", ""))) if payload else None
    if user_id is None:
        raise UnauthorizedError("Invalid token")
    return user_id
