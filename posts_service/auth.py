import os
from typing import Annotated, Optional

from fastapi import Header
from jose import jwt, JWTError

from shared.errors import UnauthorizedError
from shared.validation import parse_id


JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-change-me")
JWT_ALG = os.getenv("JWT_ALG", "HS256")


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
