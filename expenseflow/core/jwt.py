import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTError

from ..config import settings
from .errors import UnauthorizedError


def create_access_token(
    user_id: uuid.UUID,
    claims: Optional[Dict[str, Any]] = None,
    expires_minutes: Optional[int] = None,
) -> str:
    """Sign a session token for ``user_id``. Extra ``claims`` are informational."""
    now = datetime.now(timezone.utc)
    lifetime = timedelta(minutes=expires_minutes or settings.access_token_expire_minutes)
    payload = dict(claims or {})
    payload.update(
        sub=str(user_id),
        iat=int(now.timestamp()),
        exp=int((now + lifetime).timestamp()),
    )
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def user_id_from_token(token: str) -> uuid.UUID:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        raise UnauthorizedError("Token expired")
    except JWTError:
        raise UnauthorizedError("Invalid token")

    sub = payload.get("sub")
    if sub is None:
        raise UnauthorizedError("Invalid token: missing subject")
    try:
        return uuid.UUID(str(sub))
    except ValueError:
        raise UnauthorizedError("Invalid token: bad subject format")
