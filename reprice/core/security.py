from datetime import datetime, timedelta, timezone

import bcrypt
import jwt

from reprice.core.config import settings


ALGORITHM = "HS256"
_ISSUER = "reprice"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=10)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def create_access_token(
    user_id: int,
    phone: str,
    user_type: str,
    expires_delta: timedelta | None = None,
) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(days=settings.jwt_expire_days))
    payload = {
        "sub": str(user_id),
        "phone": phone,
        "user_type": user_type,
        "exp": expire,
        "iat": now,
        "iss": _ISSUER,
        "aud": _ISSUER,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and verify a JWT token. Raises jwt.PyJWTError on failure."""
    return jwt.decode(
        token,
        settings.jwt_secret_key,
        algorithms=[ALGORITHM],
        issuer=_ISSUER,
        audience=_ISSUER,
    )


def verify_access_token(token: str) -> dict | None:
    """Verify an access token and return its payload, or None if invalid."""
    try:
        payload = decode_token(token)
    except jwt.PyJWTError:
        return None
    if not payload.get("sub") or payload.get("user_type") not in ("customer", "agent"):
        return None
    return payload
