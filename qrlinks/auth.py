from datetime import datetime, timedelta, timezone

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from qrlinks.config import settings
from qrlinks.errors import Forbidden, Unauthenticated

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/auth", auto_error=False)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def create_access_token(user_id: int, email: str, expires_delta: timedelta | None = None) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode = {"sub": str(user_id), "email": email, "exp": expire}
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> int:
    """Return the user id carried by a valid token."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        raise Unauthenticated("Invalid token")
    try:
        return int(payload.get("sub"))
    except (TypeError, ValueError):
        raise Unauthenticated("Invalid token subject")


def get_current_user_id(token: str | None = Depends(oauth2_scheme)) -> int:
    if not token:
        raise Unauthenticated()
    return decode_access_token(token)


def require_owner(owner_id: int, caller_id: int) -> None:
    """Only call once the resource is known to exist; absence is a 404, not a 403."""
    if owner_id != caller_id:
        raise Forbidden("You are not the owner of this resource")
