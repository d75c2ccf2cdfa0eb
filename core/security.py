import logging
import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from dotenv import load_dotenv
from jose import JWTError, jwt

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

# Shared by the REST gate and the realtime gate
JWT_SECRET = os.getenv("JWT_SECRET", "secret")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES", "720"))

if JWT_SECRET == "secret":
    logger.warning("JWT_SECRET is not set; using the insecure development default.")


class Role(str, Enum):
    EMPLOYEE = "employee"
    MANAGER = "manager"


class InvalidTokenError(Exception):
    """Raised when an identity token cannot be trusted."""


@dataclass(frozen=True)
class Identity:
    id: str
    role: Role
    name: Optional[str] = None
    email: Optional[str] = None

    @property
    def is_manager(self) -> bool:
        return self.role == Role.MANAGER


def create_identity_token(identity: Identity, expires_minutes: Optional[int] = None) -> str:
    """
    Mint a signed identity token.

    Credential checks live in the authentication service; this helper only
    signs the claims it hands back (and is what the tests use).
    """
    expire = datetime.now(timezone.utc) + timedelta(
        minutes=expires_minutes if expires_minutes is not None else JWT_EXPIRE_MINUTES
    )
    claims = {
        "sub": identity.id,
        "role": identity.role.value,
        "exp": expire,
    }
    if identity.name:
        claims["name"] = identity.name
    if identity.email:
        claims["email"] = identity.email
    return jwt.encode(claims, JWT_SECRET, algorithm=JWT_ALGORITHM)


def verify_identity_token(token: str) -> Identity:
    """
    Decode a token into an Identity.

    Unknown roles are rejected here instead of being treated as employees.
    """
    try:
        claims = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        raise InvalidTokenError(f"Invalid or expired token: {e}") from e

    subject = claims.get("sub")
    if not subject:
        raise InvalidTokenError("Token did not contain a subject")

    try:
        role = Role(claims.get("role"))
    except ValueError:
        raise InvalidTokenError(f"Token carried unknown role {claims.get('role')!r}")

    return Identity(
        id=str(subject),
        role=role,
        name=claims.get("name"),
        email=claims.get("email"),
    )


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token portion of an 'Authorization: Bearer ...' header."""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization.split(" ", 1)[1].strip()
    return token or None
