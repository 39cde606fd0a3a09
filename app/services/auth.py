# backend/app/services/auth.py
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Union

from jose import jwt, ExpiredSignatureError, JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ForbiddenError, TokenInvalidError, UnauthorizedError
from app.models.user import AppUser, User
from app.schemas.endpoint import EndpointDefinition

logger = logging.getLogger(__name__)

APP_TOKEN_TYPE = "app"


@dataclass
class IdentityRecord:
    active: bool
    roles: List[str] = field(default_factory=list)


class IdentityLookup(Protocol):
    async def lookup_system_user(self, identity_id: int) -> Optional[IdentityRecord]:
        ...

    async def lookup_app_user(self, identity_id: int) -> Optional[IdentityRecord]:
        ...


@dataclass(frozen=True)
class SystemPrincipal:
    """An operator of the platform. Role lists do not apply."""
    identity_id: int

    async def authorize(self, directory: IdentityLookup, definition: EndpointDefinition) -> IdentityRecord:
        record = await directory.lookup_system_user(self.identity_id)
        if record is None or not record.active:
            raise ForbiddenError("User not active")
        return record


@dataclass(frozen=True)
class AppPrincipal:
    """An end user of the generated API, subject to allowed_roles."""
    identity_id: int

    async def authorize(self, directory: IdentityLookup, definition: EndpointDefinition) -> IdentityRecord:
        record = await directory.lookup_app_user(self.identity_id)
        if record is None:
            raise UnauthorizedError("Invalid token user")
        if not record.active:
            raise ForbiddenError("User not active")
        allowed = set(definition.allowed_roles or [])
        if allowed and not allowed.intersection(str(r) for r in record.roles):
            raise ForbiddenError("Forbidden: role not allowed")
        return record


Principal = Union[SystemPrincipal, AppPrincipal]


def parse_bearer(authorization: Optional[str]) -> str:
    if not authorization:
        raise UnauthorizedError("Missing authorization header")
    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        raise UnauthorizedError("Invalid authorization header")
    return parts[1]


class TokenVerifier:
    """Verifies access tokens issued elsewhere; payload carries sub and optional type."""

    def __init__(self, secret_key: str, algorithm: str = "HS256"):
        self.secret_key = secret_key
        self.algorithm = algorithm

    def verify(self, token: str) -> Principal:
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise TokenInvalidError()
        except JWTError as e:
            logger.warning(f"Token rejected: {e}")
            raise TokenInvalidError()

        subject = payload.get("sub")
        try:
            identity_id = int(subject)
        except (TypeError, ValueError):
            raise TokenInvalidError()

        if payload.get("type") == APP_TOKEN_TYPE:
            return AppPrincipal(identity_id)
        return SystemPrincipal(identity_id)


class IdentityDirectory:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def lookup_system_user(self, identity_id: int) -> Optional[IdentityRecord]:
        user = await self.session.get(User, identity_id)
        if user is None:
            return None
        return IdentityRecord(active=bool(user.is_active))

    async def lookup_app_user(self, identity_id: int) -> Optional[IdentityRecord]:
        app_user = await self.session.get(AppUser, identity_id)
        if app_user is None:
            return None
        roles = app_user.roles if isinstance(app_user.roles, list) else []
        return IdentityRecord(active=app_user.status == "active", roles=[str(r) for r in roles])
