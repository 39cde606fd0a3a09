# === backend/app/api/deps.py ===
from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from app.core.config import settings
from app.core.errors import ForbiddenError
from app.db.database import get_db
from app.db.engine import SqlEngine
from app.services.auth import IdentityDirectory, SystemPrincipal, TokenVerifier, parse_bearer
from app.services.endpoint_resolver import EndpointResolver
from app.services.endpoint_store import EndpointStore

def get_token_verifier() -> TokenVerifier:
    return TokenVerifier(settings.SECRET_KEY, settings.JWT_ALGORITHM)

def get_sql_engine(request: Request) -> SqlEngine:
    return SqlEngine(request.app.state.db_engine)

def get_endpoint_store(db: AsyncSession = Depends(get_db)) -> EndpointStore:
    return EndpointStore(db)

def get_resolver(
    db: AsyncSession = Depends(get_db),
    verifier: TokenVerifier = Depends(get_token_verifier),
    engine: SqlEngine = Depends(get_sql_engine),
) -> EndpointResolver:
    return EndpointResolver(EndpointStore(db), verifier, IdentityDirectory(db), engine)

async def get_current_user(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> SystemPrincipal:
    """Definition management is for active system users only."""
    principal = verifier.verify(parse_bearer(authorization))
    if not isinstance(principal, SystemPrincipal):
        raise ForbiddenError("Endpoint management requires a system user")
    record = await IdentityDirectory(db).lookup_system_user(principal.identity_id)
    if record is None or not record.active:
        raise ForbiddenError("User not active")
    return principal
