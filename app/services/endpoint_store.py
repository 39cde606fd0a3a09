# backend/app/services/endpoint_store.py
import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.core.errors import DefinitionAccessError, DefinitionNotFoundError, DefinitionValidationError
from app.models.endpoint import Endpoint
from app.schemas.endpoint import EndpointCreateRequest, EndpointDefinition, EndpointResponse, ParamDef
from app.services.endpoint_validator import validate_definition

logger = logging.getLogger(__name__)

DUPLICATE_MESSAGE = "Endpoint with same method and path already exists"


def to_definition(ep: Endpoint) -> EndpointDefinition:
    return EndpointDefinition(
        id=ep.id,
        method=ep.method,
        path=ep.path,
        sql=ep.sql,
        description=ep.description,
        is_active=bool(ep.is_active),
        is_protected=bool(ep.is_protected),
        allowed_roles=[str(r) for r in (ep.allowed_roles or [])],
        params=[ParamDef.model_validate(p) for p in (ep.params or [])],
    )


def to_response(ep: Endpoint, warnings: Optional[List[str]] = None) -> EndpointResponse:
    return EndpointResponse(
        id=ep.id,
        method=ep.method,
        path=ep.path,
        sql=ep.sql,
        description=ep.description,
        is_active=bool(ep.is_active),
        is_protected=bool(ep.is_protected),
        allowed_roles=list(ep.allowed_roles or []),
        params=list(ep.params or []),
        created_at=ep.created_at,
        updated_at=ep.updated_at,
        warnings=warnings or [],
    )


class EndpointStore:
    """Endpoint definitions backed by an AsyncSession.

    Writes always go through validate_definition first.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_active_definitions(self, method: str) -> List[EndpointDefinition]:
        result = await self.session.execute(
            select(Endpoint)
            .where(Endpoint.method == method.upper(), Endpoint.is_active.is_(True))
            .order_by(Endpoint.id)
        )
        return [to_definition(ep) for ep in result.scalars().all()]

    async def exists_method_path(self, method: str, path: str, exclude_id: Optional[int] = None) -> bool:
        query = select(Endpoint.id).where(Endpoint.method == method, Endpoint.path == path)
        if exclude_id is not None:
            query = query.where(Endpoint.id != exclude_id)
        result = await self.session.execute(query.limit(1))
        return result.scalar_one_or_none() is not None

    async def list_by_owner(self, owner_id: int) -> List[Endpoint]:
        result = await self.session.execute(
            select(Endpoint).where(Endpoint.owner_id == owner_id).order_by(Endpoint.created_at.desc(), Endpoint.id.desc())
        )
        return list(result.scalars().all())

    async def _get_owned(self, endpoint_id: int, owner_id: int) -> Endpoint:
        ep = await self.session.get(Endpoint, endpoint_id)
        if ep is None:
            raise DefinitionNotFoundError()
        if ep.owner_id != owner_id:
            raise DefinitionAccessError("Not authorized to modify this endpoint")
        return ep

    def _apply(self, ep: Endpoint, definition: EndpointDefinition):
        ep.method = definition.method
        ep.path = definition.path
        ep.sql = definition.sql
        ep.description = definition.description
        ep.is_active = definition.is_active
        ep.is_protected = definition.is_protected
        ep.allowed_roles = definition.allowed_roles or None
        ep.params = [p.to_json() for p in definition.params] or None

    async def _commit(self):
        try:
            await self.session.commit()
        except IntegrityError:
            # lost a race against a concurrent create with the same method+path
            await self.session.rollback()
            raise DefinitionValidationError([DUPLICATE_MESSAGE])

    async def create(self, payload: EndpointCreateRequest, owner_id: int):
        definition = await validate_definition(payload, self)
        ep = Endpoint(owner_id=owner_id)
        self._apply(ep, definition)
        self.session.add(ep)
        await self._commit()
        await self.session.refresh(ep)
        logger.info(f"Created endpoint {ep.id}: {ep.method} {ep.path}")
        return ep, definition.warnings

    async def update(self, endpoint_id: int, payload: EndpointCreateRequest, owner_id: int):
        ep = await self._get_owned(endpoint_id, owner_id)
        definition = await validate_definition(payload, self, existing_id=endpoint_id)
        self._apply(ep, definition)
        await self._commit()
        await self.session.refresh(ep)
        logger.info(f"Updated endpoint {ep.id}: {ep.method} {ep.path}")
        return ep, definition.warnings

    async def delete(self, endpoint_id: int, owner_id: int) -> None:
        ep = await self._get_owned(endpoint_id, owner_id)
        await self.session.delete(ep)
        await self.session.commit()
        logger.info(f"Deleted endpoint {endpoint_id}")
