# backend/app/services/endpoint_resolver.py
"""
Request-time resolution of dynamic SQL endpoints.

match -> authorize -> bind -> substitute -> execute. Failures before the
execute step never reach the database; nothing is retried.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol

from app.core.errors import ExecutionError, RouteNotFoundError, SqlEndpointError
from app.schemas.endpoint import EndpointDefinition
from app.services.auth import IdentityLookup, Principal, TokenVerifier, parse_bearer
from app.services.param_binding import bind_parameters, is_read_statement, substitute_placeholders
from app.services.path_matcher import match_path_template, route_specificity

logger = logging.getLogger(__name__)


class DefinitionSource(Protocol):
    async def find_active_definitions(self, method: str) -> List[EndpointDefinition]:
        ...


class Database(Protocol):
    async def execute_read(self, sql: str) -> List[Dict[str, Any]]:
        ...

    async def execute_write(self, sql: str) -> int:
        ...


@dataclass
class ExecutionResult:
    rows: List[Dict[str, Any]]
    rows_affected: int
    execution_time_ms: float


@dataclass
class RequestContext:
    definition: EndpointDefinition
    path_params: Dict[str, str]
    principal: Optional[Principal] = None
    values: Dict[str, Any] = field(default_factory=dict)
    started_at: float = field(default_factory=time.perf_counter)


def order_candidates(definitions: List[EndpointDefinition]) -> List[EndpointDefinition]:
    return sorted(definitions, key=lambda d: (route_specificity(d.path), d.id or 0))


class EndpointResolver:
    def __init__(self, store: DefinitionSource, verifier: TokenVerifier,
                 directory: IdentityLookup, engine: Database):
        self.store = store
        self.verifier = verifier
        self.directory = directory
        self.engine = engine

    async def match(self, method: str, path: str) -> RequestContext:
        candidates = await self.store.find_active_definitions(method.upper())
        for definition in order_candidates(candidates):
            result = match_path_template(definition.path, path)
            if result.matched:
                return RequestContext(definition=definition, path_params=result.params)
        raise RouteNotFoundError()

    async def authenticate(self, ctx: RequestContext, authorization: Optional[str]) -> None:
        if not ctx.definition.is_protected:
            return
        token = parse_bearer(authorization)
        principal = self.verifier.verify(token)
        await principal.authorize(self.directory, ctx.definition)
        ctx.principal = principal

    async def execute(self, sql: str) -> ExecutionResult:
        start = time.perf_counter()
        try:
            if is_read_statement(sql):
                rows = await self.engine.execute_read(sql)
                rows_affected = len(rows)
            else:
                rows_affected = await self.engine.execute_write(sql)
                rows = []
        except SqlEndpointError:
            raise
        except Exception as e:
            logger.error(f"Endpoint execution failed: {e}")
            raise ExecutionError(str(getattr(e, "orig", None) or e) or "Failed to execute endpoint")
        elapsed_ms = (time.perf_counter() - start) * 1000
        return ExecutionResult(rows=rows, rows_affected=rows_affected, execution_time_ms=elapsed_ms)

    async def resolve(self, method: str, path: str,
                      query: Optional[Mapping[str, Any]] = None,
                      body: Optional[Mapping[str, Any]] = None,
                      authorization: Optional[str] = None) -> ExecutionResult:
        ctx = await self.match(method, path)
        try:
            await self.authenticate(ctx, authorization)
            ctx.values = bind_parameters(ctx.definition.params, ctx.path_params, query or {}, body)
        except SqlEndpointError as e:
            logger.warning(f"{method.upper()} {path} denied: {e.message}")
            raise
        sql = substitute_placeholders(ctx.definition.sql, ctx.values)
        return await self.execute(sql)
