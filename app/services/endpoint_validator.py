# backend/app/services/endpoint_validator.py
"""
Definition-time validation and compilation of SQL endpoints.

Every check runs and every violation is reported together; nothing is
silently corrected. The compiled definition carries the full parameter list
so the request path never has to infer anything.
"""
import logging
import re
from typing import List, Optional, Protocol, Sequence

from app.core.config import settings
from app.core.errors import DefinitionValidationError
from app.schemas.endpoint import EndpointCreateRequest, EndpointDefinition, ParamDef
from app.services import sql_sandbox
from app.services.param_binding import PLACEHOLDER_RE, default_location, extract_placeholders
from app.services.path_matcher import PLACEHOLDER_SEGMENT_RE, split_path

logger = logging.getLogger(__name__)

SUPPORTED_METHODS = ("GET", "POST", "PUT", "DELETE")

IDENTIFIER_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
IDENTIFIER_CONTEXT_RE = re.compile(
    r"\b(?:from|join|update|into|delete\s+from|truncate|alter\s+table|create\s+table)\s*[\"`]?"
    r"\{([a-zA-Z_][a-zA-Z0-9_]*)\}",
    re.IGNORECASE,
)


class DefinitionLookup(Protocol):
    async def exists_method_path(self, method: str, path: str, exclude_id: Optional[int] = None) -> bool:
        ...


def _check_method(raw: str, errors: List[str]) -> str:
    method = (raw or "").strip().upper()
    if method not in SUPPORTED_METHODS:
        errors.append("Invalid HTTP method")
    return method


def _check_path(raw: str, errors: List[str], reserved: Sequence[str]) -> str:
    path = (raw or "").strip()
    if not path.startswith("/"):
        errors.append('Path must start with "/"')
    if " " in path:
        errors.append("Path must not contain spaces")

    segments = split_path(path)
    if segments and segments[0].lower() in {r.strip("/").lower() for r in reserved}:
        errors.append(f'Path "/{segments[0]}" is reserved')

    names = []
    for seg in segments:
        if "{" not in seg and "}" not in seg:
            continue
        m = PLACEHOLDER_SEGMENT_RE.match(seg)
        if not m:
            errors.append(f'Invalid path segment "{seg}": placeholders must be a whole segment like {{name}}')
            continue
        if m.group(1) in names:
            errors.append(f"Duplicate path parameter: {m.group(1)}")
        names.append(m.group(1))
    return path


def _check_sql(raw: str, errors: List[str], warnings: List[str]) -> str:
    sql = (raw or "").strip()
    if not sql:
        errors.append("SQL is required")
        return sql

    result = sql_sandbox.evaluate(sql, settings.RESERVED_TABLE_PREFIXES)
    if not result.valid:
        errors.append(f"Invalid SQL: {'; '.join(result.error_messages)}")
    warnings.extend(result.warning_messages)

    without_placeholders = re.sub(r"[\"'`;]", "", PLACEHOLDER_RE.sub("", sql)).strip()
    if not re.search(r"[a-zA-Z]", without_placeholders):
        errors.append("SQL must include some static text and cannot be only placeholders.")

    hits = []
    for name in IDENTIFIER_CONTEXT_RE.findall(sql):
        if name not in hits:
            hits.append(name)
    if hits:
        errors.append(
            f"Unsafe identifier interpolation detected for parameter(s): {', '.join(hits)}. "
            "Using parameters as table/column names is not supported. "
            "Use fixed identifiers or implement a whitelist server-side."
        )
    return sql


def merge_params(method: str,
                 provided: Sequence[ParamDef],
                 path_names: Sequence[str],
                 sql_names: Sequence[str],
                 errors: List[str]) -> List[ParamDef]:
    params: List[ParamDef] = []
    defined = set()
    for p in provided:
        if not IDENTIFIER_RE.match(p.name or ""):
            errors.append(f"Invalid parameter name: {p.name!r}")
            continue
        if p.name in defined:
            errors.append(f"Duplicate parameter definition: {p.name}")
            continue
        if p.name in path_names and (p.location != "path" or not p.required):
            errors.append(f"Path parameter '{p.name}' must be located in path and required")
        defined.add(p.name)
        params.append(p)

    for name in path_names:
        if name not in defined:
            params.append(ParamDef(name=name, location="path", type="string", required=True))
            defined.add(name)

    location = default_location(method)
    for name in sql_names:
        if name not in defined:
            params.append(ParamDef(name=name, location=location, type="string", required=True))
            defined.add(name)
    return params


async def validate_definition(payload: EndpointCreateRequest,
                              store: DefinitionLookup,
                              existing_id: Optional[int] = None) -> EndpointDefinition:
    errors: List[str] = []
    warnings: List[str] = []

    method = _check_method(payload.method, errors)
    path = _check_path(payload.path, errors, settings.RESERVED_PATH_PREFIXES)
    sql = _check_sql(payload.sql, errors, warnings)

    path_names = extract_placeholders(path)
    sql_names = extract_placeholders(sql)
    params = merge_params(method, payload.params, path_names, sql_names, errors)

    if method in SUPPORTED_METHODS and path:
        if await store.exists_method_path(method, path, exclude_id=existing_id):
            errors.append("Endpoint with same method and path already exists")

    if errors:
        logger.info(f"Rejected endpoint definition {method} {path}: {errors}")
        raise DefinitionValidationError(errors)

    return EndpointDefinition(
        id=existing_id,
        method=method,
        path=path,
        sql=sql,
        description=payload.description or None,
        is_active=payload.is_active,
        is_protected=payload.is_protected,
        allowed_roles=list(payload.allowed_roles or []),
        params=params,
        warnings=warnings,
    )
