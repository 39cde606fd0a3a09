# backend/app/services/param_binding.py
import math
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional

from app.core.errors import ParameterError
from app.schemas.endpoint import ParamDef

PLACEHOLDER_RE = re.compile(r"\{([a-zA-Z_][a-zA-Z0-9_]*)\}")

# where a SQL-only placeholder is read from when the author did not say
DEFAULT_PARAM_LOCATION: Dict[str, str] = {
    "GET": "query",
    "DELETE": "query",
    "POST": "body",
    "PUT": "body",
}

READ_PREFIXES = ("select", "with")


def extract_placeholders(text: str) -> List[str]:
    """Placeholder names in order of first appearance."""
    seen: List[str] = []
    for name in PLACEHOLDER_RE.findall(text):
        if name not in seen:
            seen.append(name)
    return seen


def default_location(method: str) -> str:
    return DEFAULT_PARAM_LOCATION.get(method.upper(), "query")


def _coerce_number(name: str, raw: Any):
    if isinstance(raw, bool):
        return int(raw)
    if isinstance(raw, (int, float)):
        value = raw
    else:
        text = str(raw).strip()
        try:
            value = int(text)
        except ValueError:
            try:
                value = float(text)
            except ValueError:
                raise ParameterError(f"Invalid number for parameter: {name}")
    if isinstance(value, float) and not math.isfinite(value):
        raise ParameterError(f"Invalid number for parameter: {name}")
    return value


def coerce_value(param: ParamDef, raw: Any):
    if raw is None:
        return None
    if param.type == "number":
        # an empty optional number has no numeric reading, so it binds as NULL
        if raw == "":
            return None
        return _coerce_number(param.name, raw)
    if param.type == "boolean":
        return str(raw).lower() == "true"
    return raw


def bind_parameters(params: Iterable[ParamDef],
                    path_params: Mapping[str, Any],
                    query: Mapping[str, Any],
                    body: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    sources = {"path": path_params, "query": query, "body": body or {}}
    values: Dict[str, Any] = {}
    for param in params:
        raw = sources.get(param.location, query).get(param.name)
        if param.required and (raw is None or raw == ""):
            raise ParameterError(f"Missing required parameter: {param.name}")
        values[param.name] = coerce_value(param, raw)
    return values


def encode_literal(value: Any) -> str:
    """Render a bound value as a SQL literal. Values only, never identifiers."""
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (int, float)):
        return repr(value) if isinstance(value, float) else str(value)
    return "'" + str(value).replace("'", "''") + "'"


def substitute_placeholders(sql: str, values: Mapping[str, Any]) -> str:
    return PLACEHOLDER_RE.sub(lambda m: encode_literal(values.get(m.group(1))), sql)


def is_read_statement(sql: str) -> bool:
    return sql.strip().lower().startswith(READ_PREFIXES)
