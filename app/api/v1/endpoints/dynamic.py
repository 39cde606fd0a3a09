# === backend/app/api/v1/endpoints/dynamic.py ===
from fastapi import APIRouter, Depends, Request
from json import JSONDecodeError
from typing import Any, Dict, Optional

from app.core.config import settings
from app.core.errors import ParameterError
from app.schemas.endpoint import ExecutionResponse
from app.api.deps import get_resolver
from app.services.endpoint_resolver import EndpointResolver

router = APIRouter()

def _request_path(request: Request, full_path: str) -> str:
    # raw (still percent-encoded) path so captures are decoded exactly once
    raw_path = request.scope.get("raw_path")
    prefix = request.scope.get("root_path", "") + settings.DYNAMIC_PREFIX
    if raw_path:
        raw = raw_path.decode("latin-1")
        if raw.startswith(prefix):
            return raw[len(prefix):] or "/"
    return "/" + full_path

async def _request_body(request: Request) -> Optional[Dict[str, Any]]:
    content = await request.body()
    if not content:
        return {}
    try:
        body = await request.json()
    except (JSONDecodeError, UnicodeDecodeError):
        raise ParameterError("Request body must be valid JSON")
    if not isinstance(body, dict):
        raise ParameterError("Request body must be a JSON object")
    return body

@router.api_route("/{full_path:path}", methods=["GET", "POST", "PUT", "DELETE"],
                  response_model=ExecutionResponse)
async def dynamic_execute(full_path: str, request: Request,
                          resolver: EndpointResolver = Depends(get_resolver)):
    body = await _request_body(request) if request.method in ("POST", "PUT", "DELETE") else {}
    result = await resolver.resolve(
        request.method,
        _request_path(request, full_path),
        query=dict(request.query_params),
        body=body,
        authorization=request.headers.get("Authorization"),
    )
    return ExecutionResponse(
        rows=result.rows,
        rows_affected=result.rows_affected,
        execution_time=result.execution_time_ms,
    )
