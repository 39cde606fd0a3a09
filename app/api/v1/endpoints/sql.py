# === backend/app/api/v1/endpoints/sql.py ===
from dataclasses import asdict
from fastapi import APIRouter

from app.core.config import settings
from app.schemas.endpoint import SqlReason, SqlValidationRequest, SqlValidationResponse
from app.services.function_validator import evaluate_function_definition, parse_function_definition
from app.services.sql_sandbox import SandboxResult, evaluate

router = APIRouter()

def _to_response(result: SandboxResult, function=None) -> SqlValidationResponse:
    return SqlValidationResponse(
        valid=result.valid,
        errors=[SqlReason(code=r.code, message=r.message) for r in result.errors],
        warnings=[SqlReason(code=r.code, message=r.message) for r in result.warnings],
        function=function,
    )

@router.post("/validate", response_model=SqlValidationResponse)
async def validate_sql(payload: SqlValidationRequest):
    """Check a statement against the sandbox without running it"""
    return _to_response(evaluate(payload.sql, settings.RESERVED_TABLE_PREFIXES))

@router.post("/validate-function", response_model=SqlValidationResponse)
async def validate_function(payload: SqlValidationRequest):
    result = evaluate_function_definition(payload.sql, settings.RESERVED_TABLE_PREFIXES)
    function = None
    if result.valid:
        function = asdict(parse_function_definition(payload.sql, settings.RESERVED_TABLE_PREFIXES))
    return _to_response(result, function)
