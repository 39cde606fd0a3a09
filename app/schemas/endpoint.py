# === backend/app/schemas/endpoint.py ===
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime

HttpMethod = Literal["GET", "POST", "PUT", "DELETE"]
ParamLocation = Literal["path", "query", "body"]
ParamType = Literal["string", "number", "boolean"]

class ParamDef(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    location: ParamLocation = Field(default="query", alias="in")
    type: ParamType = "string"
    required: bool = False

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)

class EndpointCreateRequest(BaseModel):
    method: str
    path: str
    sql: str
    description: Optional[str] = None
    is_active: bool = True
    is_protected: bool = False
    allowed_roles: Optional[List[str]] = None
    params: List[ParamDef] = []

class EndpointDefinition(BaseModel):
    """Compiled, persist-ready definition produced by the validator."""
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    method: HttpMethod
    path: str
    sql: str
    description: Optional[str] = None
    is_active: bool = True
    is_protected: bool = False
    allowed_roles: List[str] = []
    params: List[ParamDef] = []
    warnings: List[str] = []

class EndpointResponse(BaseModel):
    id: int
    method: str
    path: str
    sql: str
    description: Optional[str]
    is_active: bool
    is_protected: bool
    allowed_roles: List[str]
    params: List[Dict[str, Any]]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    warnings: List[str] = []

class ExecutionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: str = "success"
    rows: List[Dict[str, Any]]
    rows_affected: int = Field(alias="rowsAffected")
    execution_time: float = Field(alias="executionTime")

class SqlValidationRequest(BaseModel):
    sql: str

class SqlReason(BaseModel):
    code: str
    message: str

class SqlValidationResponse(BaseModel):
    valid: bool
    errors: List[SqlReason]
    warnings: List[SqlReason]
    function: Optional[Dict[str, Any]] = None
