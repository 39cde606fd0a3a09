# === backend/app/api/v1/endpoints/endpoints.py ===
from fastapi import APIRouter, Depends
from typing import List

from app.api.deps import get_current_user, get_endpoint_store
from app.schemas.endpoint import EndpointCreateRequest, EndpointResponse
from app.services.auth import SystemPrincipal
from app.services.endpoint_store import EndpointStore, to_response

router = APIRouter()

@router.get("", response_model=List[EndpointResponse])
async def list_endpoints(
    user: SystemPrincipal = Depends(get_current_user),
    store: EndpointStore = Depends(get_endpoint_store),
):
    endpoints = await store.list_by_owner(user.identity_id)
    return [to_response(ep) for ep in endpoints]

@router.post("", response_model=EndpointResponse, status_code=201)
async def create_endpoint(
    payload: EndpointCreateRequest,
    user: SystemPrincipal = Depends(get_current_user),
    store: EndpointStore = Depends(get_endpoint_store),
):
    ep, warnings = await store.create(payload, user.identity_id)
    return to_response(ep, warnings)

@router.put("/{endpoint_id}", response_model=EndpointResponse)
async def update_endpoint(
    endpoint_id: int,
    payload: EndpointCreateRequest,
    user: SystemPrincipal = Depends(get_current_user),
    store: EndpointStore = Depends(get_endpoint_store),
):
    ep, warnings = await store.update(endpoint_id, payload, user.identity_id)
    return to_response(ep, warnings)

@router.delete("/{endpoint_id}")
async def delete_endpoint(
    endpoint_id: int,
    user: SystemPrincipal = Depends(get_current_user),
    store: EndpointStore = Depends(get_endpoint_store),
):
    await store.delete(endpoint_id, user.identity_id)
    return {"status": "ok"}
