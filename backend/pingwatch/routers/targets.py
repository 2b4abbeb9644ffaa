from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from typing import List
from pingwatch.extensions import get_store
from pingwatch.schemas.target import TargetCreate, TargetResponse
from pingwatch.services.store import Store

router = APIRouter(prefix="/api/targets", tags=["Targets"])


@router.get("", response_model=List[TargetResponse])
async def list_targets(store: Store = Depends(get_store)):
    return await store.list_targets()


@router.post("/add")
async def add_target(payload: TargetCreate, store: Store = Depends(get_store)):
    if payload.uuid and await store.get_target(payload.uuid):
        raise HTTPException(status_code=409, detail="Target with this UUID already exists")
    try:
        target = await store.add_target(payload.name, payload.address, uuid=payload.uuid)
    except IntegrityError:
        raise HTTPException(status_code=409, detail="Target with this UUID already exists")
    return {"message": "Target added successfully", "uuid": target.uuid}


@router.get("/{uuid}", response_model=TargetResponse)
async def get_target(uuid: str, store: Store = Depends(get_store)):
    target = await store.get_target(uuid)
    if not target:
        raise HTTPException(status_code=404, detail="Target not found")
    return target


@router.delete("/{uuid}")
async def delete_target(uuid: str, store: Store = Depends(get_store)):
    if not await store.delete_target(uuid):
        raise HTTPException(status_code=404, detail="Target not found")
    return {"message": "Target deleted successfully"}
