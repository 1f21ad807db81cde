from fastapi import APIRouter, Depends, HTTPException, status
from typing import List
from pulsecare.services.engine import DonorEngine, get_engine

router = APIRouter()

@router.get("/divisions", response_model=List[str])
async def list_divisions(engine: DonorEngine = Depends(get_engine)):
    return engine.index.divisions()

@router.get("/divisions/{division}/districts", response_model=List[str])
async def list_districts(division: str, engine: DonorEngine = Depends(get_engine)):
    if engine.index.canonical_division(division) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Division not found"
        )
    return engine.index.districts(division)

@router.get("/districts/{district}/upazilas", response_model=List[str])
async def list_upazilas(district: str, engine: DonorEngine = Depends(get_engine)):
    if engine.index.canonical_district(district) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="District not found"
        )
    return engine.index.upazilas(district)
