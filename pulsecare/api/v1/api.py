from fastapi import APIRouter
from pulsecare.api.v1.endpoints import engine, geography

api_router = APIRouter()

api_router.include_router(engine.router, prefix="/engine", tags=["engine"])
api_router.include_router(geography.router, prefix="/geography", tags=["geography"])
