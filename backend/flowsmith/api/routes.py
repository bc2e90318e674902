from fastapi import APIRouter
from .v1 import generation, quota

api_router = APIRouter(prefix="/api", tags=["workflow-generation"])

api_router.include_router(generation.router, prefix="/v1", tags=["generation"])
api_router.include_router(quota.router, prefix="/v1", tags=["quota"])

@api_router.get("/")
def read_root():
    return {"message": "Flowsmith is running"}
