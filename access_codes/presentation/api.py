from fastapi import APIRouter

from access_codes.presentation.routers.v1.codes import router as codes_router

api = APIRouter()

# Add all v1 routers here
routers = (codes_router,)
for router in routers:
    api.include_router(router, prefix="/v1")
