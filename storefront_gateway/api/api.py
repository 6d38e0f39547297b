from fastapi import APIRouter

from storefront_gateway.api.endpoints import proxy, session, status

api_router = APIRouter(prefix="/api")
api_router.include_router(proxy.router, tags=["proxy"])
api_router.include_router(session.router, prefix="/session", tags=["session"])
api_router.include_router(status.router, prefix="/backend-status", tags=["backend-status"])
