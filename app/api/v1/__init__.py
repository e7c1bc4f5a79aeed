from fastapi import APIRouter

from app.api.v1.routers import (
    accountant,
    accountants,
    audit_logs,
    auth,
    disbursements,
    health,
    hierarchy,
    scope,
)

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(auth.router)
api_router.include_router(accountant.router)
api_router.include_router(disbursements.router)
api_router.include_router(hierarchy.router)
api_router.include_router(accountants.router)
api_router.include_router(scope.router)
api_router.include_router(audit_logs.router)

__all__ = ["api_router"]
