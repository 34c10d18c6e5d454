from fastapi import APIRouter

from logitrack.api.routers import access_requests, admin_users, auth
from logitrack.api.v1.endpoints import admin_shipments, documents, shipments, timeline, tms

api_router = APIRouter()

api_router.include_router(auth.router)
api_router.include_router(access_requests.router)
api_router.include_router(admin_users.router)

api_router.include_router(shipments.router, prefix="/shipments", tags=["Logistics"])
api_router.include_router(timeline.router, prefix="/shipments", tags=["Logistics"])
api_router.include_router(admin_shipments.router, prefix="/admin/shipments", tags=["admin"])
api_router.include_router(documents.router, prefix="/documents", tags=["Documents"])
api_router.include_router(tms.router, prefix="/tms", tags=["TMS"])
