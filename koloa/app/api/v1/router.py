from fastapi import APIRouter

from koloa.app.api.v1.endpoints.health import router as health_router
from koloa.app.api.v1.endpoints.auth import router as auth_router
from koloa.app.api.v1.endpoints.inventory import router as inventory_router
from koloa.app.api.v1.endpoints.orders import router as orders_router
from koloa.app.api.v1.endpoints.users import router as users_router
from koloa.app.api.v1.endpoints.logs import router as logs_router
from koloa.app.api.v1.endpoints.export import router as export_router

router = APIRouter()
router.include_router(health_router, tags=["health"])
router.include_router(auth_router, tags=["auth"])
router.include_router(inventory_router, tags=["inventory"])
router.include_router(orders_router, tags=["orders"])
router.include_router(users_router, tags=["users"])
router.include_router(logs_router, tags=["logs"])
router.include_router(export_router, tags=["export"])
