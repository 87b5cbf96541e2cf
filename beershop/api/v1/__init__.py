"""API v1 routes. Every state-changing call under /v1 carries the CSRF header."""

from fastapi import APIRouter

from beershop.api.v1 import admin, order, system

router = APIRouter()
router.include_router(order.router, tags=["order"])
router.include_router(admin.router, prefix="/admin", tags=["admin"])
router.include_router(system.router, tags=["system"])
