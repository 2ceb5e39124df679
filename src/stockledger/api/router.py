from fastapi import APIRouter

from .routes import dashboard, operations, products, reporting, warehouses

api_router = APIRouter()
api_router.include_router(products.router)
api_router.include_router(warehouses.router)
api_router.include_router(operations.router)
api_router.include_router(reporting.router)
api_router.include_router(dashboard.router)
