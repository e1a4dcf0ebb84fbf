"""
API Routes
"""
from fastapi import APIRouter

from marketplace.api.routes.admin_orders import router as admin_orders_router
from marketplace.api.routes.checkout import router as checkout_router
from marketplace.api.routes.orders import router as orders_router
from marketplace.api.routes.stores import router as stores_router
from marketplace.api.webhooks.payments import router as payments_webhook_router

router = APIRouter()

# Storefront — החנות נקבעת לפי Host
router.include_router(checkout_router, prefix="/storefront/checkout", tags=["checkout"])
router.include_router(orders_router, prefix="/storefront/orders", tags=["orders"])

# Admin — מוגן ב-X-Admin-API-Key
router.include_router(stores_router, prefix="/admin/stores", tags=["store provisioning"])
router.include_router(admin_orders_router, prefix="/admin/orders", tags=["order admin"])

# Webhooks של ספק התשלומים
router.include_router(payments_webhook_router, prefix="/webhooks", tags=["webhooks"])
