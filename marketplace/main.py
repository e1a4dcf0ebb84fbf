"""
Marketplace Builder - Main FastAPI Application
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from marketplace.core.config import settings
from marketplace.core.logging import setup_logging, get_logger
from marketplace.core.middleware import setup_middleware, setup_exception_handlers
from marketplace.api.routes import router as api_router
from marketplace.db.database import engine, Base
import marketplace.db.models  # noqa: F401  רישום כל המודלים ב-metadata

# Setup logging before anything else
setup_logging(
    level="DEBUG" if settings.DEBUG else "INFO",
    json_format=not settings.DEBUG,
    app_name=settings.APP_NAME
)

logger = get_logger(__name__)


def _parse_allowed_origins(raw: str) -> list[str]:
    """Parse comma-separated CORS origins string into a clean list."""
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


_OPENAPI_TAGS = [
    {"name": "checkout", "description": "יצירת הזמנה ו-session תשלום מעגלת קניות (החנות לפי Host)."},
    {"name": "orders", "description": "צפייה בהזמנה מתוך ה-storefront."},
    {"name": "store provisioning", "description": "יצירה, הגדרה, קישור דומיין ופרסום של חנויות."},
    {"name": "order admin", "description": "רשימת הזמנות של חנות לאדמין."},
    {"name": "webhooks", "description": "אירועי ספק התשלומים (Stripe)."},
]


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="פלטפורמת חנויות multi-tenant: פתרון חנות לפי hostname, checkout ו-webhooks של תשלומים.",
    openapi_tags=_OPENAPI_TAGS,
)

# Setup middleware (correlation ID, request logging)
setup_middleware(app)
setup_exception_handlers(app)

allowed_origins = _parse_allowed_origins(settings.ALLOWED_ORIGINS)

# Safe dev default to support local storefront development without opening CORS in production.
if not allowed_origins and settings.DEBUG:
    allowed_origins = [
        "http://localhost",
        "http://localhost:5003",
        "http://127.0.0.1:5003",
    ]

if allowed_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["Content-Type", "X-Correlation-ID", "X-Admin-API-Key"],
    )

app.include_router(api_router, prefix="/api")


@app.on_event("startup")
async def startup() -> None:
    """Initialize database tables on startup"""
    logger.info("Starting application", extra_data={"app_name": settings.APP_NAME})
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialized")


@app.on_event("shutdown")
async def shutdown() -> None:
    """Cleanup on shutdown"""
    logger.info("Shutting down application")
    from marketplace.core.redis_client import close_redis
    await close_redis()
    # סגירת חיבורי מסד הנתונים למניעת connection pool exhaustion
    await engine.dispose()
    logger.info("Database connections disposed")


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Liveness probe — התהליך חי ומגיב, בלי בדיקת תלויות."""
    return {"status": "healthy"}


@app.get("/health/ready", tags=["Health"])
async def readiness_check() -> JSONResponse:
    """Readiness probe — DB, Redis ומצב ה-circuit breaker של ספק התשלומים."""
    from marketplace.domain.services.health_service import check_readiness

    result = await check_readiness()
    status_code = 200 if result["status"] == "healthy" else 503
    return JSONResponse(content=result, status_code=status_code)
