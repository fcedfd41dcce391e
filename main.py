from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from qafzh.admin.router import router as admin_router
from qafzh.auth.router import router as auth_router
from qafzh.config import settings
from qafzh.database import Base, engine
from qafzh.exceptions import register_exception_handlers
from qafzh.listings.expiry import start_expiry_scheduler
from qafzh.listings.router import marketplace_router, products_router
from qafzh.models import account, listing  # noqa: F401
from qafzh.services.rate_limit import RateLimiter
from qafzh.utils import get_logger

logger = get_logger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting %s", settings.PROJECT_NAME)
    Base.metadata.create_all(bind=engine)

    scheduler = start_expiry_scheduler() if settings.EXPIRY_SWEEP_ENABLED else None
    try:
        yield
    finally:
        if scheduler is not None:
            scheduler.shutdown(wait=False)
        logger.info("Shutting down %s", settings.PROJECT_NAME)

def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Marketplace for used and new solar equipment",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[settings.RATE_LIMIT_DEFAULT],
        storage_uri=settings.RATE_LIMIT_STORAGE_URI,
        enabled=settings.RATE_LIMIT_ENABLED,
    )
    app.state.auth_rate_limiter = RateLimiter(settings.AUTH_RATE_LIMIT, settings.RATE_LIMIT_STORAGE_URI)
    register_exception_handlers(app)
    app.add_middleware(SlowAPIMiddleware)

    origins = [
        f"http://{settings.DOMAIN}",
        f"https://{settings.DOMAIN}",
    ]

    if settings.IS_DEV_ENV:
        origins.extend([
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ])

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )

    app.include_router(auth_router, prefix=f"{settings.API_PREFIX}/auth", tags=["auth"])
    app.include_router(products_router, prefix=f"{settings.API_PREFIX}/products", tags=["products"])
    app.include_router(marketplace_router, prefix=f"{settings.API_PREFIX}/marketplace", tags=["marketplace"])
    app.include_router(admin_router, prefix=f"{settings.API_PREFIX}/admin", tags=["admin"])

    @app.get(f"{settings.API_PREFIX}/health", tags=["health"])
    async def health():
        return {"status": "success", "message": "Server is running"}

    return app

app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="localhost", port=8000, reload=True)
