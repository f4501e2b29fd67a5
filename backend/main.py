from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.auth import auth_backend, fastapi_users
from core.config import Settings, settings as default_settings
from core.errors import register_error_handlers
from core.logging import configure_logging, get_logger
from db.database import Database
from db.inventory import InventoryLedger
from routers.alerts import router as alerts_router
from routers.analytics import router as analytics_router
from routers.categories import router as categories_router
from routers.dashboard import router as dashboard_router
from routers.inventory import router as inventory_router
from routers.products import router as products_router
from routers.transactions import router as transactions_router
from routers.users import router as users_router
from routers.warehouses import router as warehouses_router
from schemas.users import UserCreate, UserRead, UserUpdate

logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level, json=settings.log_json, echo_sql=settings.database_echo)
        database = Database(settings.database_url, echo=settings.database_echo)
        database.connect()
        await database.create_all()
        app.state.database = database
        app.state.ledger = InventoryLedger(database, lock_timeout=settings.lock_timeout_seconds)
        logger.info("Stockroom API started")
        try:
            yield
        finally:
            await database.dispose()
            logger.info("Stockroom API stopped")

    app = FastAPI(
        title="Stockroom API",
        description="Multi-warehouse inventory management API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    # Authentication routes (fastapi-users)
    app.include_router(fastapi_users.get_auth_router(auth_backend), prefix="/auth/jwt", tags=["auth"])
    app.include_router(fastapi_users.get_register_router(UserRead, UserCreate), prefix="/auth", tags=["auth"])
    app.include_router(fastapi_users.get_reset_password_router(), prefix="/auth", tags=["auth"])
    app.include_router(fastapi_users.get_verify_router(UserRead), prefix="/auth", tags=["auth"])
    # Admin user management first: /users/stats must not match /users/{id}
    app.include_router(users_router, prefix="/users", tags=["users"])
    app.include_router(fastapi_users.get_users_router(UserRead, UserUpdate), prefix="/users", tags=["users"])

    # Catalog routes
    app.include_router(categories_router, prefix="/categories", tags=["categories"])
    app.include_router(products_router, prefix="/products", tags=["products"])
    app.include_router(warehouses_router, prefix="/warehouses", tags=["warehouses"])

    # Inventory ledger routes
    app.include_router(inventory_router, prefix="/inventory", tags=["inventory"])
    app.include_router(transactions_router, prefix="/transactions", tags=["transactions"])

    # Reporting routes
    app.include_router(dashboard_router, prefix="/dashboard", tags=["dashboard"])
    app.include_router(alerts_router, prefix="/alerts", tags=["alerts"])
    app.include_router(analytics_router, prefix="/analytics", tags=["analytics"])

    @app.get("/health", tags=["health"])
    async def health():
        return {"status": "ok"}

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
