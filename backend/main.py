"""
FastAPI application entry point for the HR Admin API.

Two surfaces share one application:
- /api/v1/superadmin/...  platform panel (super admins only)
- /api/v1/{org_slug}/...  organization portal (tenant context enforced per route)
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hr_admin import __version__
from hr_admin.api.routes import auth
from hr_admin.api.routes import health
from hr_admin.api.routes import org_access
from hr_admin.api.routes import org_records
from hr_admin.api.routes import superadmin_access
from hr_admin.api.routes import superadmin_organizations
from hr_admin.config.module_catalog import ModuleCatalogError, get_module_catalog
from hr_admin.config.settings import DEFAULT_JWT_SECRET, get_settings
from hr_admin.platform.errors import ErrorHandlerMiddleware, register_exception_handlers

# Configure structured logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    settings = get_settings()
    logger.info("Starting HR Admin API", extra={"env": settings.env, "version": __version__})

    if not settings.database_url:
        logger.error("DATABASE_URL is not set. All database-backed endpoints will return 503.")
        app.state.database_configured = False
    else:
        # Mask credentials for safe logging
        masked = settings.database_url.split("@")[-1]
        logger.info("DATABASE_URL configured", extra={"host_db": masked})
        app.state.database_configured = True

    if settings.jwt_secret == DEFAULT_JWT_SECRET:
        logger.warning("JWT_SECRET not set; using the development signing key")

    # A broken catalog file should be visible at deploy time, not on first seed
    try:
        catalog = get_module_catalog()
        logger.info(
            "Module catalog loaded",
            extra={"org_modules": len(catalog.org_modules), "platform_modules": len(catalog.platform_modules)},
        )
    except ModuleCatalogError as e:
        logger.error("Module catalog is invalid", extra={"error": str(e)})

    yield

    logger.info("Shutting down HR Admin API")


app = FastAPI(
    title="HR Admin API",
    description="Multi-tenant HR administration with role-based module permissions",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Correlation IDs and the generic 500 envelope
app.add_middleware(ErrorHandlerMiddleware)
register_exception_handlers(app)

# Include health route (bypasses authentication)
app.include_router(health.router)

# Include auth routes (login, profile, token refresh)
app.include_router(auth.router)

# Include super admin routes before the portal routes: /api/v1/{org_slug}
# would otherwise capture /api/v1/superadmin/...
app.include_router(superadmin_organizations.router)
app.include_router(superadmin_access.router)

# Include organization portal routes (tenant context + module permissions)
app.include_router(org_access.router)
app.include_router(org_records.router)


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=settings.env == "development"
    )
