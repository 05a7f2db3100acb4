"""Main FastAPI application module.

This module initializes the FastAPI application and registers all route handlers.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.database import init_db
from core.logging_config import setup_logging
from config import (
    API_HOST,
    API_PORT,
    APP_NAME,
    APP_VERSION,
    CORS_ALLOWED_ORIGINS,
)
from api.routes import (
    admin_users,
    auth,
    catalog,
    grants,
    purchase_requests,
    resource_purchases,
    users,
)

APP_DESCRIPTION = "Accounts, sessions and purchase request workflow for the course portal."

# Setup logging
setup_logging()

# Initialize FastAPI application
app = FastAPI(
    title=f"{APP_NAME} API",
    description=APP_DESCRIPTION,
    version=APP_VERSION,
)

# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register route handlers
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(catalog.router)
app.include_router(grants.router)
app.include_router(purchase_requests.router)
app.include_router(purchase_requests.admin_router)
app.include_router(resource_purchases.router)
app.include_router(resource_purchases.admin_router)
app.include_router(admin_users.router)


@app.on_event("startup")
def startup_tasks() -> None:
    """Create missing tables."""
    init_db()


@app.get("/", summary="API root", tags=["Info"])
def root() -> dict:
    """API root, returns API information and documentation links.

    Returns:
        Dictionary with API information and documentation links.
    """
    return {
        "name": f"{APP_NAME} API",
        "version": APP_VERSION,
        "description": APP_DESCRIPTION,
        "docs": {
            "swagger": "/docs",
            "redoc": "/redoc",
        },
        "health": "/api/health",
    }


@app.get("/api/health", summary="Health check", tags=["Health"])
def health() -> dict:
    """Health check endpoint.

    Returns:
        Dictionary with status "ok".
    """
    return {"status": "ok"}


# --- Startup code for direct execution ---
if __name__ == "__main__":
    import uvicorn

    server_url = f"http://{API_HOST}:{API_PORT}"
    print(f"Starting {APP_NAME} API server")
    print(f"Service address: {server_url}")
    print(f"API docs: {server_url}/docs")
    print()

    uvicorn.run("app:app", host=API_HOST, port=API_PORT, reload=True)
