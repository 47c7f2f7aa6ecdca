"""Main entry point for running the FastAPI application with auto-reload."""
import uvicorn

from contact_api.config import settings

if __name__ == "__main__":
    print(f"Starting {settings.app_name} v{settings.version}")
    print(f"Environment: {settings.environment.value}")
    print(f"Store backend: {settings.store.backend.value}")
    print(f"Auto-reload: {'Enabled' if settings.debug else 'Disabled'}")
    print("-" * 50)

    uvicorn.run(
        "contact_api.api:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=settings.debug,
        reload_dirs=["contact_api"] if settings.debug else None,
        log_level=settings.logging.level.lower(),
    )
