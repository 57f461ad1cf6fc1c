"""
ASGI entry point for the dropsync trigger API.

Usage:
    uvicorn dropsync.api.main:app --host 0.0.0.0 --port 8000
"""

from dropsync.api.app import create_app

app = create_app(configure_logging=True)


if __name__ == "__main__":
    import uvicorn

    # Bind to all interfaces for container deployments
    uvicorn.run(
        "dropsync.api.main:app",
        host="0.0.0.0",  # nosec B104
        port=8000,
        log_level="info",
    )
