from contextlib import asynccontextmanager

from fastapi import FastAPI

from twinpki.api import provision
from twinpki.core.config import settings
from twinpki.core.logging import get_logger
from twinpki.schemas.provision import HealthResponse
from twinpki.services.bootstrap_service import BootstrapService

# Configure logging
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Stand up domain authorities if not present
    if settings.BOOTSTRAP_ON_STARTUP:
        BootstrapService().bootstrap_all()
    yield


# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Device identity provisioning service",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(provision.router)


@app.get("/health", response_model=HealthResponse)
async def health():
    """Health check endpoint"""
    return HealthResponse(status="healthy", service=settings.PROJECT_NAME)


def run() -> None:
    """Serve on the provisioning Unix-domain socket"""
    import uvicorn
    logger.info(f"Provisioning service listening on {settings.SOCKET_PATH}")
    uvicorn.run(app, uds=settings.SOCKET_PATH)


if __name__ == "__main__":
    run()
