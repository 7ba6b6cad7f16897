from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from media_gateway.config import settings
from media_gateway.models.errors import GatewayError
from media_gateway.routers import config_router, health_router, media_router
from media_gateway.services.access_gate import AccessGate
from media_gateway.services.access_oracle import build_access_oracle
from media_gateway.services.media_broker import DownloadBroker, UploadBroker
from media_gateway.services.rate_limiter import build_rate_limiter
from media_gateway.utils.logger import logger
from media_gateway.utils.s3_storage import build_signer


def init_gateway(app: FastAPI, oracle=None, signer=None, rate_limiter=None) -> None:
    """Wire the limiter, access gate, signer and brokers onto app.state"""
    rate_limiter = rate_limiter or build_rate_limiter()
    gate = AccessGate(oracle, reject_anonymous=settings.reject_anonymous)

    app.state.rate_limiter = rate_limiter
    app.state.access_oracle = oracle
    app.state.access_gate = gate
    app.state.signer = signer
    app.state.upload_broker = UploadBroker(gate, rate_limiter, signer, settings)
    app.state.download_broker = DownloadBroker(gate, rate_limiter, signer, settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events for the application"""
    # Startup logic
    logger.info("Initializing media gateway...")
    oracle = None
    signer = None
    try:
        oracle = build_access_oracle(settings)
        signer = build_signer(settings)
    except Exception as e:
        # Requests fail closed if a collaborator could not be built
        logger.critical(f"Failed to initialize collaborators: {str(e)}")
    init_gateway(app, oracle=oracle, signer=signer)
    rate_limiter = app.state.rate_limiter
    rate_limiter.start()
    logger.info("Media gateway initialized")

    yield  # Run application

    # Shutdown logic
    try:
        logger.info("Shutting down media gateway...")
        await rate_limiter.stop()
        if oracle is not None:
            await oracle.close()
        logger.info("Media gateway shut down successfully")
    except Exception as e:
        logger.error(f"Error during shutdown: {str(e)}")


app = FastAPI(title="Secure Media Access Gateway", lifespan=lifespan)


@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": "Invalid request"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.url.path}: {str(exc)}")
    return JSONResponse(status_code=500, content={"error": "Internal error"})


app.include_router(media_router.router)
app.include_router(health_router.router, prefix="/health", tags=["Health"])
app.include_router(config_router.router, prefix="/config", tags=["Config"])
