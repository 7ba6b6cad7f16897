from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from media_gateway.utils.logger import logger

router = APIRouter()

@router.get("/live")
async def liveness_check():
    logger.debug("Liveness check passed")
    return {"status": "alive"}

@router.get("/ready")
async def readiness_check(request: Request):
    # 1) Access oracle
    if request.app.state.access_gate.oracle is None:
        logger.error("Readiness failed: access oracle not configured")
        return JSONResponse(status_code=503, content={"error": "Access oracle unavailable"})

    # 2) Signer
    if request.app.state.signer is None:
        logger.error("Readiness failed: storage signer not configured")
        return JSONResponse(status_code=503, content={"error": "Storage unavailable"})

    return {"status": "ready"}
