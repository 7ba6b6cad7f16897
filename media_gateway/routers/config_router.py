from fastapi import APIRouter

from media_gateway.config import settings
from media_gateway.models.schemas import ClientConfig

router = APIRouter()


@router.get("/client", response_model=ClientConfig, response_model_by_alias=True)
async def client_config():
    """Non-sensitive settings the upload UI needs before asking for a URL."""
    return ClientConfig(
        file_types=settings.allowed_extensions,
        max_file_size=settings.max_upload_size_bytes,
    )
