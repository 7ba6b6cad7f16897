from typing import Optional

from fastapi import APIRouter, Query, Request
from fastapi.responses import RedirectResponse

from media_gateway.config import settings
from media_gateway.models.schemas import Credentials, ErrorResponse, UploadGrant
from media_gateway.services.media_broker import DownloadBroker, UploadBroker

router = APIRouter(tags=["Media"])

ERROR_RESPONSES = {
    status: {"model": ErrorResponse} for status in (400, 401, 403, 404, 429, 500)
}


def client_ip_from(request: Request) -> str:
    """Caller key for rate limiting and audit."""
    if settings.trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            first = forwarded.split(",")[0].strip()
            if first:
                return first
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def credentials_from(request: Request) -> Credentials:
    """Collect whatever credentials the caller presented. Values are never logged."""
    bearer = None
    authorization = request.headers.get("authorization", "")
    if authorization.lower().startswith("bearer "):
        bearer = authorization[7:].strip() or None

    user = getattr(request.state, "user", None)
    if user is not None and not isinstance(user, str):
        user = getattr(user, "username", None) or str(user)

    return Credentials(
        session_id=request.cookies.get("sessionID"),
        token=request.cookies.get("token"),
        bearer=bearer,
        user=user,
    )


@router.get(
    "/resource/{resource_id}/upload-url",
    response_model=UploadGrant,
    response_model_by_alias=True,
    responses={k: v for k, v in ERROR_RESPONSES.items() if k != 404},
)
async def get_upload_url(
    request: Request,
    resource_id: str,
    name: Optional[str] = Query(None),
    mime_type: Optional[str] = Query(None, alias="type"),
):
    """
    Issue a presigned PUT URL for a new object under `resource_id`.
    The response also carries the relative download reference to store
    alongside the document and the Content-Disposition the PUT must send.
    """
    broker: UploadBroker = request.app.state.upload_broker
    return await broker.create_upload_url(
        resource_id,
        filename=name,
        content_type=mime_type,
        credentials=credentials_from(request),
        client_ip=client_ip_from(request),
    )


@router.get(
    "/resource/{resource_id}/download",
    responses=ERROR_RESPONSES,
)
async def download(
    request: Request,
    resource_id: str,
    object_id: Optional[str] = Query(None, alias="object"),
):
    """
    Redirect to a short-lived presigned GET URL for an existing object.
    Expires after 5 minutes by default.
    """
    broker: DownloadBroker = request.app.state.download_broker
    grant = await broker.create_download_url(
        resource_id,
        object_id=object_id,
        credentials=credentials_from(request),
        client_ip=client_ip_from(request),
    )
    return RedirectResponse(url=grant.url, status_code=302)
