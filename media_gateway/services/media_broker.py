from typing import Iterable, Optional

from media_gateway.config import Settings, settings
from media_gateway.models.errors import (
    DependencyUnavailableError,
    InvalidInputError,
    MisconfiguredError,
    ObjectNotFoundError,
    RateLimitedError,
    SignerError,
)
from media_gateway.models.schemas import (
    Credentials,
    DownloadGrant,
    HeaderOverrides,
    SignOperation,
    UploadGrant,
)
from media_gateway.services.access_gate import AccessGate
from media_gateway.services.rate_limiter import SlidingWindowRateLimiter
from media_gateway.utils import key_deriver
from media_gateway.utils.logger import audit_line, logger
from media_gateway.utils.s3_storage import Signer
from media_gateway.utils.validators import (
    extract_extension,
    is_extension_allowed,
    validate_content_type,
    validate_object_id,
    validate_resource_id,
)

# Canonical types for inline playback, whatever was stored with the object
INLINE_CONTENT_TYPES = {
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "mp4": "video/mp4",
    "mov": "video/quicktime",
    "webm": "video/webm",
    "ogg": "audio/ogg",
    "m4a": "audio/mp4",
    "pdf": "application/pdf",
}


class _Broker:
    def __init__(
        self,
        gate: AccessGate,
        rate_limiter: SlidingWindowRateLimiter,
        signer: Optional[Signer],
        config: Settings = settings,
    ):
        self.gate = gate
        self.rate_limiter = rate_limiter
        self.signer = signer
        self.config = config

    def _require_storage(self) -> Signer:
        if self.signer is None or not self.config.s3_bucket_name or not self.config.aws_region:
            logger.error("Storage not configured: signer, bucket or region missing")
            raise MisconfiguredError("Storage not configured")
        return self.signer


class UploadBroker(_Broker):
    """Issues presigned PUT URLs for new objects."""

    async def create_upload_url(
        self,
        resource_id: str,
        filename: Optional[str],
        content_type: Optional[str],
        credentials: Credentials,
        client_ip: str,
    ) -> UploadGrant:
        if not validate_resource_id(resource_id):
            raise InvalidInputError("Invalid resource ID")

        identity = await self.gate.authorize(resource_id, credentials, client_ip, action="UPLOAD")

        if not await self.rate_limiter.allow(client_ip):
            logger.warning(audit_line("UPLOAD_RATE_LIMITED", ip=client_ip, resource=resource_id))
            raise RateLimitedError("Too many upload requests")

        signer = self._require_storage()

        if not filename or not content_type:
            raise InvalidInputError("Missing name or type")

        extension = extract_extension(filename)
        if not extension:
            raise InvalidInputError("Invalid filename: missing extension")
        # The issued id must be one the download route will accept
        object_id = key_deriver.new_object_id(extension)
        if not validate_object_id(object_id):
            raise InvalidInputError("Invalid filename: unsupported extension")
        if not is_extension_allowed(extension, self.config.allowed_extensions):
            raise InvalidInputError("File type not allowed")

        # Blocks e.g. a .txt upload declared as text/html
        if not validate_content_type(extension, content_type):
            logger.warning(f"MIME mismatch: ext={extension}, type={content_type}, resource={resource_id}")
            raise InvalidInputError("MIME type does not match file extension")

        key = key_deriver.derive_key(resource_id, self.config.s3_key_prefix, object_id)
        disposition = key_deriver.build_content_disposition(key_deriver.ATTACHMENT, filename)

        try:
            upload_url = await signer.sign(
                SignOperation.PUT,
                key,
                self.config.upload_url_expiry_seconds,
                HeaderOverrides(content_type=content_type, content_disposition=disposition),
            )
        except SignerError as e:
            logger.error(f"Upload presign failed for resource={resource_id}: {str(e)}")
            raise DependencyUnavailableError("Failed to generate upload URL") from e

        logger.info(audit_line(
            "UPLOAD",
            author=identity.principal,
            user=credentials.user or "anonymous",
            ip=client_ip,
            resource=resource_id,
            file=key_deriver.safe_disposition_filename(filename),
            key=key,
        ))

        return UploadGrant(
            upload_url=upload_url,
            download_reference=key_deriver.build_download_reference(
                resource_id, key_deriver.object_id_from_key(key)
            ),
            disposition_header=disposition,
        )


class DownloadBroker(_Broker):
    """Issues short-lived presigned GET URLs for existing objects."""

    def _is_inline(self, extension: Optional[str]) -> bool:
        inline: Iterable[str] = self.config.inline_extensions or []
        return bool(extension) and extension.lower() in {str(e).lower() for e in inline}

    async def create_download_url(
        self,
        resource_id: str,
        object_id: Optional[str],
        credentials: Credentials,
        client_ip: str,
    ) -> DownloadGrant:
        if not validate_resource_id(resource_id):
            raise InvalidInputError("Invalid resource ID")
        # Checked before anything else touches the id: it ends up verbatim in the key
        if not validate_object_id(object_id):
            raise InvalidInputError("Invalid object ID")

        identity = await self.gate.authorize(
            resource_id, credentials, client_ip, action="DOWNLOAD", object_id=object_id
        )

        if not await self.rate_limiter.allow(client_ip):
            logger.warning(audit_line("DOWNLOAD_RATE_LIMITED", ip=client_ip, resource=resource_id, file=object_id))
            raise RateLimitedError("Too many download requests")

        signer = self._require_storage()

        key = key_deriver.reconstruct_key(resource_id, self.config.s3_key_prefix, object_id)

        extension = extract_extension(object_id)
        if self._is_inline(extension):
            disposition_type = key_deriver.INLINE
            content_type = INLINE_CONTENT_TYPES.get(extension)
        else:
            disposition_type = key_deriver.ATTACHMENT
            content_type = None
        disposition = key_deriver.build_content_disposition(disposition_type, object_id)

        try:
            url = await signer.sign(
                SignOperation.GET,
                key,
                self.config.download_url_expiry_seconds,
                HeaderOverrides(content_type=content_type, content_disposition=disposition),
            )
        except ObjectNotFoundError:
            logger.warning(audit_line("DOWNLOAD_NOT_FOUND", ip=client_ip, resource=resource_id, file=object_id))
            raise
        except SignerError as e:
            logger.error(f"Download presign failed for resource={resource_id} file={object_id}: {str(e)}")
            raise DependencyUnavailableError("Failed to generate download URL") from e

        logger.info(audit_line(
            "DOWNLOAD",
            author=identity.principal,
            user=credentials.user or "anonymous",
            ip=client_ip,
            resource=resource_id,
            file=object_id,
            disposition=disposition_type,
        ))

        return DownloadGrant(url=url, disposition=disposition_type, content_type=content_type)
