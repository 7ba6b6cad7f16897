import asyncio
from functools import partial
from typing import Optional, Protocol

import boto3
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from media_gateway.config import Settings, settings
from media_gateway.models.errors import ObjectNotFoundError, SignerError
from media_gateway.models.schemas import HeaderOverrides, SignOperation
from media_gateway.utils.logger import logger

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


class Signer(Protocol):
    """Produces time-bounded URLs for a single storage operation."""

    async def sign(
        self,
        operation: SignOperation,
        key: str,
        expiry_seconds: int,
        overrides: Optional[HeaderOverrides] = None,
    ) -> str:
        ...


class S3Storage:
    def __init__(
        self,
        bucket_name: str,
        region: str,
        verify_exists_on_download: bool = False,
        s3_client=None,
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
    ):
        if s3_client is None:
            # Explicit keys are optional; otherwise boto3 resolves them from env / instance role
            s3_client = boto3.client(
                's3',
                aws_access_key_id=aws_access_key_id,
                aws_secret_access_key=aws_secret_access_key,
                region_name=region
            )
        self.s3_client = s3_client
        self.bucket_name = bucket_name
        self.region = region
        self.verify_exists_on_download = verify_exists_on_download

    async def sign(
        self,
        operation: SignOperation,
        key: str,
        expiry_seconds: int,
        overrides: Optional[HeaderOverrides] = None,
    ) -> str:
        """
        Generate a presigned URL for `operation` on `key`.
        Header overrides are part of the signed parameters, so the bearer
        cannot change them.
        """
        overrides = overrides or HeaderOverrides()
        params = {'Bucket': self.bucket_name, 'Key': key}

        if operation == SignOperation.PUT:
            client_method = 'put_object'
            if overrides.content_type:
                params['ContentType'] = overrides.content_type
            if overrides.content_disposition:
                params['ContentDisposition'] = overrides.content_disposition
        elif operation == SignOperation.GET:
            client_method = 'get_object'
            if overrides.content_disposition:
                params['ResponseContentDisposition'] = overrides.content_disposition
            if overrides.content_type:
                params['ResponseContentType'] = overrides.content_type
            if self.verify_exists_on_download:
                await self._ensure_exists(key)
        else:
            raise SignerError(f"Unsupported operation: {operation}")

        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(
                None,
                partial(
                    self.s3_client.generate_presigned_url,
                    client_method,
                    Params=params,
                    ExpiresIn=expiry_seconds
                )
            )
        except (NoCredentialsError, ClientError, BotoCoreError) as e:
            logger.error(f"S3 presigned URL generation failed: {str(e)}")
            raise SignerError(str(e)) from e

    async def _ensure_exists(self, key: str) -> None:
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(
                None,
                partial(self.s3_client.head_object, Bucket=self.bucket_name, Key=key)
            )
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if code in _NOT_FOUND_CODES:
                raise ObjectNotFoundError() from e
            logger.error(f"S3 head_object failed: {str(e)}")
            raise SignerError(str(e)) from e
        except (NoCredentialsError, BotoCoreError) as e:
            logger.error(f"S3 head_object failed: {str(e)}")
            raise SignerError(str(e)) from e


def build_signer(config: Settings = settings) -> Optional[S3Storage]:
    """Return an S3 signer, or None when bucket or region is not configured."""
    if not config.s3_bucket_name or not config.aws_region:
        logger.critical("S3 storage not configured: missing bucket or region")
        return None
    return S3Storage(
        bucket_name=config.s3_bucket_name,
        region=config.aws_region,
        verify_exists_on_download=config.s3_verify_exists_on_download,
        aws_access_key_id=config.aws_access_key_id,
        aws_secret_access_key=config.aws_secret_access_key,
    )
