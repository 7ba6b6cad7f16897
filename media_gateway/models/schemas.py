from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SignOperation(str, Enum):
    PUT = "PUT"
    GET = "GET"


class AccessStatus(str, Enum):
    GRANT = "grant"
    DENY = "deny"


class GateOutcome(str, Enum):
    GRANTED = "granted"
    DENIED = "denied"
    UNAVAILABLE = "unavailable"


class Credentials(BaseModel):
    """Whatever the caller presented; any field may be missing."""
    model_config = ConfigDict(frozen=True)

    session_id: Optional[str] = None
    token: Optional[str] = None
    bearer: Optional[str] = None
    user: Optional[str] = None

    def is_anonymous(self) -> bool:
        return not (self.session_id or self.token or self.bearer or self.user)


class AccessResult(BaseModel):
    status: AccessStatus
    principal: str = "unknown"


class CallerIdentity(BaseModel):
    credentials: Credentials
    principal: str


class HeaderOverrides(BaseModel):
    content_type: Optional[str] = None
    content_disposition: Optional[str] = None


class UploadGrant(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    upload_url: str = Field(..., alias="uploadUrl")
    download_reference: str = Field(..., alias="downloadReference")
    disposition_header: str = Field(..., alias="dispositionHeader")


class DownloadGrant(BaseModel):
    url: str
    disposition: str  # 'inline' or 'attachment'
    content_type: Optional[str] = None


class ClientConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    storage_type: str = Field("s3_presigned", alias="storageType")
    file_types: Optional[List[str]] = Field(None, alias="fileTypes")
    max_file_size: Optional[int] = Field(None, alias="maxFileSize")


class ErrorResponse(BaseModel):
    error: str
