"""Storage service for presigned S3 upload URLs."""

import os
import re
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from docflow.core.config import AwsSettings, UploadSettings
from docflow.core.exceptions import FatalInternalError, ValidationError
from docflow.schemas.uploads import PresignedUrlResponse
from docflow.utils.logging import get_logger

LOGGER = get_logger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


def format_file_size(size: int) -> str:
    """Human readable size, e.g. ``50 MB``."""
    for unit in ("B", "KB", "MB"):
        if size < 1024:
            return f"{size:g} {unit}"
        size /= 1024
    return f"{size:g} GB"


def build_s3_key(file_name: str, user_id: uuid.UUID, workspace_id: Optional[uuid.UUID] = None) -> str:
    """Build ``documents/<user>/<workspace|personal>/<name>-<uuid>.<ext>``.

    The file name is reduced to characters that are safe in a key; the
    random suffix keeps keys for identically named files apart.
    """
    sanitized = _UNSAFE_KEY_CHARS.sub("_", file_name)
    base, ext = os.path.splitext(sanitized)
    folder = str(workspace_id) if workspace_id else "personal"
    return f"documents/{user_id}/{folder}/{base}-{uuid.uuid4()}{ext}"


class StorageService:
    """Issues presigned PUT URLs so clients upload straight to S3."""

    def __init__(self, s3_client: Any, bucket_name: str, upload_settings: UploadSettings):
        self._client = s3_client
        self.bucket_name = bucket_name
        self.max_file_size = upload_settings.max_file_size
        self.expires_in = upload_settings.url_expires_in
        self.allowed_file_types = list(upload_settings.allowed_file_types)

    @classmethod
    def from_settings(cls, aws_settings: AwsSettings, upload_settings: UploadSettings) -> "StorageService":
        client_kwargs: Dict[str, Any] = {"region_name": aws_settings.region}
        if aws_settings.endpoint_url:
            client_kwargs["endpoint_url"] = aws_settings.endpoint_url
        return cls(boto3.client("s3", **client_kwargs), aws_settings.s3_bucket_name, upload_settings)

    def validate_upload(self, file_type: str, file_size: Optional[int] = None) -> None:
        """Reject MIME types outside the allow-list and files over the size limit.

        Raises:
            ValidationError: If the upload would not be accepted
        """
        if file_type not in self.allowed_file_types:
            raise ValidationError(
                f"File type '{file_type}' not allowed. Supported types: {', '.join(self.allowed_file_types)}",
                code="FILE_TYPE_NOT_ALLOWED",
            )
        if file_size is not None and file_size > self.max_file_size:
            raise ValidationError(
                f"File size exceeds maximum allowed size of {format_file_size(self.max_file_size)}",
                code="FILE_TOO_LARGE",
            )

    def generate_presigned_url(
        self,
        user_id: uuid.UUID,
        file_name: str,
        file_type: str,
        file_size: Optional[int] = None,
        workspace_id: Optional[uuid.UUID] = None,
    ) -> PresignedUrlResponse:
        """Generate a presigned PUT URL for a new upload.

        Args:
            user_id: Uploading user
            file_name: Original file name, used to derive the key
            file_type: MIME type the client will send
            file_size: Optional size hint in bytes
            workspace_id: Workspace the file is uploaded to, if any

        Returns:
            PresignedUrlResponse: URL, key and expiry

        Raises:
            ValidationError: If the type or size is not accepted
            FatalInternalError: If the URL could not be signed
        """
        self.validate_upload(file_type, file_size)

        key = build_s3_key(file_name, user_id, workspace_id)
        metadata = {
            "userId": str(user_id),
            "originalFileName": file_name,
            "uploadedAt": datetime.now(timezone.utc).isoformat(),
        }
        if workspace_id:
            metadata["workspaceId"] = str(workspace_id)
        if file_size:
            metadata["fileSize"] = str(file_size)

        try:
            url = self._client.generate_presigned_url(
                "put_object",
                Params={
                    "Bucket": self.bucket_name,
                    "Key": key,
                    "ContentType": file_type,
                    "Metadata": metadata,
                },
                ExpiresIn=self.expires_in,
            )
        except (BotoCoreError, ClientError) as e:
            LOGGER.error(f"Failed to generate presigned URL: {str(e)}", exc_info=True)
            raise FatalInternalError("Failed to generate upload URL", original_error=e) from e

        LOGGER.info(f"Generated presigned URL for user {user_id}, file: {file_name}")
        return PresignedUrlResponse(
            url=url,
            key=key,
            expires_in=self.expires_in,
            max_file_size=self.max_file_size,
        )
