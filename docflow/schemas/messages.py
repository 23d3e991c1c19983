"""Processing message handed to the queue.

Field names on the wire are camelCase; the OCR consumer reads them as is.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

MESSAGE_TYPE = "UPLOAD_PROCESSING"
MESSAGE_VERSION = "1.0"

REQUIRED_FIELDS = (
    "job_id",
    "upload_id",
    "document_id",
    "s3_key",
    "document_type",
    "user_id",
    "file_name",
    "file_type",
)


class ProcessingMessage(BaseModel):
    """Everything the processing pipeline needs to pick up an upload.

    Fields are plain strings and deliberately not validated here: the
    dispatcher checks them before sending so a bad message fails fast with
    one error listing every problem.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    job_id: str = ""
    upload_id: str = ""
    document_id: str = ""
    s3_key: str = ""
    document_type: str = ""
    user_id: str = ""
    workspace_id: Optional[str] = None
    file_name: str = ""
    file_type: str = ""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    message_type: str = MESSAGE_TYPE
    version: str = MESSAGE_VERSION

    def to_payload(self) -> dict:
        """Wire representation. ``workspaceId`` is omitted when unset."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
