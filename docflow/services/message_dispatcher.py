"""Processing message dispatch to SQS.

The dispatcher validates a message completely before touching the network,
makes exactly one send attempt bounded by a client-side timeout, and turns
any failure into a ``QueueDispatchError`` that says whether resending the
identical message may succeed. Retrying is the caller's decision.
"""

import asyncio
import json
import re
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import (
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    NoCredentialsError,
    PartialCredentialsError,
    ReadTimeoutError,
)
from pydantic.alias_generators import to_camel

from docflow.core.config import AwsSettings
from docflow.core.exceptions import ConfigurationError, QueueDispatchError, ValidationError
from docflow.schemas.messages import REQUIRED_FIELDS, ProcessingMessage
from docflow.schemas.uploads import S3_KEY_PATTERN
from docflow.utils.logging import get_logger
from docflow.utils.structured_errors import StructuredErrorReporter, get_error_message

LOGGER = get_logger(__name__)

# SQS hard limit for a message body
MAX_MESSAGE_BYTES = 262144

RETRYABLE_SQS_ERROR_CODES = {
    "ServiceUnavailable",
    "InternalError",
    "RequestTimeout",
    "ThrottlingException",
    "ProvisionedThroughputExceededException",
}

CREDENTIAL_ERROR_CODES = {
    "SignatureDoesNotMatch",
    "InvalidClientTokenId",
    "UnrecognizedClientException",
    "AccessDenied",
    "AccessDeniedException",
    "ExpiredToken",
}

NETWORK_ERRORS = (
    EndpointConnectionError,
    ConnectTimeoutError,
    ReadTimeoutError,
    ConnectionClosedError,
    ConnectionError,
    asyncio.TimeoutError,
    TimeoutError,
)

_S3_KEY_RE = re.compile(S3_KEY_PATTERN)


def build_sqs_client(aws_settings: AwsSettings):
    """Create an SQS client that never retries on its own."""
    client_kwargs: Dict[str, Any] = {
        "region_name": aws_settings.region,
        "config": Config(
            retries={"max_attempts": 1, "mode": "standard"},
            connect_timeout=aws_settings.connect_timeout_seconds,
            read_timeout=aws_settings.sqs_send_timeout_seconds,
        ),
    }
    if aws_settings.endpoint_url:
        client_kwargs["endpoint_url"] = aws_settings.endpoint_url
    return boto3.client("sqs", **client_kwargs)


def classify_send_error(error: BaseException) -> QueueDispatchError:
    """Map a send failure to a ``QueueDispatchError``.

    Throttling and service-side outages and network problems are retryable;
    credential problems are not; anything unrecognised is treated as not
    retryable.
    """
    message = get_error_message(error)

    if isinstance(error, ClientError):
        aws_code = error.response.get("Error", {}).get("Code") or "UNKNOWN_SQS_ERROR"
        if aws_code in CREDENTIAL_ERROR_CODES:
            return QueueDispatchError(
                f"AWS credentials were rejected: {message}",
                code="CREDENTIALS_ERROR",
                error_type="AUTHENTICATION_EXCEPTION",
                retryable=False,
                original_error=error,
            )
        return QueueDispatchError(
            message,
            code=aws_code,
            error_type="SQS_SERVICE_EXCEPTION",
            retryable=aws_code in RETRYABLE_SQS_ERROR_CODES,
            original_error=error,
        )

    if isinstance(error, (NoCredentialsError, PartialCredentialsError)):
        return QueueDispatchError(
            f"AWS credentials are missing or incomplete: {message}",
            code="CREDENTIALS_ERROR",
            error_type="AUTHENTICATION_EXCEPTION",
            retryable=False,
            original_error=error,
        )

    if isinstance(error, NETWORK_ERRORS):
        return QueueDispatchError(
            f"Network error while sending to SQS: {message}",
            code="NETWORK_ERROR",
            error_type="NETWORK_EXCEPTION",
            retryable=True,
            original_error=error,
        )

    return QueueDispatchError(
        message,
        code="GENERIC_ERROR",
        error_type="GENERIC_EXCEPTION",
        retryable=False,
        original_error=error,
    )


class MessageDispatcher:
    """Sends processing messages to the configured SQS queue."""

    def __init__(
        self,
        sqs_client: Any,
        queue_url: Optional[str] = None,
        send_timeout_seconds: float = 10.0,
        reporter: Optional[StructuredErrorReporter] = None,
    ):
        """Initialize the dispatcher.

        Args:
            sqs_client: boto3 SQS client
            queue_url: Queue for processing messages; ``None`` disables sending
            send_timeout_seconds: Upper bound for a single send
            reporter: Builds the structured error logged on failure
        """
        self._client = sqs_client
        self.queue_url = queue_url
        self.send_timeout_seconds = send_timeout_seconds
        self._reporter = reporter or StructuredErrorReporter()

        if not queue_url:
            LOGGER.warning("SQS queue URL is not configured; processing messages will be rejected")

    @classmethod
    def from_settings(cls, aws_settings: AwsSettings) -> "MessageDispatcher":
        return cls(
            build_sqs_client(aws_settings),
            queue_url=aws_settings.sqs_queue_url,
            send_timeout_seconds=aws_settings.sqs_send_timeout_seconds,
        )

    async def send(self, queue_url: str, payload: Dict[str, Any]) -> str:
        """Send one JSON message and return the queue's message id.

        Raises:
            ConfigurationError: If no queue URL is given
            ValidationError: If the serialized payload exceeds the SQS size limit
            QueueDispatchError: If the send attempt failed or timed out
        """
        if not queue_url:
            raise ConfigurationError("SQS queue URL is not configured")

        body = json.dumps(payload, separators=(",", ":"))
        size = len(body.encode("utf-8"))
        if size > MAX_MESSAGE_BYTES:
            raise ValidationError(
                f"Message size {size} bytes exceeds SQS limit of {MAX_MESSAGE_BYTES} bytes",
                code="MESSAGE_TOO_LARGE",
            )

        attributes = {
            name: {"DataType": "String", "StringValue": str(payload[name])}
            for name in ("messageType", "documentType")
            if payload.get(name)
        }

        try:
            response = await asyncio.wait_for(
                asyncio.to_thread(
                    self._client.send_message,
                    QueueUrl=queue_url,
                    MessageBody=body,
                    MessageAttributes=attributes,
                ),
                timeout=self.send_timeout_seconds,
            )
        except Exception as e:
            error = classify_send_error(e)
            record = self._reporter.build(
                code=error.code,
                message=error.message,
                context={
                    "error_type": error.error_type,
                    "retryable": error.retryable,
                    "job_id": payload.get("jobId"),
                    "message_bytes": size,
                },
                operation="sqs.send_message",
                actor_id=payload.get("userId"),
                tenant_id=payload.get("workspaceId") or payload.get("userId"),
            )
            LOGGER.error(f"SQS send message failed: {error.message}", extra=record.to_log_extra())
            raise error from e

        message_id = response.get("MessageId")
        if not message_id:
            raise QueueDispatchError(
                "SQS accepted the message but returned no message id",
                code="GENERIC_ERROR",
                error_type="GENERIC_EXCEPTION",
                retryable=False,
            )

        LOGGER.info(
            f"Message sent to SQS: {message_id}",
            extra={"job_id": payload.get("jobId"), "message_bytes": size},
        )
        return message_id

    def validate_message(self, message: ProcessingMessage) -> Dict[str, Any]:
        """Check a processing message and return its wire payload.

        Raises:
            ValidationError: Listing every missing field, or describing the bad key
        """
        missing = [
            field
            for field in REQUIRED_FIELDS
            if not str(getattr(message, field) or "").strip()
        ]
        if missing:
            names = ", ".join(to_camel(field) for field in missing)
            raise ValidationError(
                f"Missing required fields in processing message: {names}",
                code="INVALID_PROCESSING_MESSAGE",
            )

        if not _S3_KEY_RE.fullmatch(message.s3_key):
            raise ValidationError(
                f"Invalid S3 key format: {message.s3_key}",
                code="INVALID_PROCESSING_MESSAGE",
            )

        return message.to_payload()

    async def send_processing_message(self, message: ProcessingMessage) -> str:
        """Validate and send a processing message to the configured queue."""
        if not self.queue_url:
            raise ConfigurationError("SQS queue URL is not configured")

        payload = self.validate_message(message)
        return await self.send(self.queue_url, payload)
