"""Unit tests for processing message dispatch."""

import json
import time
from unittest.mock import MagicMock

import boto3
import pytest
from botocore.exceptions import ClientError, EndpointConnectionError, NoCredentialsError
from moto import mock_aws

from docflow.core.exceptions import ConfigurationError, QueueDispatchError, ValidationError
from docflow.schemas.messages import ProcessingMessage
from docflow.services.message_dispatcher import MessageDispatcher, classify_send_error

REGION = "eu-west-1"


def make_message(**overrides) -> ProcessingMessage:
    fields = dict(
        job_id="5b0e7c1c-5c5d-4a8e-9b8a-2f1a0b6c7d01",
        upload_id="0d6a4f0e-0a44-4c77-8c3e-7f0f2d2a9e02",
        document_id="9a3b5c2d-1e4f-4a6b-8c7d-0e1f2a3b4c03",
        s3_key="documents/user-1/personal/invoice-1234.pdf",
        document_type="INVOICE",
        user_id="3c2b1a09-8f7e-4d6c-b5a4-93827161e504",
        file_name="invoice.pdf",
        file_type="application/pdf",
    )
    fields.update(overrides)
    return ProcessingMessage(**fields)


def client_error(code: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": f"{code} happened"}}, "SendMessage")


@pytest.mark.asyncio
async def test_send_processing_message_reaches_queue():
    with mock_aws():
        sqs = boto3.client("sqs", region_name=REGION)
        queue_url = sqs.create_queue(QueueName="docflow-processing")["QueueUrl"]
        dispatcher = MessageDispatcher(sqs, queue_url=queue_url)

        message_id = await dispatcher.send_processing_message(make_message(workspace_id=None))

        received = sqs.receive_message(QueueUrl=queue_url, MessageAttributeNames=["All"])["Messages"]
        assert len(received) == 1
        assert received[0]["MessageId"] == message_id
        body = json.loads(received[0]["Body"])
        assert body["jobId"] == "5b0e7c1c-5c5d-4a8e-9b8a-2f1a0b6c7d01"
        assert body["s3Key"] == "documents/user-1/personal/invoice-1234.pdf"
        assert body["messageType"] == "UPLOAD_PROCESSING"
        assert body["version"] == "1.0"
        assert "workspaceId" not in body
        attributes = received[0]["MessageAttributes"]
        assert attributes["documentType"]["StringValue"] == "INVOICE"
        assert attributes["messageType"]["StringValue"] == "UPLOAD_PROCESSING"


@pytest.mark.asyncio
async def test_missing_fields_listed_without_network_call():
    client = MagicMock()
    dispatcher = MessageDispatcher(client, queue_url="https://sqs.example/queue")

    with pytest.raises(ValidationError) as exc_info:
        await dispatcher.send_processing_message(make_message(job_id="", file_type="  "))

    assert exc_info.value.message == "Missing required fields in processing message: jobId, fileType"
    client.send_message.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "s3_key",
    ["documents/bad key?.pdf", "documents/a/invoice.pdf\n"],
)
async def test_invalid_key_rejected_without_network_call(s3_key):
    client = MagicMock()
    dispatcher = MessageDispatcher(client, queue_url="https://sqs.example/queue")

    with pytest.raises(ValidationError) as exc_info:
        await dispatcher.send_processing_message(make_message(s3_key=s3_key))

    assert exc_info.value.message.startswith("Invalid S3 key format")
    client.send_message.assert_not_called()


@pytest.mark.asyncio
async def test_unconfigured_queue_rejected():
    client = MagicMock()
    dispatcher = MessageDispatcher(client, queue_url=None)

    with pytest.raises(ConfigurationError):
        await dispatcher.send_processing_message(make_message())
    client.send_message.assert_not_called()


@pytest.mark.asyncio
async def test_oversized_message_rejected():
    client = MagicMock()
    dispatcher = MessageDispatcher(client, queue_url="https://sqs.example/queue")

    with pytest.raises(ValidationError) as exc_info:
        await dispatcher.send_processing_message(make_message(file_name="x" * 300_000))

    assert exc_info.value.code == "MESSAGE_TOO_LARGE"
    client.send_message.assert_not_called()


@pytest.mark.asyncio
async def test_throttling_is_retryable_dispatch_error():
    client = MagicMock()
    client.send_message.side_effect = client_error("ThrottlingException")
    dispatcher = MessageDispatcher(client, queue_url="https://sqs.example/queue")

    with pytest.raises(QueueDispatchError) as exc_info:
        await dispatcher.send_processing_message(make_message())

    assert exc_info.value.code == "ThrottlingException"
    assert exc_info.value.error_type == "SQS_SERVICE_EXCEPTION"
    assert exc_info.value.retryable is True
    client.send_message.assert_called_once()


@pytest.mark.asyncio
async def test_send_timeout_is_retryable_network_error():
    client = MagicMock()
    client.send_message.side_effect = lambda **kwargs: time.sleep(0.3)
    dispatcher = MessageDispatcher(client, queue_url="https://sqs.example/queue", send_timeout_seconds=0.05)

    with pytest.raises(QueueDispatchError) as exc_info:
        await dispatcher.send_processing_message(make_message())

    assert exc_info.value.code == "NETWORK_ERROR"
    assert exc_info.value.retryable is True


@pytest.mark.parametrize(
    "error,code,error_type,retryable",
    [
        (client_error("InvalidClientTokenId"), "CREDENTIALS_ERROR", "AUTHENTICATION_EXCEPTION", False),
        (client_error("ServiceUnavailable"), "ServiceUnavailable", "SQS_SERVICE_EXCEPTION", True),
        (client_error("AWS.SimpleQueueService.NonExistentQueue"),
         "AWS.SimpleQueueService.NonExistentQueue", "SQS_SERVICE_EXCEPTION", False),
        (NoCredentialsError(), "CREDENTIALS_ERROR", "AUTHENTICATION_EXCEPTION", False),
        (EndpointConnectionError(endpoint_url="https://sqs.example"), "NETWORK_ERROR", "NETWORK_EXCEPTION", True),
        (ValueError("unexpected"), "GENERIC_ERROR", "GENERIC_EXCEPTION", False),
    ],
)
def test_classify_send_error(error, code, error_type, retryable):
    classified = classify_send_error(error)

    assert classified.code == code
    assert classified.error_type == error_type
    assert classified.retryable is retryable
    assert classified.original_error is error
