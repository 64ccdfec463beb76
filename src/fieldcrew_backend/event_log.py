"""
Event log publishing for entity change events.

Change events are appended to an AWS Kinesis stream per entity kind
(``job_events``, ``client_events``, ...). Publishing is best-effort: failures
are logged and reported through the return value, never raised, and never
retried.

When the event log is disabled, or when the Kinesis client cannot be created
(for example when running locally without AWS credentials), publishing is
skipped gracefully.
"""

from __future__ import annotations

import logging
from threading import Lock
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .configuration import Settings
from .models import ChangeEvent

logger = logging.getLogger(__name__)


class KinesisEventPublisher:
    """
    Appends change events to Kinesis streams.

    The boto3 client is created lazily on first publish and shared by all
    worker threads; boto3 clients are thread-safe.

    Attributes:
        stream_prefix: Prepended to each topic to form the stream name
        partition_key: Fixed partition key used for every record
    """

    def __init__(
        self,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        stream_prefix: str = "",
        partition_key: str = "0",
        client: Any = None,
    ) -> None:
        self.region = region
        self.endpoint_url = endpoint_url
        self.stream_prefix = stream_prefix
        self.partition_key = partition_key
        self._client = client
        self._client_lock = Lock()

    def _get_client(self):
        """
        Get or create the Kinesis client.

        Returns:
            boto3 Kinesis client or None if it could not be created
        """
        with self._client_lock:
            if self._client is None:
                try:
                    self._client = boto3.client(
                        "kinesis",
                        region_name=self.region,
                        endpoint_url=self.endpoint_url,
                    )
                except (BotoCoreError, ValueError) as e:
                    logger.warning(f"Failed to create Kinesis client: {e}")
                    self._client = None
            return self._client

    def stream_name(self, topic: str) -> str:
        return f"{self.stream_prefix}{topic}"

    def publish(self, topic: str, event: ChangeEvent) -> bool:
        """
        Append one change event to the stream for ``topic``.

        Args:
            topic: Per-kind topic name, e.g. "job_events"
            event: The change event to serialize as JSON

        Returns:
            True if the record was accepted, False otherwise
        """
        client = self._get_client()
        if client is None:
            logger.warning(f"Kinesis client not available, skipping {event.event.value} event for {topic}")
            return False

        stream = self.stream_name(topic)
        try:
            response = client.put_record(
                StreamName=stream,
                Data=event.model_dump_json().encode("utf-8"),
                PartitionKey=self.partition_key,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to send {event.event.value} event to {stream}: {e}")
            return False

        logger.info(f"{event.event.value} event sent to {stream} (sequence {response.get('SequenceNumber')})")
        return True


class NullEventPublisher:
    """Publisher used when the event log is disabled."""

    def publish(self, topic: str, event: ChangeEvent) -> bool:
        logger.debug(f"Event log disabled, dropping {event.event.value} event for {topic}")
        return False


def build_publisher(settings: Settings):
    if not settings.event_log_enabled:
        logger.warning("Event log disabled; change events will not be published")
        return NullEventPublisher()
    return KinesisEventPublisher(
        region=settings.event_log_region,
        endpoint_url=settings.event_log_endpoint_url,
        stream_prefix=settings.event_log_stream_prefix,
        partition_key=settings.event_log_partition_key,
    )
