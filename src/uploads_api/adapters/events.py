import json
import logging
import os
import time
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

import boto3

from uploads_api.config.settings import Settings

logger = logging.getLogger(__name__)


def encode_event(payload: Dict[str, Any]) -> bytes:
    """JSON-encode an event payload for publishing."""
    return json.dumps(payload, default=str).encode("utf-8")


class BasePublisher:
    """Base class for event publishing (to be extended by specific implementations)"""
    def publish(self, topic: str, data: bytes) -> Optional[str]:
        """Publish `data` to `topic` once and return a message id. Raises on failure."""
        raise NotImplementedError

    def publish_event(self, topic: str, payload: Dict[str, Any]) -> Optional[str]:
        return self.publish(topic, encode_event(payload))

    def ensure_topic(self, topic: str) -> None:
        pass

    def ping(self) -> None:
        pass

    def close(self) -> None:
        pass


class LocalEventPublisher(BasePublisher):
    """Spools events to the file system, one JSON file per message"""
    def __init__(self, spool_dir: str):
        self.spool_dir = Path(spool_dir)
        self.spool_dir.mkdir(parents=True, exist_ok=True)
        logger.info("LocalEventPublisher initialized at: %s", self.spool_dir)

    def _topic_dir(self, topic: str) -> Path:
        return self.spool_dir / topic

    def ensure_topic(self, topic: str) -> None:
        self._topic_dir(topic).mkdir(parents=True, exist_ok=True)

    def publish(self, topic: str, data: bytes) -> Optional[str]:
        """Write the message to the topic's spool directory"""
        message_id = str(uuid.uuid4())
        topic_dir = self._topic_dir(topic)
        topic_dir.mkdir(parents=True, exist_ok=True)

        # Timestamp prefix keeps files in publish order
        filename = f"{time.time_ns()}_{os.getpid()}_{message_id}.json"
        try:
            (topic_dir / filename).write_bytes(data)
        except Exception as e:
            logger.error("Error publishing event to %s: %s", topic, str(e))
            raise

        logger.info("Published event %s to topic %s", message_id, topic)
        return message_id

    def read_events(self, topic: str) -> List[Dict[str, Any]]:
        """Return every spooled event for a topic, oldest first, without consuming them"""
        topic_dir = self._topic_dir(topic)
        if not topic_dir.exists():
            return []
        return [json.loads(path.read_bytes()) for path in sorted(topic_dir.glob("*.json"))]

    def ping(self) -> None:
        if not self.spool_dir.is_dir():
            raise FileNotFoundError(f"Event spool directory missing: {self.spool_dir}")


class SNSEventPublisher(BasePublisher):
    """Publishes events to an AWS SNS topic"""
    def __init__(self, topic_arn: Optional[str] = None, sns_client=None, **client_kwargs):
        self.sns = sns_client or boto3.client("sns", **client_kwargs)
        self.topic_arn = topic_arn
        self._topic_arns: Dict[str, str] = {}

        logger.info("SNSEventPublisher initialized")
        logger.info(f"  Endpoint: {client_kwargs.get('endpoint_url')}")
        logger.info(f"  Topic ARN: {topic_arn}")

    def _resolve_topic_arn(self, topic: str) -> str:
        if self.topic_arn and self.topic_arn.rsplit(":", 1)[-1] == topic:
            return self.topic_arn
        if topic not in self._topic_arns:
            # CreateTopic is idempotent and returns the ARN of an existing topic
            response = self.sns.create_topic(Name=topic)
            self._topic_arns[topic] = response["TopicArn"]
        return self._topic_arns[topic]

    def ensure_topic(self, topic: str) -> None:
        self._resolve_topic_arn(topic)

    def publish(self, topic: str, data: bytes) -> Optional[str]:
        """Publish a message to the SNS topic."""
        try:
            response = self.sns.publish(
                TopicArn=self._resolve_topic_arn(topic),
                Message=data.decode("utf-8"),
            )
        except Exception as e:
            logger.error(f"Error publishing event to SNS topic {topic}: {str(e)}")
            raise

        message_id = response.get("MessageId")
        logger.info(f"Event published to SNS topic {topic} with ID: {message_id}")
        return message_id

    def ping(self) -> None:
        self.sns.list_topics()

    def close(self) -> None:
        self.sns.close()


class EventPublisherFactory:
    """Factory to initialize the correct event publisher based on deployment mode"""

    @staticmethod
    def get_publisher(settings: Settings) -> BasePublisher:
        deployment_mode = settings.deployment_mode
        logger.info(f"Creating event publisher for mode: {deployment_mode}")

        if deployment_mode == "local-dev":
            return LocalEventPublisher(settings.event_spool_dir)
        if deployment_mode in ("aws-mock", "aws-prod"):
            return SNSEventPublisher(
                topic_arn=settings.sns_topic_arn,
                **settings.boto3_client_kwargs(),
            )
        raise ValueError(f"Invalid deployment_mode: {deployment_mode}")
