"""
Adapter layer for the Uploads API.

Contains thin adapters over object storage (S3), the metadata store
(SQLite documents / DynamoDB) and the event topic (local spool / SNS).
Adapters are constructed explicitly at start-up and closed on shutdown.
"""

import logging
from dataclasses import dataclass

from uploads_api.adapters.events import BasePublisher, EventPublisherFactory
from uploads_api.adapters.metadata import MetadataStore, MetadataStoreFactory
from uploads_api.adapters.storage import S3ObjectStorage
from uploads_api.config.settings import Settings

logger = logging.getLogger(__name__)


@dataclass
class Adapters:
    storage: S3ObjectStorage
    metadata: MetadataStore
    events: BasePublisher

    @classmethod
    def from_settings(cls, settings: Settings) -> "Adapters":
        return cls(
            storage=S3ObjectStorage.from_settings(settings),
            metadata=MetadataStoreFactory.get_metadata_store(settings),
            events=EventPublisherFactory.get_publisher(settings),
        )

    def provision(self, settings: Settings) -> None:
        """Create the bucket, table/collection and topic the app relies on."""
        logger.info("Provisioning bucket, metadata collection and event topic")
        self.storage.ensure_bucket()
        self.metadata.init_collections([settings.metadata_table_name])
        self.events.ensure_topic(settings.pubsub_topic_name)

    def close(self) -> None:
        for adapter in (self.storage, self.metadata, self.events):
            try:
                adapter.close()
            except Exception as e:
                logger.warning(f"Error closing {type(adapter).__name__}: {str(e)}")


__all__ = ["Adapters", "BasePublisher", "MetadataStore", "S3ObjectStorage"]
