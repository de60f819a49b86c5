"""
Image collection on Arkiv

Every gallery query shares the same base filters:
app = IMAGE_APP, type = IMAGE_TYPE, owned by ACCOUNT_ADR,
attributes on, payload off.
"""

import logging
from typing import Optional

from gallery.services.arkiv_client import ArkivClient, QueryBuilder, eq

logger = logging.getLogger(__name__)


class ImageCollection:
    """Owner-scoped view of the image entities"""

    def __init__(self, client: ArkivClient, owner: str, app: str = "CDogs", entity_type: str = "image"):
        self.client = client
        self.owner = owner
        self.app = app
        self.entity_type = entity_type

    def query(self) -> QueryBuilder:
        """Base query for image metadata (no payload)"""
        return self.client.build_query() \
            .where(eq("app", self.app)) \
            .where(eq("type", self.entity_type)) \
            .owned_by(self.owner) \
            .with_attributes(True) \
            .with_payload(False)

    async def fetch_payload(self, key: str) -> Optional[bytes]:
        """
        Raw image bytes for one entity

        Returns:
            Payload bytes, or None if the entity is unknown or has no payload
        """
        entity = await self.client.get_entity(key)
        if entity is None or not entity.payload:
            logger.info("Image %s not found or empty", key)
            return None
        return entity.payload
