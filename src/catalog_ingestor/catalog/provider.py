"""
Base entity provider.

An entity provider computes its complete record set on every run and
publishes it through its catalog connection as one full replacement
mutation. A run that fails or overruns its deadline publishes nothing,
leaving the previous records in place.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone

from catalog_ingestor.catalog.connection import CatalogConnection
from catalog_ingestor.config import IngestorConfig
from catalog_ingestor.fetcher import ResourceFetcher
from catalog_ingestor.models import Entity, EntityMutation

logger = logging.getLogger(__name__)


class EntityProvider(ABC):
    """
    Abstract base class for scheduled entity providers.

    Subclasses implement collect(); run() handles the connection,
    deadline and error contract.
    """

    provider_name: str = "EntityProvider"

    def __init__(
        self,
        fetcher: ResourceFetcher,
        config: IngestorConfig,
        log: logging.Logger | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._config = config
        self._logger = log or logger
        self._connection: CatalogConnection | None = None

    def get_provider_name(self) -> str:
        """Name of this provider."""
        return self.provider_name

    @property
    def location_key(self) -> str:
        """Key tagging every record this provider publishes."""
        return f"provider:{self.get_provider_name()}"

    def connect(self, connection: CatalogConnection) -> None:
        """Attach the catalog connection."""
        self._connection = connection

    @abstractmethod
    def collect(self) -> list[Entity]:
        """Compute the full record set for one run."""
        pass

    def run(self, deadline: datetime | None = None) -> bool:
        """
        Execute one run.

        Args:
            deadline: UTC time after which the mutation must not be applied

        Returns:
            True if a mutation was applied

        Raises:
            RuntimeError: If connect() has not been called
        """
        if self._connection is None:
            raise RuntimeError("Connection not initialized")

        name = self.get_provider_name()
        try:
            entities = self.collect()

            if deadline is not None and datetime.now(timezone.utc) > deadline:
                self._logger.warning(
                    f"{name} run exceeded its timeout; skipping catalog update"
                )
                return False

            self._connection.apply_mutation(EntityMutation.full(entities, self.location_key))
        except Exception:
            self._logger.exception(f"Failed to run {name}")
            return False

        self._logger.info(f"{name} published {len(entities)} entities")
        return True
