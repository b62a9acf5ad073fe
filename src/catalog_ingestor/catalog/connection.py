"""
Catalog connections.

A catalog connection receives one full replacement mutation per
provider run. Two implementations are provided: an in-memory store and
a store that writes each provider's records to a YAML or JSON file.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone

import yaml

from catalog_ingestor.models import DeferredEntity, EntityMutation

logger = logging.getLogger(__name__)


class CatalogConnection(ABC):
    """Abstract catalog boundary."""

    @abstractmethod
    def apply_mutation(self, mutation: EntityMutation) -> None:
        """
        Replace every record previously published under
        mutation.location_key with the mutation's records.

        Args:
            mutation: Full replacement mutation
        """
        pass


class InMemoryCatalogConnection(CatalogConnection):
    """Keeps published records in memory, grouped by location key."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entities: dict[str, list[DeferredEntity]] = {}
        self.mutations: list[EntityMutation] = []
        self.last_applied: datetime | None = None

    def apply_mutation(self, mutation: EntityMutation) -> None:
        with self._lock:
            self.mutations.append(mutation)
            self._entities[mutation.location_key] = list(mutation.entities)
            self.last_applied = datetime.now(timezone.utc)

    def entities(self, location_key: str | None = None) -> list[DeferredEntity]:
        """Published records, optionally for one location key."""
        with self._lock:
            if location_key is not None:
                return list(self._entities.get(location_key, []))
            return [e for entities in self._entities.values() for e in entities]

    def __len__(self) -> int:
        return len(self.entities())


class FileCatalogConnection(CatalogConnection):
    """
    Writes each mutation to one file per location key.

    File names are derived from the location key, e.g.
    provider:KubernetesEntityProvider -> KubernetesEntityProvider.yaml.
    An empty mutation writes an empty file.
    """

    def __init__(self, output_dir: str, format: str = "yaml") -> None:
        """
        Initialize the connection.

        Args:
            output_dir: Directory to write files to (created if missing)
            format: "yaml" or "json"
        """
        if format not in ("yaml", "json"):
            raise ValueError(f"Unsupported output format: {format}")
        self.output_dir = os.path.expanduser(output_dir)
        self.format = format
        self._lock = threading.Lock()

    def path_for(self, location_key: str) -> str:
        """File path used for a location key."""
        name = location_key.split(":", 1)[-1] or "catalog"
        return os.path.join(self.output_dir, f"{name}.{self.format}")

    def apply_mutation(self, mutation: EntityMutation) -> None:
        documents = [e.entity.to_dict() for e in mutation.entities]
        path = self.path_for(mutation.location_key)

        with self._lock:
            os.makedirs(self.output_dir, exist_ok=True)
            # The previous file stays in place until the new one is complete
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.output_dir,
                prefix=".",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp_path = f.name
                try:
                    if self.format == "json":
                        json.dump(documents, f, indent=2)
                    else:
                        yaml.safe_dump_all(documents, f, sort_keys=False)
                except Exception:
                    f.close()
                    os.unlink(tmp_path)
                    raise
            os.replace(tmp_path, path)

        logger.info(f"Wrote {len(documents)} entities to {path}")
