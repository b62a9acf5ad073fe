"""
Catalog records produced by the entity providers.

Records follow the developer-catalog entity envelope: apiVersion, kind,
metadata and spec. A run publishes all of its records at once as a full
replacement EntityMutation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable

logger = logging.getLogger(__name__)

CATALOG_API_VERSION = "backstage.io/v1alpha1"
TEMPLATE_API_VERSION = "scaffolder.backstage.io/v1beta3"
MAX_ENTITY_NAME_LENGTH = 63


class EntityKind(Enum):
    """Kinds of catalog records this ingestor emits."""

    SYSTEM = "System"
    COMPONENT = "Component"
    RESOURCE = "Resource"
    API = "API"
    TEMPLATE = "Template"


@dataclass
class Entity:
    """A single catalog record."""

    kind: EntityKind
    metadata: dict[str, Any]
    spec: dict[str, Any] = field(default_factory=dict)
    api_version: str = CATALOG_API_VERSION

    @property
    def name(self) -> str:
        return self.metadata.get("name", "")

    @property
    def namespace(self) -> str:
        return self.metadata.get("namespace") or "default"

    @property
    def ref(self) -> str:
        """Entity reference in kind:namespace/name form."""
        return f"{self.kind.value.lower()}:{self.namespace}/{self.name}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to the catalog wire shape."""
        return {
            "apiVersion": self.api_version,
            "kind": self.kind.value,
            "metadata": self.metadata,
            "spec": self.spec,
        }


@dataclass
class DeferredEntity:
    """An entity tagged with the key of the provider that produced it."""

    entity: Entity
    location_key: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"entity": self.entity.to_dict(), "locationKey": self.location_key}


@dataclass
class EntityMutation:
    """
    A full replacement of one provider's published records.

    Attributes:
        location_key: Provider whose previous records are replaced
        entities: The complete new record set, possibly empty
        type: Mutation type; always "full"
    """

    location_key: str
    entities: list[DeferredEntity] = field(default_factory=list)
    type: str = "full"

    @classmethod
    def full(cls, entities: Iterable[Entity], location_key: str) -> EntityMutation:
        """Build a full mutation tagging every entity with location_key."""
        return cls(
            location_key=location_key,
            entities=[DeferredEntity(entity=e, location_key=location_key) for e in entities],
        )

    def __len__(self) -> int:
        return len(self.entities)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "type": self.type,
            "locationKey": self.location_key,
            "entities": [e.to_dict() for e in self.entities],
        }


def has_valid_name(entity: Entity, log: logging.Logger | None = None) -> bool:
    """
    Check the 63-character name limit, warning when it is exceeded.

    Args:
        entity: Record to validate
        log: Logger to warn on (defaults to this module's logger)

    Returns:
        True if the record may be published
    """
    if len(entity.name) > MAX_ENTITY_NAME_LENGTH:
        (log or logger).warning(
            f"The entity {entity.name} of type {entity.kind.value} can't be ingested as its "
            f"generated name is over {MAX_ENTITY_NAME_LENGTH} characters long. Change the "
            f"naming models in the config or shorten the source names to ingest it."
        )
        return False
    return True


def filter_valid_names(
    entities: Iterable[Entity], log: logging.Logger | None = None
) -> list[Entity]:
    """Drop records whose names exceed the length limit."""
    return [e for e in entities if has_valid_name(e, log)]
