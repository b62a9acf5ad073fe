"""
Schema descriptors for the Kubernetes catalog ingestor.

A SchemaDescriptor is the normalized view of a schema-defining object
(CustomResourceDefinition, CompositeResourceDefinition or
ResourceGraphDefinition). SchemaLookup indexes descriptors by a
case-insensitive (kind, group, version) key so that instance objects
can be joined back to their schema.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator

logger = logging.getLogger(__name__)


class DescriptorSource(Enum):
    """Kind of schema object a descriptor was built from."""

    CRD = "crd"
    XRD = "xrd"
    RGD = "rgd"


class Scope(Enum):
    """Resource scope, including the Crossplane v2 legacy scope."""

    CLUSTER = "Cluster"
    NAMESPACED = "Namespaced"
    LEGACY_CLUSTER = "LegacyCluster"

    @classmethod
    def parse(cls, value: str | None, default: Scope) -> Scope:
        """Parse a scope string, falling back to default for unknown values."""
        for member in cls:
            if value and member.value.lower() == value.lower():
                return member
        return default


@dataclass(frozen=True)
class LookupKey:
    """
    Case-insensitive (kind, group, version) key.

    Always build keys through LookupKey.of so that case folding
    happens in exactly one place.
    """

    kind: str
    group: str
    version: str

    @classmethod
    def of(cls, kind: str, group: str, version: str) -> LookupKey:
        """Build a canonical key."""
        return cls(
            kind=(kind or "").lower(),
            group=(group or "").lower(),
            version=(version or "").lower(),
        )

    @classmethod
    def from_api_version(cls, kind: str, api_version: str) -> LookupKey:
        """Build a key from an object's kind and apiVersion."""
        group, _, version = (api_version or "").rpartition("/")
        return cls.of(kind, group, version)

    def __str__(self) -> str:
        return f"{self.kind}|{self.group}|{self.version}"


@dataclass
class ClusterDetail:
    """A cluster a descriptor was found on."""

    name: str
    url: str

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary."""
        return {"name": self.name, "url": self.url}


@dataclass
class SchemaDescriptor:
    """
    Normalized view of a CRD, XRD or RGD.

    Attributes:
        name: metadata.name of the schema object
        source: Which kind of schema object this came from
        group: API group served by the defined resource
        kind: Kind of the defined resource
        plural: Plural resource name
        scope: Resource scope
        versions: Raw version entries (name, served, storage, schema)
        is_v2: Crossplane v2 flag (true iff the XRD declares spec.scope)
        claim_names: claimNames block for claim-based XRDs
        compositions: Names of compositions targeting this XRD
        default_composition: spec.defaultCompositionRef.name, if any
        singular: Singular resource name
        generated_crd: Backing CRD for XRDs and RGDs
        clusters: Clusters the object was found on
        cluster_details: Cluster name/url pairs used for API servers
        raw: The original schema object
    """

    name: str
    source: DescriptorSource
    group: str
    kind: str
    plural: str
    scope: Scope = Scope.CLUSTER
    versions: list[dict[str, Any]] = field(default_factory=list)
    is_v2: bool = False
    claim_names: dict[str, Any] | None = None
    compositions: list[str] = field(default_factory=list)
    default_composition: str | None = None
    singular: str = ""
    generated_crd: dict[str, Any] | None = None
    clusters: list[str] = field(default_factory=list)
    cluster_details: list[ClusterDetail] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def cluster_name(self) -> str:
        """First cluster the descriptor was found on."""
        return self.clusters[0] if self.clusters else ""

    @property
    def is_claim_based(self) -> bool:
        """Whether templates target the claim rather than the composite."""
        return not self.is_v2 or self.scope == Scope.LEGACY_CLUSTER

    @property
    def version_names(self) -> list[str]:
        """Names of all declared versions."""
        return [v.get("name", "") for v in self.versions]

    @property
    def annotations(self) -> dict[str, str]:
        """Annotations of the raw schema object."""
        return (self.raw.get("metadata") or {}).get("annotations") or {}

    def stored_version(self) -> dict[str, Any] | None:
        """Return the storage version entry, if any."""
        for version in self.versions:
            if version.get("storage") is True:
                return version
        return None

    def add_cluster(self, cluster: str, url: str | None = None) -> None:
        """Record that this descriptor was also found on cluster."""
        if cluster not in self.clusters:
            self.clusters.append(cluster)
            self.cluster_details.append(ClusterDetail(name=cluster, url=url or cluster))

    def lookup_keys(self) -> list[LookupKey]:
        """Keys under which instances of this descriptor are found."""
        return [LookupKey.of(self.kind, self.group, name) for name in self.version_names]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "source": self.source.value,
            "group": self.group,
            "kind": self.kind,
            "plural": self.plural,
            "scope": self.scope.value,
            "versions": self.version_names,
            "is_v2": self.is_v2,
            "claim_names": self.claim_names,
            "compositions": self.compositions,
            "clusters": self.clusters,
        }


def version_schema_properties(version: dict[str, Any] | None) -> dict[str, Any]:
    """Return openAPIV3Schema.properties of a version entry, or {}."""
    if not version:
        return {}
    schema = (version.get("schema") or {}).get("openAPIV3Schema") or {}
    return schema.get("properties") or {}


class SchemaLookup:
    """
    Case-insensitive map from LookupKey to SchemaDescriptor.

    When two different descriptors claim the same key, the first one
    is kept and a warning is logged.
    """

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._entries: dict[LookupKey, SchemaDescriptor] = {}
        self._logger = log or logger

    def add(self, descriptor: SchemaDescriptor) -> None:
        """Index descriptor under every one of its versions."""
        for key in descriptor.lookup_keys():
            existing = self._entries.get(key)
            if existing is not None and existing is not descriptor:
                if existing.name != descriptor.name:
                    self._logger.warning(
                        f"Lookup key {key} is defined by both {existing.name} and "
                        f"{descriptor.name}; keeping {existing.name}"
                    )
                continue
            self._entries[key] = descriptor

    def get(self, kind: str, group: str, version: str) -> SchemaDescriptor | None:
        """Find the descriptor for kind/group/version, ignoring case."""
        return self._entries.get(LookupKey.of(kind, group, version))

    def get_for(self, kind: str, api_version: str) -> SchemaDescriptor | None:
        """Find the descriptor for an object's kind and apiVersion."""
        return self._entries.get(LookupKey.from_api_version(kind, api_version))

    def keys(self) -> list[LookupKey]:
        """All indexed keys."""
        return list(self._entries.keys())

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[LookupKey]:
        return iter(self._entries)
