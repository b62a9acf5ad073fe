"""
Normalized cluster objects for the Kubernetes catalog ingestor.

Every object fetched from a cluster is wrapped in a KubernetesObject and
classified exactly once into an ObjectCategory. The rest of the
pipeline dispatches on that category instead of re-inspecting the
payload shape.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

KRO_RGD_LABEL = "kro.run/resource-graph-definition-id"


class ObjectCategory(Enum):
    """Closed set of object categories."""

    WORKLOAD = "workload"
    CLAIM = "claim"
    COMPOSITE = "composite"
    KRO_INSTANCE = "kro-instance"


def classify(raw: dict[str, Any]) -> ObjectCategory:
    """
    Classify a raw cluster object by shape.

    Claims carry spec.resourceRef, Crossplane v2 composites carry
    spec.crossplane and KRO objects carry the resource-graph-definition
    label. Everything else is an ordinary workload.

    Resources created by a KRO instance carry the same label, so
    KRO_INSTANCE is provisional until the owning RGD is resolved.
    """
    spec = raw.get("spec") or {}
    labels = (raw.get("metadata") or {}).get("labels") or {}

    if spec.get("resourceRef"):
        return ObjectCategory.CLAIM
    if spec.get("crossplane"):
        return ObjectCategory.COMPOSITE
    if labels.get(KRO_RGD_LABEL):
        return ObjectCategory.KRO_INSTANCE
    return ObjectCategory.WORKLOAD


def split_api_version(api_version: str) -> tuple[str, str]:
    """Split apiVersion into (group, version); the core group is ''."""
    if "/" in (api_version or ""):
        group, version = api_version.split("/", 1)
        return group, version
    return "", api_version or ""


@dataclass
class CompositionData:
    """Composition referenced by a claim or composite."""

    name: str
    used_functions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"name": self.name, "usedFunctions": list(self.used_functions)}


@dataclass
class KroData:
    """ResourceGraphDefinition and generated CRD owning a KRO instance."""

    rgd: dict[str, Any]
    crd: dict[str, Any] | None = None

    @property
    def rgd_name(self) -> str:
        """Name of the owning RGD."""
        return (self.rgd.get("metadata") or {}).get("name", "")

    @property
    def crd_name(self) -> str | None:
        """Name of the generated CRD, if known."""
        if not self.crd:
            return None
        return (self.crd.get("metadata") or {}).get("name")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"rgd": self.rgd, "crd": self.crd}


@dataclass
class KubernetesObject:
    """
    A fetched cluster object with its ingestion context.

    Attributes:
        raw: The object as returned by the cluster API
        cluster_name: Cluster the object was fetched from
        category: Classification computed once after fetch
        workload_type: Default component type from a custom workload type
        composition_data: Resolved composition for claims and composites
        kro_data: Owning RGD and CRD for KRO instances
    """

    raw: dict[str, Any]
    cluster_name: str
    category: ObjectCategory = ObjectCategory.WORKLOAD
    workload_type: str | None = None
    composition_data: CompositionData | None = None
    kro_data: KroData | None = None

    @classmethod
    def from_raw(
        cls,
        raw: dict[str, Any],
        cluster_name: str,
        workload_type: str | None = None,
    ) -> KubernetesObject:
        """Wrap and classify a raw object."""
        return cls(
            raw=raw,
            cluster_name=cluster_name,
            category=classify(raw),
            workload_type=workload_type,
        )

    @property
    def metadata(self) -> dict[str, Any]:
        return self.raw.get("metadata") or {}

    @property
    def spec(self) -> dict[str, Any]:
        return self.raw.get("spec") or {}

    @property
    def name(self) -> str:
        return self.metadata.get("name", "")

    @property
    def namespace(self) -> str | None:
        return self.metadata.get("namespace") or None

    @property
    def uid(self) -> str | None:
        return self.metadata.get("uid")

    @property
    def kind(self) -> str:
        return self.raw.get("kind", "")

    @property
    def api_version(self) -> str:
        return self.raw.get("apiVersion", "")

    @property
    def group(self) -> str:
        return split_api_version(self.api_version)[0]

    @property
    def version(self) -> str:
        return split_api_version(self.api_version)[1]

    @property
    def annotations(self) -> dict[str, str]:
        return self.metadata.get("annotations") or {}

    @property
    def labels(self) -> dict[str, str]:
        return self.metadata.get("labels") or {}

    @property
    def composition_ref_name(self) -> str | None:
        """Composition named by a v2 composite or a claim."""
        crossplane = self.spec.get("crossplane") or {}
        ref = (crossplane.get("compositionRef") or {}).get("name")
        if ref:
            return ref
        return (self.spec.get("compositionRef") or {}).get("name") or None

    def to_dict(self) -> dict[str, Any]:
        """Return the raw object decorated with its ingestion context."""
        data = dict(self.raw)
        data["clusterName"] = self.cluster_name
        if self.workload_type:
            data["workloadType"] = self.workload_type
        if self.composition_data:
            data["compositionData"] = self.composition_data.to_dict()
        if self.kro_data:
            data["kroData"] = self.kro_data.to_dict()
        return data
