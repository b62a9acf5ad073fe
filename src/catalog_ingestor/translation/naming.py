"""
Naming models.

Computes system namespace, system name, reference namespace, record
name and title for an object from the configured mappings. The results
depend only on the object identity, its cluster and the configuration.
"""

from __future__ import annotations

from dataclasses import dataclass

from catalog_ingestor.config import (
    MappingsConfig,
    NameModel,
    NamespaceModel,
    ReferencesNamespaceModel,
    SystemModel,
    TitleModel,
)
from catalog_ingestor.models import KubernetesObject


@dataclass(frozen=True)
class Naming:
    """Computed names for one object."""

    system_namespace: str
    system_name: str
    references_namespace: str
    name: str
    title: str
    cluster_aware: bool

    @property
    def system_ref(self) -> str:
        return f"{self.references_namespace}/{self.system_name}"


def resolve_naming(mappings: MappingsConfig, obj: KubernetesObject) -> Naming:
    """Apply the naming models to obj."""
    cluster = obj.cluster_name
    name = obj.name
    namespace = obj.namespace
    kind = obj.kind

    if mappings.namespace_model == NamespaceModel.CLUSTER:
        system_namespace = cluster
    elif mappings.namespace_model == NamespaceModel.NAMESPACE:
        system_namespace = namespace or "default"
    else:
        system_namespace = "default"

    if mappings.system_model == SystemModel.CLUSTER:
        system_name = cluster
    elif mappings.system_model == SystemModel.NAMESPACE:
        system_name = namespace or name
    elif mappings.system_model == SystemModel.CLUSTER_NAMESPACE:
        system_name = f"{cluster}-{namespace}" if namespace else cluster
    else:
        system_name = "default"

    if mappings.references_namespace_model == ReferencesNamespaceModel.SAME:
        references_namespace = system_namespace
    else:
        references_namespace = "default"

    if mappings.name_model == NameModel.NAME_KIND:
        record_name = f"{name}-{kind.lower()}"
    elif mappings.name_model == NameModel.NAME_CLUSTER:
        record_name = f"{name}-{cluster}"
    elif mappings.name_model == NameModel.NAME_NAMESPACE:
        record_name = f"{name}-{namespace or 'default'}"
    else:
        record_name = name

    if mappings.title_model == TitleModel.NAME_CLUSTER:
        title = f"{name}-{cluster}"
    elif mappings.title_model == TitleModel.NAME_NAMESPACE:
        title = f"{name}-{namespace or 'default'}"
    else:
        title = name

    return Naming(
        system_namespace=system_namespace,
        system_name=system_name,
        references_namespace=references_namespace,
        name=record_name,
        title=title,
        cluster_aware=(
            mappings.system_model == SystemModel.CLUSTER_NAMESPACE
            or mappings.namespace_model == NamespaceModel.CLUSTER
        ),
    )
