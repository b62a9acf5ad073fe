"""Data models for the Kubernetes catalog ingestor."""

from catalog_ingestor.models.descriptor import (
    ClusterDetail,
    DescriptorSource,
    LookupKey,
    SchemaDescriptor,
    SchemaLookup,
    Scope,
    version_schema_properties,
)
from catalog_ingestor.models.entity import (
    CATALOG_API_VERSION,
    MAX_ENTITY_NAME_LENGTH,
    TEMPLATE_API_VERSION,
    DeferredEntity,
    Entity,
    EntityKind,
    EntityMutation,
    filter_valid_names,
    has_valid_name,
)
from catalog_ingestor.models.kubernetes_object import (
    KRO_RGD_LABEL,
    CompositionData,
    KroData,
    KubernetesObject,
    ObjectCategory,
    classify,
    split_api_version,
)

__all__ = [
    # Descriptors
    "ClusterDetail",
    "DescriptorSource",
    "LookupKey",
    "SchemaDescriptor",
    "SchemaLookup",
    "Scope",
    "version_schema_properties",
    # Entities
    "CATALOG_API_VERSION",
    "MAX_ENTITY_NAME_LENGTH",
    "TEMPLATE_API_VERSION",
    "DeferredEntity",
    "Entity",
    "EntityKind",
    "EntityMutation",
    "filter_valid_names",
    "has_valid_name",
    # Cluster objects
    "KRO_RGD_LABEL",
    "CompositionData",
    "KroData",
    "KubernetesObject",
    "ObjectCategory",
    "classify",
    "split_api_version",
]
