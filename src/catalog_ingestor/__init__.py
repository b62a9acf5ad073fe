"""
Kubernetes Catalog Ingestor - developer catalog records from live clusters

Scans Kubernetes clusters for workloads, Crossplane claims and composite
resources, KRO instances and their schema definitions, and publishes
System, Component, Resource, API and Template records as full
replacement mutations on a schedule.

Quick Start:
    >>> from catalog_ingestor import (
    ...     IngestorConfig, KubernetesResourceFetcher,
    ...     KubernetesEntityProvider, InMemoryCatalogConnection,
    ... )
    >>>
    >>> provider = KubernetesEntityProvider(KubernetesResourceFetcher(), IngestorConfig())
    >>> connection = InMemoryCatalogConnection()
    >>> provider.connect(connection)
    >>> provider.run()
    >>> print(f"Published {len(connection)} entities")
"""

from __future__ import annotations

__version__ = "0.1.0"

# Configuration
from catalog_ingestor.config import (
    IngestorConfig,
    load_config_from_env,
)

# Models
from catalog_ingestor.models import (
    Entity,
    EntityKind,
    EntityMutation,
    KubernetesObject,
    ObjectCategory,
    SchemaDescriptor,
    SchemaLookup,
)

# Fetching
from catalog_ingestor.fetcher import (
    FetchError,
    KubernetesResourceFetcher,
    ResourceFetcher,
)

# Catalog
from catalog_ingestor.catalog import (
    CatalogConnection,
    EntityProvider,
    FileCatalogConnection,
    InMemoryCatalogConnection,
)

# Providers
from catalog_ingestor.translation import KubernetesEntityProvider
from catalog_ingestor.templates import (
    RGDTemplateEntityProvider,
    XRDTemplateEntityProvider,
)

# Scheduling
from catalog_ingestor.scheduling import TaskRunner

__all__ = [
    "__version__",
    # Configuration
    "IngestorConfig",
    "load_config_from_env",
    # Models
    "Entity",
    "EntityKind",
    "EntityMutation",
    "KubernetesObject",
    "ObjectCategory",
    "SchemaDescriptor",
    "SchemaLookup",
    # Fetching
    "FetchError",
    "KubernetesResourceFetcher",
    "ResourceFetcher",
    # Catalog
    "CatalogConnection",
    "EntityProvider",
    "FileCatalogConnection",
    "InMemoryCatalogConnection",
    # Providers
    "KubernetesEntityProvider",
    "RGDTemplateEntityProvider",
    "XRDTemplateEntityProvider",
    # Scheduling
    "TaskRunner",
]
