"""
Catalog boundary for the Kubernetes catalog ingestor.

Provides catalog connections and the base entity provider.
"""

from catalog_ingestor.catalog.connection import (
    CatalogConnection,
    FileCatalogConnection,
    InMemoryCatalogConnection,
)
from catalog_ingestor.catalog.provider import EntityProvider

__all__ = [
    "CatalogConnection",
    "FileCatalogConnection",
    "InMemoryCatalogConnection",
    "EntityProvider",
]
