"""
Cluster access for the Kubernetes catalog ingestor.

This package provides the ResourceFetcher interface and an
implementation backed by the official kubernetes client.
"""

from catalog_ingestor.fetcher.base import FetchError, ResourceFetcher
from catalog_ingestor.fetcher.kubernetes import IN_CLUSTER_NAME, KubernetesResourceFetcher

__all__ = [
    "FetchError",
    "ResourceFetcher",
    "IN_CLUSTER_NAME",
    "KubernetesResourceFetcher",
]
