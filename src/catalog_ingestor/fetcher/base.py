"""
Base resource fetcher for the Kubernetes catalog ingestor.

Defines the interface used by the data providers to discover clusters
and read objects from them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class FetchError(Exception):
    """Raised when a cluster request fails."""

    def __init__(self, cluster: str, path: str, message: str, status: int | None = None):
        self.cluster = cluster
        self.path = path
        self.status = status
        super().__init__(f"{cluster}: {path}: {message}")


class ResourceFetcher(ABC):
    """
    Abstract base class for cluster access.

    Resource paths passed to fetch_resources and fetch_resource are
    relative to /apis, e.g. "apps/v1/deployments". proxy takes an
    absolute API path such as "/api/v1/namespaces/team-a".
    """

    @abstractmethod
    def list_clusters(self) -> list[str]:
        """Return the names of all reachable clusters."""
        pass

    @abstractmethod
    def fetch_resources(
        self,
        cluster: str,
        resource_path: str,
        query: dict[str, str] | None = None,
    ) -> list[dict[str, Any]]:
        """
        List objects of one resource type on a cluster.

        Args:
            cluster: Cluster name
            resource_path: "{group}/{version}/{plural}"
            query: Optional query parameters such as labelSelector

        Returns:
            List of raw objects; empty if the type is not served

        Raises:
            FetchError: If the request fails
        """
        pass

    @abstractmethod
    def fetch_resource(
        self,
        cluster: str,
        resource_path: str,
        query: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Fetch a single object or raw list response from a cluster."""
        pass

    @abstractmethod
    def proxy(self, cluster: str, path: str) -> dict[str, Any]:
        """Issue a GET against an absolute API path on a cluster."""
        pass

    def get_cluster_url(self, cluster: str) -> str:
        """Return the API server URL for cluster, used in OpenAPI servers."""
        return cluster
