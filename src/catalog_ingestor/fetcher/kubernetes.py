"""
Kubernetes resource fetcher.

Talks to clusters through the official kubernetes client. Clusters are
the contexts of a kubeconfig file, or the single in-cluster
configuration when running inside a pod.
"""

from __future__ import annotations

import logging
import os
import threading
from typing import Any

import yaml
from kubernetes import client, config
from kubernetes.client.rest import ApiException

from catalog_ingestor.fetcher.base import FetchError, ResourceFetcher

logger = logging.getLogger(__name__)

IN_CLUSTER_NAME = "in-cluster"


class KubernetesResourceFetcher(ResourceFetcher):
    """
    ResourceFetcher backed by kubernetes.client.ApiClient.

    One ApiClient is created lazily per cluster and reused for the
    lifetime of the fetcher.
    """

    def __init__(
        self,
        kubeconfig: str | None = None,
        in_cluster: bool = False,
        in_cluster_name: str = IN_CLUSTER_NAME,
    ) -> None:
        """
        Initialize the fetcher.

        Args:
            kubeconfig: Path to kubeconfig file (default: ~/.kube/config)
            in_cluster: If True, use the in-cluster service account
            in_cluster_name: Cluster name reported in in-cluster mode
        """
        self._kubeconfig = kubeconfig
        self._in_cluster = in_cluster
        self._in_cluster_name = in_cluster_name
        self._clients: dict[str, client.ApiClient] = {}
        self._urls: dict[str, str] = {}
        self._lock = threading.Lock()

    def _kubeconfig_path(self) -> str:
        return os.path.expanduser(
            self._kubeconfig or os.getenv("KUBECONFIG") or "~/.kube/config"
        )

    def _oidc_users(self) -> set[str]:
        """Users authenticated through an oidc auth-provider."""
        try:
            with open(self._kubeconfig_path(), "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.debug(f"Could not read kubeconfig for auth providers: {e}")
            return set()

        users = set()
        for user in data.get("users") or []:
            provider = ((user.get("user") or {}).get("auth-provider") or {}).get("name")
            if provider == "oidc":
                users.add(user.get("name"))
        return users

    def list_clusters(self) -> list[str]:
        """
        Return cluster names.

        In kubeconfig mode every context is a cluster, except contexts
        whose user authenticates through oidc.
        """
        if self._in_cluster:
            return [self._in_cluster_name]

        try:
            contexts, _ = config.list_kube_config_contexts(config_file=self._kubeconfig)
        except config.ConfigException as e:
            raise FetchError("*", "kubeconfig", str(e))

        oidc_users = self._oidc_users()
        clusters = []
        for ctx in contexts or []:
            user = (ctx.get("context") or {}).get("user")
            if user in oidc_users:
                logger.debug(f"Skipping context {ctx['name']}: oidc auth provider")
                continue
            clusters.append(ctx["name"])
        return clusters

    def _get_client(self, cluster: str) -> client.ApiClient:
        """Get or create the ApiClient for cluster."""
        with self._lock:
            api_client = self._clients.get(cluster)
            if api_client is not None:
                return api_client

            try:
                if self._in_cluster:
                    configuration = client.Configuration()
                    config.load_incluster_config(client_configuration=configuration)
                    api_client = client.ApiClient(configuration)
                else:
                    api_client = config.new_client_from_config(
                        config_file=self._kubeconfig, context=cluster
                    )
            except config.ConfigException as e:
                raise FetchError(cluster, "", f"cannot load configuration: {e}")

            self._clients[cluster] = api_client
            self._urls[cluster] = api_client.configuration.host
            return api_client

    def _get(
        self,
        cluster: str,
        path: str,
        query: dict[str, str] | None = None,
    ) -> Any:
        api_client = self._get_client(cluster)
        try:
            return api_client.call_api(
                path,
                "GET",
                query_params=list((query or {}).items()),
                header_params={"Accept": "application/json"},
                response_type="object",
                auth_settings=["BearerToken"],
                _return_http_data_only=True,
            )
        except ApiException as e:
            raise FetchError(cluster, path, e.reason or "request failed", status=e.status)

    def fetch_resources(
        self,
        cluster: str,
        resource_path: str,
        query: dict[str, str] | None = None,
    ) -> list[dict[str, Any]]:
        """List objects under /apis/{resource_path}; a 404 yields []."""
        try:
            response = self._get(cluster, f"/apis/{resource_path}", query)
        except FetchError as e:
            if e.status == 404:
                return []
            raise
        return list((response or {}).get("items") or [])

    def fetch_resource(
        self,
        cluster: str,
        resource_path: str,
        query: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Fetch /apis/{resource_path} as-is."""
        return self._get(cluster, f"/apis/{resource_path}", query) or {}

    def proxy(self, cluster: str, path: str) -> dict[str, Any]:
        """GET an absolute API path."""
        return self._get(cluster, path) or {}

    def get_cluster_url(self, cluster: str) -> str:
        """Return the API server host of cluster, or its name if unknown."""
        url = self._urls.get(cluster)
        if url is None:
            try:
                self._get_client(cluster)
            except FetchError:
                return cluster
            url = self._urls.get(cluster)
        return url or cluster
