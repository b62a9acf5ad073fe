"""
Pytest configuration and fixtures for the Kubernetes catalog ingestor tests.

This module provides an in-memory ResourceFetcher and builders for the
cluster objects used across the unit tests.
"""

from __future__ import annotations

import copy
import threading
from typing import Any, Callable

import pytest

from catalog_ingestor.config import IngestorConfig
from catalog_ingestor.fetcher import FetchError, ResourceFetcher
from catalog_ingestor.models import KRO_RGD_LABEL
from catalog_ingestor.providers import COMPOSITIONS_PATH, CRD_PATH, RGD_PATH

XRD_V1_PATH = "apiextensions.crossplane.io/v1/compositeresourcedefinitions"
XRD_V2_PATH = "apiextensions.crossplane.io/v2/compositeresourcedefinitions"


class FakeResourceFetcher(ResourceFetcher):
    """
    ResourceFetcher serving canned responses.

    List responses are keyed by (cluster, path, labelSelector); single
    objects and proxy responses by (cluster, path). An Exception stored
    in place of a response is raised when it is requested. Unknown list
    paths return [] and unknown single objects raise a 404 FetchError.
    """

    def __init__(self, clusters: list[str] | Exception | None = None):
        self.clusters = ["cluster-a"] if clusters is None else clusters
        self.lists: dict[tuple[str, str, str | None], Any] = {}
        self.objects: dict[tuple[str, str], Any] = {}
        self.urls: dict[str, str] = {}
        self.calls: list[tuple[str, str, str | None]] = []
        self.proxy_calls: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    def add(
        self,
        cluster: str,
        path: str,
        items: list[dict[str, Any]] | Exception,
        selector: str | None = None,
    ) -> None:
        self.lists[(cluster, path, selector)] = items

    def add_object(self, cluster: str, path: str, obj: dict[str, Any] | Exception) -> None:
        self.objects[(cluster, path)] = obj

    def fail(self, cluster: str, path: str, status: int = 500, selector: str | None = None) -> None:
        self.lists[(cluster, path, selector)] = FetchError(cluster, path, "boom", status=status)

    def list_clusters(self) -> list[str]:
        if isinstance(self.clusters, Exception):
            raise self.clusters
        return list(self.clusters)

    def fetch_resources(
        self,
        cluster: str,
        resource_path: str,
        query: dict[str, str] | None = None,
    ) -> list[dict[str, Any]]:
        selector = (query or {}).get("labelSelector")
        with self._lock:
            self.calls.append((cluster, resource_path, selector))
        value = self.lists.get((cluster, resource_path, selector), [])
        if isinstance(value, Exception):
            raise value
        return copy.deepcopy(value)

    def fetch_resource(
        self,
        cluster: str,
        resource_path: str,
        query: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        with self._lock:
            self.calls.append((cluster, resource_path, None))
        return self._object(cluster, resource_path)

    def proxy(self, cluster: str, path: str) -> dict[str, Any]:
        with self._lock:
            self.proxy_calls.append((cluster, path))
        return self._object(cluster, path)

    def get_cluster_url(self, cluster: str) -> str:
        return self.urls.get(cluster, cluster)

    def _object(self, cluster: str, path: str) -> dict[str, Any]:
        value = self.objects.get((cluster, path))
        if value is None:
            raise FetchError(cluster, path, "not found", status=404)
        if isinstance(value, Exception):
            raise value
        return copy.deepcopy(value)

    def list_calls(self, path: str) -> list[tuple[str, str, str | None]]:
        """Recorded list/fetch calls for one path."""
        return [call for call in self.calls if call[1] == path]


# Config fixtures


@pytest.fixture
def config() -> IngestorConfig:
    """Return the default configuration."""
    return IngestorConfig()


@pytest.fixture
def fetcher() -> FakeResourceFetcher:
    """Return an empty fake fetcher with one cluster, cluster-a."""
    return FakeResourceFetcher()


@pytest.fixture
def make_fetcher() -> Callable[..., FakeResourceFetcher]:
    """Return the fake fetcher class for tests needing other clusters."""
    return FakeResourceFetcher


# Object builders


def _version_schema(spec_properties: dict[str, Any]) -> dict[str, Any]:
    return {
        "openAPIV3Schema": {
            "type": "object",
            "properties": {
                "spec": {"type": "object", "properties": spec_properties},
            },
        }
    }


DEFAULT_SPEC_PROPERTIES = {
    "size": {"type": "string", "default": "small"},
    "replicas": {"type": "integer", "default": 1},
}


def build_deployment(
    name: str = "web",
    namespace: str | None = "team-a",
    labels: dict[str, str] | None = None,
    annotations: dict[str, str] | None = None,
    pod_labels: dict[str, str] | None = None,
) -> dict[str, Any]:
    labels = {"app": name} if labels is None else labels
    metadata: dict[str, Any] = {"name": name, "uid": f"uid-{name}", "labels": labels}
    if namespace:
        metadata["namespace"] = namespace
    if annotations:
        metadata["annotations"] = annotations
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": metadata,
        "spec": {
            "replicas": 1,
            "template": {"metadata": {"labels": labels if pod_labels is None else pod_labels}},
        },
    }


def build_claim(
    name: str = "my-db",
    namespace: str = "team-a",
    kind: str = "Database",
    api_version: str = "example.org/v1alpha1",
    composition: str | None = "database-aws",
    annotations: dict[str, str] | None = None,
) -> dict[str, Any]:
    spec: dict[str, Any] = {
        "resourceRef": {
            "apiVersion": "example.org/v1alpha1",
            "kind": "XDatabase",
            "name": f"{name}-x7k2p",
        }
    }
    if composition:
        spec["compositionRef"] = {"name": composition}
    return {
        "apiVersion": api_version,
        "kind": kind,
        "metadata": {
            "name": name,
            "namespace": namespace,
            "uid": f"uid-{name}",
            "annotations": annotations or {},
        },
        "spec": spec,
    }


def build_composite(
    name: str = "my-bucket",
    namespace: str | None = "team-a",
    kind: str = "XBucket",
    api_version: str = "storage.example.org/v1",
    composition: str | None = "bucket-aws",
) -> dict[str, Any]:
    crossplane: dict[str, Any] = {"resourceRefs": []}
    if composition:
        crossplane["compositionRef"] = {"name": composition}
    metadata: dict[str, Any] = {"name": name, "uid": f"uid-{name}"}
    if namespace:
        metadata["namespace"] = namespace
    return {
        "apiVersion": api_version,
        "kind": kind,
        "metadata": metadata,
        "spec": {"crossplane": crossplane},
    }


def build_xrd(
    name: str = "xdatabases.example.org",
    group: str = "example.org",
    kind: str = "XDatabase",
    plural: str = "xdatabases",
    versions: list[str] | None = None,
    scope: str | None = None,
    claim_kind: str | None = "Database",
    claim_plural: str = "databases",
    annotations: dict[str, str] | None = None,
    spec_properties: dict[str, Any] | None = None,
    composite_type: bool = True,
) -> dict[str, Any]:
    versions = versions or ["v1alpha1"]
    spec: dict[str, Any] = {
        "group": group,
        "names": {"kind": kind, "plural": plural},
        "versions": [
            {
                "name": v,
                "served": True,
                "referenceable": i == 0,
                "schema": _version_schema(
                    DEFAULT_SPEC_PROPERTIES if spec_properties is None else spec_properties
                ),
            }
            for i, v in enumerate(versions)
        ],
    }
    if scope is not None:
        spec["scope"] = scope
    if claim_kind:
        spec["claimNames"] = {"kind": claim_kind, "plural": claim_plural}

    xrd: dict[str, Any] = {
        "apiVersion": "apiextensions.crossplane.io/v1",
        "kind": "CompositeResourceDefinition",
        "metadata": {
            "name": name,
            "annotations": (
                {"terasky.backstage.io/add-to-catalog": "true"}
                if annotations is None
                else annotations
            ),
        },
        "spec": spec,
        "status": {},
    }
    if composite_type:
        xrd["status"]["controllers"] = {
            "compositeResourceType": {"apiVersion": f"{group}/{versions[0]}", "kind": kind}
        }
    return xrd


def build_crd(
    name: str = "widgets.example.com",
    group: str = "example.com",
    kind: str = "Widget",
    plural: str = "widgets",
    singular: str | None = "widget",
    versions: list[str] | None = None,
    storage: str | None = None,
    scope: str = "Namespaced",
    labels: dict[str, str] | None = None,
    categories: list[str] | None = None,
    spec_properties: dict[str, Any] | None = None,
) -> dict[str, Any]:
    versions = versions or ["v1"]
    storage = versions[0] if storage is None else storage
    names: dict[str, Any] = {"kind": kind, "plural": plural}
    if singular:
        names["singular"] = singular
    if categories:
        names["categories"] = categories
    return {
        "apiVersion": "apiextensions.k8s.io/v1",
        "kind": "CustomResourceDefinition",
        "metadata": {"name": name, "labels": labels or {}},
        "spec": {
            "group": group,
            "names": names,
            "scope": scope,
            "versions": [
                {
                    "name": v,
                    "served": True,
                    "storage": v == storage,
                    "schema": _version_schema(
                        DEFAULT_SPEC_PROPERTIES if spec_properties is None else spec_properties
                    ),
                }
                for v in versions
            ],
        },
    }


def build_rgd(
    name: str = "webapp",
    uid: str = "rgd-uid-1",
    kind: str = "WebApp",
    group: str = "kro.run",
    state: str = "Active",
) -> dict[str, Any]:
    return {
        "apiVersion": "kro.run/v1alpha1",
        "kind": "ResourceGraphDefinition",
        "metadata": {"name": name, "uid": uid},
        "spec": {
            "schema": {"apiVersion": "v1alpha1", "kind": kind, "group": group},
            "resources": [
                {"id": "deployment", "template": {"apiVersion": "apps/v1", "kind": "Deployment"}},
                {"id": "service", "template": {"apiVersion": "v1", "kind": "Service"}},
                {"id": "external", "externalRef": {"kind": "ConfigMap"}},
            ],
        },
        "status": {"state": state},
    }


def build_rgd_crd(
    uid: str = "rgd-uid-1",
    kind: str = "WebApp",
    plural: str = "webapps",
    group: str = "kro.run",
    versions: list[str] | None = None,
    scope: str = "Namespaced",
) -> dict[str, Any]:
    return build_crd(
        name=f"{plural}.{group}",
        group=group,
        kind=kind,
        plural=plural,
        singular=kind.lower(),
        versions=versions or ["v1alpha1"],
        scope=scope,
        labels={KRO_RGD_LABEL: uid},
    )


def build_kro_instance(
    name: str = "shop",
    namespace: str = "team-a",
    kind: str = "WebApp",
    api_version: str = "kro.run/v1alpha1",
    uid: str = "rgd-uid-1",
) -> dict[str, Any]:
    return {
        "apiVersion": api_version,
        "kind": kind,
        "metadata": {
            "name": name,
            "namespace": namespace,
            "uid": f"uid-{name}",
            "labels": {KRO_RGD_LABEL: uid},
        },
        "spec": {"image": "nginx"},
    }


@pytest.fixture
def make_deployment() -> Callable[..., dict[str, Any]]:
    """Return a builder for Deployment objects."""
    return build_deployment


@pytest.fixture
def make_claim() -> Callable[..., dict[str, Any]]:
    """Return a builder for Crossplane claims."""
    return build_claim


@pytest.fixture
def make_composite() -> Callable[..., dict[str, Any]]:
    """Return a builder for Crossplane v2 composites."""
    return build_composite


@pytest.fixture
def make_xrd() -> Callable[..., dict[str, Any]]:
    """Return a builder for CompositeResourceDefinitions."""
    return build_xrd


@pytest.fixture
def make_crd() -> Callable[..., dict[str, Any]]:
    """Return a builder for CustomResourceDefinitions."""
    return build_crd


@pytest.fixture
def make_rgd() -> Callable[..., dict[str, Any]]:
    """Return a builder for ResourceGraphDefinitions."""
    return build_rgd


@pytest.fixture
def make_rgd_crd() -> Callable[..., dict[str, Any]]:
    """Return a builder for CRDs generated by an RGD."""
    return build_rgd_crd


@pytest.fixture
def make_kro_instance() -> Callable[..., dict[str, Any]]:
    """Return a builder for KRO instances."""
    return build_kro_instance


@pytest.fixture
def rgd_selector() -> Callable[[str], str]:
    """Return the label selector used to find an RGD's generated CRD."""
    return lambda uid: f"{KRO_RGD_LABEL}={uid}"


@pytest.fixture
def paths() -> dict[str, str]:
    """Return the resource paths served by the fake fetcher."""
    return {
        "crd": CRD_PATH,
        "compositions": COMPOSITIONS_PATH,
        "rgd": RGD_PATH,
        "xrd_v1": XRD_V1_PATH,
        "xrd_v2": XRD_V2_PATH,
    }
