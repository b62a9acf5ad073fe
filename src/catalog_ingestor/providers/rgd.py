"""
RGD data provider.

Collects active KRO ResourceGraphDefinitions together with the CRD each
one generates.
"""

from __future__ import annotations

import logging
from typing import Any

from catalog_ingestor.config import IngestorConfig
from catalog_ingestor.fetcher import ResourceFetcher
from catalog_ingestor.models import (
    KRO_RGD_LABEL,
    DescriptorSource,
    SchemaDescriptor,
    SchemaLookup,
    Scope,
)
from catalog_ingestor.providers.clusters import (
    CRD_PATH,
    RGD_PATH,
    aggregate_by_name,
    fan_out_clusters,
    resolve_clusters,
)

logger = logging.getLogger(__name__)


def is_active(rgd: dict[str, Any]) -> bool:
    """Whether an RGD reports status.state Active."""
    return (rgd.get("status") or {}).get("state") == "Active"


def fetch_generated_crd(
    fetcher: ResourceFetcher, cluster: str, rgd_uid: str
) -> dict[str, Any] | None:
    """Return the CRD labelled with the RGD's uid, if any."""
    crds = fetcher.fetch_resources(
        cluster, CRD_PATH, {"labelSelector": f"{KRO_RGD_LABEL}={rgd_uid}"}
    )
    return crds[0] if crds else None


def descriptor_from_rgd(rgd: dict[str, Any], crd: dict[str, Any]) -> SchemaDescriptor:
    """Normalize an RGD and its generated CRD."""
    crd_spec = crd.get("spec") or {}
    names = crd_spec.get("names") or {}
    return SchemaDescriptor(
        name=(rgd.get("metadata") or {}).get("name", ""),
        source=DescriptorSource.RGD,
        group=crd_spec.get("group", ""),
        kind=names.get("kind", ""),
        plural=names.get("plural", ""),
        singular=names.get("singular", ""),
        scope=Scope.parse(crd_spec.get("scope"), Scope.NAMESPACED),
        versions=list(crd_spec.get("versions") or []),
        generated_crd=crd,
        raw=rgd,
    )


class RGDDataProvider:
    """Fetches active ResourceGraphDefinitions."""

    def __init__(
        self,
        fetcher: ResourceFetcher,
        config: IngestorConfig,
        log: logging.Logger | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._config = config
        self._logger = log or logger

    def fetch_rgd_objects(self) -> list[SchemaDescriptor]:
        """Fetch active RGDs with their generated CRDs across all clusters."""
        if not self._config.kro.enabled:
            self._logger.debug("KRO integration is disabled")
            return []

        clusters = resolve_clusters(self._fetcher, self._config, self._logger)
        per_cluster = fan_out_clusters(
            clusters,
            self._fetch_cluster,
            self._config.max_workers,
            "RGDs",
            self._logger,
        )
        return aggregate_by_name(clusters, per_cluster, self._fetcher)

    def _fetch_cluster(self, cluster: str) -> list[SchemaDescriptor]:
        descriptors = []
        for rgd in self._fetcher.fetch_resources(cluster, RGD_PATH):
            metadata = rgd.get("metadata") or {}
            if not is_active(rgd):
                self._logger.debug(f"Skipping inactive RGD {metadata.get('name')}")
                continue

            crd = fetch_generated_crd(self._fetcher, cluster, metadata.get("uid", ""))
            if crd is None:
                self._logger.warning(f"No CRD found for RGD {metadata.get('name')}")
                continue

            descriptors.append(descriptor_from_rgd(rgd, crd))
        return descriptors

    def build_rgd_lookup(self) -> SchemaLookup:
        """Index RGDs by the kind, group and versions of their generated CRD."""
        lookup = SchemaLookup(self._logger)
        for descriptor in self.fetch_rgd_objects():
            lookup.add(descriptor)
        return lookup
