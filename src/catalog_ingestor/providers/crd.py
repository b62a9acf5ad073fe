"""
CRD data provider.

Collects the CustomResourceDefinitions selected for generic template
generation, either by explicit name or by label selector.
"""

from __future__ import annotations

import logging
from typing import Any

from catalog_ingestor.config import IngestorConfig
from catalog_ingestor.fetcher import FetchError, ResourceFetcher
from catalog_ingestor.models import DescriptorSource, SchemaDescriptor, SchemaLookup, Scope
from catalog_ingestor.providers.clusters import (
    CRD_PATH,
    aggregate_by_name,
    fan_out_clusters,
    resolve_clusters,
)

logger = logging.getLogger(__name__)


def descriptor_from_crd(crd: dict[str, Any]) -> SchemaDescriptor:
    """Normalize a CustomResourceDefinition."""
    spec = crd.get("spec") or {}
    names = spec.get("names") or {}
    return SchemaDescriptor(
        name=(crd.get("metadata") or {}).get("name", ""),
        source=DescriptorSource.CRD,
        group=spec.get("group", ""),
        kind=names.get("kind", ""),
        plural=names.get("plural", ""),
        singular=names.get("singular") or names.get("kind", "").lower(),
        scope=Scope.parse(spec.get("scope"), Scope.NAMESPACED),
        versions=list(spec.get("versions") or []),
        raw=crd,
    )


class CRDDataProvider:
    """Fetches CRDs targeted by genericCRDTemplates."""

    def __init__(
        self,
        fetcher: ResourceFetcher,
        config: IngestorConfig,
        log: logging.Logger | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._config = config
        self._logger = log or logger

    def fetch_crd_objects(self) -> list[SchemaDescriptor]:
        """
        Fetch and normalize the targeted CRDs across all clusters.

        Returns:
            One descriptor per CRD name, carrying every cluster it was
            found on. CRDs without a stored version are skipped.
        """
        settings = self._config.generic_crd_templates
        if not settings.is_configured:
            return []
        if settings.crds and settings.crd_label_selector is not None:
            self._logger.warning(
                "Both CRD targets and label selector are configured for "
                "genericCRDTemplates; only one may be used. Skipping CRD ingestion."
            )
            return []

        clusters = resolve_clusters(self._fetcher, self._config, self._logger)
        per_cluster = fan_out_clusters(
            clusters,
            self._fetch_cluster,
            self._config.max_workers,
            "CRDs",
            self._logger,
        )
        return aggregate_by_name(clusters, per_cluster, self._fetcher)

    def _fetch_cluster(self, cluster: str) -> list[SchemaDescriptor]:
        settings = self._config.generic_crd_templates
        raw: list[dict[str, Any]] = []

        if settings.crds:
            for name in settings.crds:
                try:
                    crd = self._fetcher.fetch_resource(cluster, f"{CRD_PATH}/{name}")
                except FetchError as e:
                    self._logger.debug(f"CRD {name} not available on cluster {cluster}: {e}")
                    continue
                if crd:
                    raw.append(crd)
        else:
            raw = self._fetcher.fetch_resources(
                cluster,
                CRD_PATH,
                {"labelSelector": settings.crd_label_selector.to_selector()},
            )

        descriptors = []
        for crd in raw:
            descriptor = descriptor_from_crd(crd)
            if descriptor.stored_version() is None:
                self._logger.warning(
                    f"No stored version found for CRD {descriptor.name}, skipping"
                )
                continue
            descriptors.append(descriptor)
        return descriptors

    def build_crd_lookup(self) -> SchemaLookup:
        """Index the targeted CRDs by kind, group and version."""
        lookup = SchemaLookup(self._logger)
        for descriptor in self.fetch_crd_objects():
            lookup.add(descriptor)
        return lookup
