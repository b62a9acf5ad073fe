"""
XRD data provider.

Collects Crossplane CompositeResourceDefinitions from every cluster,
attaches the generated CRD and matching compositions, and builds the
composite-kind lookup used to recognise composites at translation time.
"""

from __future__ import annotations

import logging
from typing import Any

from catalog_ingestor.config import IngestorConfig
from catalog_ingestor.fetcher import FetchError, ResourceFetcher
from catalog_ingestor.models import DescriptorSource, SchemaDescriptor, SchemaLookup, Scope
from catalog_ingestor.providers.clusters import (
    COMPOSITIONS_PATH,
    CRD_PATH,
    aggregate_by_name,
    fan_out_clusters,
    resolve_clusters,
)

logger = logging.getLogger(__name__)

XRD_V1_PATH = "apiextensions.crossplane.io/v1/compositeresourcedefinitions"
XRD_V2_PATH = "apiextensions.crossplane.io/v2/compositeresourcedefinitions"


class XRDDataProvider:
    """Fetches CompositeResourceDefinitions."""

    def __init__(
        self,
        fetcher: ResourceFetcher,
        config: IngestorConfig,
        log: logging.Logger | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._config = config
        self._logger = log or logger

    def fetch_xrd_objects(self) -> list[SchemaDescriptor]:
        """
        Fetch and normalize XRDs across all clusters.

        Returns:
            One descriptor per XRD name, carrying every cluster it was
            found on
        """
        if not self._config.crossplane.enabled:
            self._logger.debug("Crossplane integration is disabled")
            return []

        clusters = resolve_clusters(self._fetcher, self._config, self._logger)
        per_cluster = fan_out_clusters(
            clusters,
            self._fetch_cluster,
            self._config.max_workers,
            "XRDs",
            self._logger,
        )
        return aggregate_by_name(clusters, per_cluster, self._fetcher)

    def build_composite_kind_lookup(self) -> SchemaLookup:
        """Index XRDs by composite kind, group and version."""
        lookup = SchemaLookup(self._logger)
        for descriptor in self.fetch_xrd_objects():
            lookup.add(descriptor)
        return lookup

    def _list_xrds(self, cluster: str) -> list[dict[str, Any]] | None:
        """List v1 and v2 XRDs; None when neither API is served."""
        results: dict[str, list[dict[str, Any]]] = {}
        for version, path in (("v1", XRD_V1_PATH), ("v2", XRD_V2_PATH)):
            try:
                results[version] = self._fetcher.fetch_resources(cluster, path)
            except FetchError as e:
                self._logger.debug(f"{version} XRDs not available on cluster {cluster}: {e}")

        if not results:
            return None

        # The same XRD may be served by both API versions; prefer v2.
        by_name: dict[str, dict[str, Any]] = {}
        for xrd in results.get("v2", []) + results.get("v1", []):
            name = (xrd.get("metadata") or {}).get("name")
            if name and name not in by_name:
                by_name[name] = xrd
        return list(by_name.values())

    def _fetch_cluster(self, cluster: str) -> list[SchemaDescriptor]:
        xrds = self._list_xrds(cluster)
        if xrds is None:
            self._logger.warning(f"Cluster {cluster} has no Crossplane APIs available")
            return []

        crds = self._fetcher.fetch_resources(cluster, CRD_PATH)
        try:
            compositions = self._fetcher.fetch_resources(cluster, COMPOSITIONS_PATH)
        except FetchError as e:
            self._logger.debug(f"Failed to fetch compositions from cluster {cluster}: {e}")
            compositions = []

        descriptors = []
        for xrd in xrds:
            descriptor = self._to_descriptor(xrd, crds, compositions)
            if descriptor is not None:
                descriptors.append(descriptor)
        return descriptors

    def _to_descriptor(
        self,
        xrd: dict[str, Any],
        crds: list[dict[str, Any]],
        compositions: list[dict[str, Any]],
    ) -> SchemaDescriptor | None:
        metadata = xrd.get("metadata") or {}
        spec = xrd.get("spec") or {}
        name = metadata.get("name", "")
        annotations = metadata.get("annotations") or {}

        composite_type = ((xrd.get("status") or {}).get("controllers") or {}).get(
            "compositeResourceType"
        ) or {}
        composite_kind = composite_type.get("kind")
        composite_api_version = composite_type.get("apiVersion")
        if not composite_kind or not composite_api_version:
            self._logger.error(f"XRD {name} has an invalid or missing compositeResourceType")
            return None

        if annotations.get(self._config.annotation("exclude-from-catalog")):
            return None
        if not self._config.crossplane.xrds.ingest_all_xrds and not annotations.get(
            self._config.annotation("add-to-catalog")
        ):
            return None

        is_v2 = bool(spec.get("scope"))
        scope = Scope.parse(spec.get("scope"), Scope.LEGACY_CLUSTER) if is_v2 else Scope.CLUSTER
        claim_names = spec.get("claimNames") or None
        if (not is_v2 or scope == Scope.LEGACY_CLUSTER) and not (claim_names or {}).get("kind"):
            self._logger.debug(f"Skipping XRD {name}: claim-based XRD without claimNames.kind")
            return None

        names = spec.get("names") or {}
        group = spec.get("group", "")
        kind = names.get("kind") or composite_kind

        generated_crd = next(
            (
                crd
                for crd in crds
                if (crd.get("spec") or {}).get("group") == group
                and ((crd.get("spec") or {}).get("names") or {}).get("kind") == composite_kind
            ),
            None,
        )

        matching = []
        for composition in compositions:
            ref = (composition.get("spec") or {}).get("compositeTypeRef") or {}
            if ref.get("apiVersion") == composite_api_version and ref.get("kind") == composite_kind:
                matching.append((composition.get("metadata") or {}).get("name", ""))

        return SchemaDescriptor(
            name=name,
            source=DescriptorSource.XRD,
            group=group,
            kind=kind,
            plural=names.get("plural") or name.split(".")[0],
            singular=names.get("singular", ""),
            scope=scope,
            versions=list(spec.get("versions") or []),
            is_v2=is_v2,
            claim_names=claim_names,
            compositions=matching,
            default_composition=(spec.get("defaultCompositionRef") or {}).get("name"),
            generated_crd=generated_crd,
            raw=xrd,
        )
