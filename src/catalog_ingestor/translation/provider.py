"""
Kubernetes entity provider.

Publishes System and Component/Resource records for workloads,
Crossplane claims and composites, and KRO instances.
"""

from __future__ import annotations

import logging
from collections import Counter

from catalog_ingestor.catalog import EntityProvider
from catalog_ingestor.config import IngestorConfig
from catalog_ingestor.fetcher import ResourceFetcher
from catalog_ingestor.models import Entity, SchemaLookup
from catalog_ingestor.providers import KubernetesDataProvider, RGDDataProvider, XRDDataProvider
from catalog_ingestor.translation.engine import TranslationEngine
from catalog_ingestor.translation.ownership import OwnershipCache

logger = logging.getLogger(__name__)


class KubernetesEntityProvider(EntityProvider):
    """
    Entity provider for cluster objects.

    Each run rebuilds the composite and RGD lookups and the CRD kind
    mapping and translates every fetched object. The namespace ownership
    cache is cleared when a run starts and again when it ends.
    """

    provider_name = "KubernetesEntityProvider"

    def __init__(
        self,
        fetcher: ResourceFetcher,
        config: IngestorConfig,
        log: logging.Logger | None = None,
    ) -> None:
        super().__init__(fetcher, config, log or logger)
        self.ownership = OwnershipCache(fetcher, config.annotation("owner"), self._logger)

    def collect(self) -> list[Entity]:
        config = self._config
        if not config.components.enabled:
            self._logger.debug("Component ingestion is disabled")
            return []

        self.ownership.clear()
        try:
            return self._translate()
        finally:
            self.ownership.clear()

    def _translate(self) -> list[Entity]:
        config = self._config
        composite_lookup = SchemaLookup(self._logger)
        xrds = []
        if config.crossplane.enabled:
            xrds = XRDDataProvider(self._fetcher, config, self._logger).fetch_xrd_objects()
            for xrd in xrds:
                composite_lookup.add(xrd)

        rgd_lookup = SchemaLookup(self._logger)
        if config.kro.enabled:
            rgd_lookup = RGDDataProvider(self._fetcher, config, self._logger).build_rgd_lookup()

        data_provider = KubernetesDataProvider(self._fetcher, config, self._logger)
        objects = data_provider.fetch_kubernetes_objects(xrds)
        crd_mapping = data_provider.fetch_crd_mapping() if config.crossplane.enabled else {}

        engine = TranslationEngine(
            config,
            self.ownership,
            composite_lookup=composite_lookup,
            rgd_lookup=rgd_lookup,
            crd_mapping=crd_mapping,
            log=self._logger,
        )
        entities = engine.translate_all(objects)

        counts = Counter(obj.category.value for obj in objects)
        self._logger.info(
            f"Translated {len(objects)} objects into {len(entities)} entities "
            f"({', '.join(f'{k}={v}' for k, v in sorted(counts.items())) or 'none'})"
        )
        return entities
