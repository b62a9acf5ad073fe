"""
Kubernetes data provider.

Produces the per-run list of cluster objects to translate into catalog
records. For every cluster it works out the set of workload types,
fetches them concurrently, filters by annotation and namespace, and
enriches Crossplane and KRO objects with the schema context the
translation stage needs.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any

from catalog_ingestor.config import IngestorConfig, WorkloadType
from catalog_ingestor.fetcher import FetchError, ResourceFetcher
from catalog_ingestor.models import (
    KRO_RGD_LABEL,
    CompositionData,
    KroData,
    KubernetesObject,
    ObjectCategory,
    SchemaDescriptor,
    Scope,
)
from catalog_ingestor.providers.clusters import (
    COMPOSITIONS_PATH,
    CRD_PATH,
    RGD_PATH,
    fan_out_clusters,
    resolve_clusters,
)
from catalog_ingestor.providers.rgd import fetch_generated_crd, is_active
from catalog_ingestor.providers.xrd import XRDDataProvider

logger = logging.getLogger(__name__)

DEFAULT_WORKLOAD_TYPES = [
    WorkloadType(group="apps", api_version="v1", plural="deployments"),
    WorkloadType(group="apps", api_version="v1", plural="statefulsets"),
    WorkloadType(group="apps", api_version="v1", plural="daemonsets"),
    WorkloadType(group="batch", api_version="v1", plural="cronjobs"),
]


def used_functions(composition: dict[str, Any] | None) -> list[str]:
    """Distinct pipeline function names of a composition, in order."""
    functions: list[str] = []
    for step in ((composition or {}).get("spec") or {}).get("pipeline") or []:
        name = (step.get("functionRef") or {}).get("name")
        if name and name not in functions:
            functions.append(name)
    return functions


_BUILTIN_KINDS = {
    "deployments": "Deployment",
    "statefulsets": "StatefulSet",
    "daemonsets": "DaemonSet",
    "cronjobs": "CronJob",
}


def kind_from_plural(plural: str) -> str:
    """Best-effort kind for list items that omit it: widgets -> Widget."""
    if plural in _BUILTIN_KINDS:
        return _BUILTIN_KINDS[plural]
    return plural[:1].upper() + plural[1:-1]


def _unique(types: list[WorkloadType]) -> list[WorkloadType]:
    seen = set()
    result = []
    for workload_type in types:
        if workload_type.resource_path not in seen:
            seen.add(workload_type.resource_path)
            result.append(workload_type)
    return result


class _ClusterContext:
    """Schema objects fetched at most once per cluster per run."""

    def __init__(self, fetcher: ResourceFetcher, cluster: str, log: logging.Logger):
        self._fetcher = fetcher
        self._cluster = cluster
        self._logger = log
        self._compositions: dict[str, dict[str, Any]] | None = None
        self._rgds: dict[str, dict[str, Any]] | None = None
        self._crds: dict[str, dict[str, Any] | None] = {}

    def composition(self, name: str) -> dict[str, Any] | None:
        if self._compositions is None:
            try:
                items = self._fetcher.fetch_resources(self._cluster, COMPOSITIONS_PATH)
            except FetchError as e:
                self._logger.debug(f"Failed to fetch compositions from {self._cluster}: {e}")
                items = []
            self._compositions = {
                (c.get("metadata") or {}).get("name", ""): c for c in items
            }
        return self._compositions.get(name)

    def rgd(self, uid: str) -> dict[str, Any] | None:
        if self._rgds is None:
            try:
                items = self._fetcher.fetch_resources(self._cluster, RGD_PATH)
            except FetchError as e:
                self._logger.debug(f"Failed to fetch RGDs from {self._cluster}: {e}")
                items = []
            self._rgds = {(r.get("metadata") or {}).get("uid", ""): r for r in items}
        return self._rgds.get(uid)

    def generated_crd(self, uid: str) -> dict[str, Any] | None:
        if uid not in self._crds:
            try:
                self._crds[uid] = fetch_generated_crd(self._fetcher, self._cluster, uid)
            except FetchError as e:
                self._logger.debug(f"Failed to fetch CRD for RGD {uid}: {e}")
                self._crds[uid] = None
        return self._crds[uid]


class KubernetesDataProvider:
    """
    Fetches and normalizes the cluster objects ingested as components.

    Example:
        >>> provider = KubernetesDataProvider(fetcher, config)
        >>> objects = provider.fetch_kubernetes_objects()
    """

    def __init__(
        self,
        fetcher: ResourceFetcher,
        config: IngestorConfig,
        log: logging.Logger | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._config = config
        self._logger = log or logger

    def base_workload_types(
        self, xrds: list[SchemaDescriptor] | None = None
    ) -> list[WorkloadType]:
        """
        Workload types fetched from every cluster.

        Args:
            xrds: Already fetched XRD descriptors; fetched here when None

        Returns:
            Built-in types (unless disabled), custom types, and the
            versions of every Crossplane v2 non-legacy composite
        """
        components = self._config.components
        types: list[WorkloadType] = []
        if not components.disable_default_workload_types:
            types.extend(DEFAULT_WORKLOAD_TYPES)
        types.extend(components.custom_workload_types)

        if self._config.crossplane.enabled:
            if xrds is None:
                xrds = XRDDataProvider(self._fetcher, self._config, self._logger).fetch_xrd_objects()
            for xrd in xrds:
                if xrd.is_v2 and xrd.scope != Scope.LEGACY_CLUSTER:
                    for version in xrd.version_names:
                        types.append(
                            WorkloadType(group=xrd.group, api_version=version, plural=xrd.plural)
                        )
        return types

    def fetch_kubernetes_objects(
        self, xrds: list[SchemaDescriptor] | None = None
    ) -> list[KubernetesObject]:
        """
        Fetch, filter and enrich objects from every cluster.

        A failing cluster contributes nothing; a failing workload type
        contributes nothing for that cluster.

        Args:
            xrds: Already fetched XRD descriptors, to avoid a second scan

        Returns:
            Objects in cluster order, then workload-type order
        """
        clusters = resolve_clusters(self._fetcher, self._config, self._logger)
        if not clusters:
            return []

        base_types = self.base_workload_types(xrds)
        per_cluster = fan_out_clusters(
            clusters,
            lambda cluster: self._fetch_cluster(cluster, base_types),
            self._config.max_workers,
            "objects",
            self._logger,
        )

        objects: list[KubernetesObject] = []
        for cluster in clusters:
            objects.extend(per_cluster.get(cluster, []))
        self._logger.info(f"Fetched {len(objects)} objects from {len(clusters)} clusters")
        return objects

    def fetch_crd_mapping(self) -> dict[str, str]:
        """Map every CRD kind to its plural across all clusters."""
        clusters = resolve_clusters(self._fetcher, self._config, self._logger)

        def list_kinds(cluster: str) -> list[tuple[str, str]]:
            pairs = []
            for crd in self._fetcher.fetch_resources(cluster, CRD_PATH):
                names = (crd.get("spec") or {}).get("names") or {}
                if names.get("kind") and names.get("plural"):
                    pairs.append((names["kind"], names["plural"]))
            return pairs

        per_cluster = fan_out_clusters(
            clusters, list_kinds, self._config.max_workers, "CRD mapping", self._logger
        )
        mapping: dict[str, str] = {}
        for cluster in clusters:
            mapping.update(dict(per_cluster.get(cluster, [])))
        return mapping

    def _cluster_workload_types(
        self, cluster: str, base_types: list[WorkloadType]
    ) -> list[WorkloadType]:
        types = list(base_types)

        if self._config.crossplane.enabled and self._config.crossplane.claims.ingest_all_claims:
            types.extend(self._claim_types(cluster))

        if self._config.kro.enabled and self._config.kro.instances.ingest_all_instances:
            try:
                types.extend(self._kro_types(cluster))
            except FetchError as e:
                self._logger.debug(f"Failed to fetch RGDs for cluster {cluster}: {e}")

        if self._config.generic_crd_templates.is_configured:
            types.extend(self._generic_crd_types(cluster))

        return _unique(types)

    def _claim_types(self, cluster: str) -> list[WorkloadType]:
        types = []
        for crd in self._fetcher.fetch_resources(cluster, CRD_PATH):
            spec = crd.get("spec") or {}
            names = spec.get("names") or {}
            if "claim" not in (names.get("categories") or []):
                continue
            versions = spec.get("versions") or [{}]
            types.append(
                WorkloadType(
                    group=spec.get("group", ""),
                    api_version=versions[0].get("name", ""),
                    plural=names.get("plural", ""),
                )
            )
        return types

    def _kro_types(self, cluster: str) -> list[WorkloadType]:
        types = []
        for rgd in self._fetcher.fetch_resources(cluster, RGD_PATH):
            metadata = rgd.get("metadata") or {}
            if not is_active(rgd):
                self._logger.debug(f"Skipping inactive RGD {metadata.get('name')}")
                continue
            crd = fetch_generated_crd(self._fetcher, cluster, metadata.get("uid", ""))
            if crd is None:
                self._logger.warning(f"No CRD found for RGD {metadata.get('name')}")
                continue
            spec = crd.get("spec") or {}
            for version in spec.get("versions") or []:
                types.append(
                    WorkloadType(
                        group=spec.get("group", ""),
                        api_version=version.get("name", ""),
                        plural=(spec.get("names") or {}).get("plural", ""),
                    )
                )
        return types

    def _generic_crd_types(self, cluster: str) -> list[WorkloadType]:
        settings = self._config.generic_crd_templates
        query = None
        if settings.crd_label_selector is not None:
            query = {"labelSelector": settings.crd_label_selector.to_selector()}

        types = []
        for crd in self._fetcher.fetch_resources(cluster, CRD_PATH, query):
            if settings.crds and (crd.get("metadata") or {}).get("name") not in settings.crds:
                continue
            spec = crd.get("spec") or {}
            versions = spec.get("versions") or []
            if not versions:
                continue
            storage = next((v for v in versions if v.get("storage")), versions[0])
            types.append(
                WorkloadType(
                    group=spec.get("group", ""),
                    api_version=storage.get("name", ""),
                    plural=(spec.get("names") or {}).get("plural", ""),
                )
            )
        return types

    def _fetch_type(self, cluster: str, workload_type: WorkloadType) -> list[dict[str, Any]]:
        api_version = (
            f"{workload_type.group}/{workload_type.api_version}"
            if workload_type.group
            else workload_type.api_version
        )
        items = []
        for resource in self._fetcher.fetch_resources(cluster, workload_type.resource_path):
            if not resource:
                continue
            item = dict(resource)
            item["apiVersion"] = api_version
            item["kind"] = resource.get("kind") or kind_from_plural(workload_type.plural)
            items.append(item)
        return items

    def _fetch_all_types(
        self, cluster: str, types: list[WorkloadType]
    ) -> list[tuple[dict[str, Any], WorkloadType]]:
        """Fetch every workload type concurrently; failures yield nothing."""
        results: dict[int, list[dict[str, Any]]] = {}
        with ThreadPoolExecutor(max_workers=self._config.max_workers) as executor:
            future_to_index = {
                executor.submit(self._fetch_type, cluster, workload_type): index
                for index, workload_type in enumerate(types)
            }
            for future in as_completed(future_to_index):
                index = future_to_index[future]
                try:
                    results[index] = future.result()
                except Exception as e:
                    self._logger.debug(
                        f"Failed to fetch {types[index].resource_path} from cluster {cluster}: {e}"
                    )
                    results[index] = []

        return [
            (item, types[index])
            for index in range(len(types))
            for item in results.get(index, [])
        ]

    def _keep(self, raw: dict[str, Any]) -> bool:
        """Apply metadata, annotation and namespace filters."""
        metadata = raw.get("metadata")
        if not metadata:
            return False
        annotations = metadata.get("annotations") or {}
        if annotations.get(self._config.annotation("exclude-from-catalog")):
            return False
        if self._config.components.only_ingest_annotated_resources:
            return bool(annotations.get(self._config.annotation("add-to-catalog")))
        return metadata.get("namespace") not in self._config.components.excluded_namespaces

    def _fetch_cluster(
        self, cluster: str, base_types: list[WorkloadType]
    ) -> list[KubernetesObject]:
        types = self._cluster_workload_types(cluster, base_types)
        context = _ClusterContext(self._fetcher, cluster, self._logger)

        objects = []
        for raw, workload_type in self._fetch_all_types(cluster, types):
            if not self._keep(raw):
                continue
            obj = KubernetesObject.from_raw(raw, cluster, workload_type.default_type)
            obj = self._enrich(obj, context)
            if obj is not None:
                objects.append(obj)
        return objects

    def _enrich(
        self, obj: KubernetesObject, context: _ClusterContext
    ) -> KubernetesObject | None:
        """Attach composition or KRO data; None drops the object."""
        crossplane_enabled = self._config.crossplane.enabled
        kro_enabled = self._config.kro.enabled

        if not crossplane_enabled and obj.category in (
            ObjectCategory.CLAIM,
            ObjectCategory.COMPOSITE,
        ):
            self._logger.debug(f"Skipping Crossplane resource: {obj.kind} {obj.name}")
            return None

        rgd_id = obj.labels.get(KRO_RGD_LABEL)
        if not kro_enabled and rgd_id:
            self._logger.debug(f"Skipping KRO resource: {obj.kind} {obj.name}")
            return None

        composition_name = obj.composition_ref_name
        if crossplane_enabled and composition_name:
            obj.composition_data = CompositionData(
                name=composition_name,
                used_functions=used_functions(context.composition(composition_name)),
            )
            return obj

        if kro_enabled and rgd_id:
            rgd = context.rgd(rgd_id)
            if rgd is not None and self._is_rgd_instance(obj, rgd):
                obj.kro_data = KroData(rgd=rgd, crd=context.generated_crd(rgd_id))

        # Resources created by an instance carry the same label
        if obj.category == ObjectCategory.KRO_INSTANCE and obj.kro_data is None:
            obj.category = ObjectCategory.WORKLOAD

        return obj

    @staticmethod
    def _is_rgd_instance(obj: KubernetesObject, rgd: dict[str, Any]) -> bool:
        """Whether obj is the RGD's instance rather than a resource it created."""
        schema = (rgd.get("spec") or {}).get("schema") or {}
        return (
            (schema.get("group") or "").lower() == obj.group.lower()
            and (schema.get("kind") or "").lower() == obj.kind.lower()
        )
