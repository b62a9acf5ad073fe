"""
Translation engine.

Turns normalized cluster objects into System and Component/Resource
catalog records. Each object category (workload, Crossplane claim,
Crossplane v2 composite, KRO instance) shares the naming, ownership and
annotation rules and adds its own category annotations.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Iterable

from catalog_ingestor.config import IngestorConfig
from catalog_ingestor.models import (
    KRO_RGD_LABEL,
    Entity,
    EntityKind,
    KubernetesObject,
    ObjectCategory,
    SchemaDescriptor,
    SchemaLookup,
    has_valid_name,
)
from catalog_ingestor.translation.annotations import (
    KUBERNETES_CLUSTER,
    LABEL_SELECTOR,
    LABEL_SELECTOR_KINDS,
    SOURCE_LOCATION,
    TECHDOCS_REF,
    api_ref_name,
    argo_app_annotations,
    custom_workload_uri,
    find_common_labels,
    parse_component_annotations,
    parse_links,
    split_list_annotation,
)
from catalog_ingestor.translation.naming import Naming, resolve_naming
from catalog_ingestor.translation.ownership import OwnershipCache, resolve_owner_ref

logger = logging.getLogger(__name__)


class TranslationEngine:
    """
    Translates KubernetesObjects into catalog records.

    One engine is built per run with that run's lookups and ownership
    cache.

    Attributes:
        config: Ingestor configuration
        ownership: Namespace owner cache for this run
        composite_lookup: XRD descriptors keyed by composite kind/group/version
        rgd_lookup: RGD descriptors keyed by instance kind/group/version
        crd_mapping: CRD kind to plural, across all clusters
    """

    def __init__(
        self,
        config: IngestorConfig,
        ownership: OwnershipCache,
        composite_lookup: SchemaLookup | None = None,
        rgd_lookup: SchemaLookup | None = None,
        crd_mapping: dict[str, str] | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self.config = config
        self.ownership = ownership
        self.composite_lookup = composite_lookup or SchemaLookup()
        self.rgd_lookup = rgd_lookup or SchemaLookup()
        self.crd_mapping = crd_mapping or {}
        self._logger = log or logger

    def _ann(self, name: str) -> str:
        return self.config.annotation(name)

    def translate(self, obj: KubernetesObject) -> list[Entity]:
        """
        Translate one object into its System and component records.

        Returns:
            [system, component], [system] when the component name is too
            long, [component] when only the System name is too long and the
            component references another System, or [] when the object is
            skipped or its own System is dropped
        """
        crossplane_enabled = self.config.crossplane.enabled

        if crossplane_enabled and obj.category == ObjectCategory.CLAIM:
            self._logger.debug(f"Processing Crossplane claim: {obj.kind} {obj.name}")
            return self._translate_claim(obj)

        if crossplane_enabled and obj.category == ObjectCategory.COMPOSITE:
            self._logger.debug(f"Processing Crossplane XR: {obj.kind} {obj.name}")
            return self._translate_composite(obj)

        if self.config.kro.enabled and obj.category == ObjectCategory.KRO_INSTANCE:
            descriptor = self.rgd_lookup.get_for(obj.kind, obj.api_version)
            if descriptor is not None:
                self._logger.debug(f"Processing KRO instance: {obj.kind} {obj.name}")
                return self._translate_kro_instance(obj, descriptor)

        self._logger.debug(f"Processing as regular K8s resource: {obj.kind} {obj.name}")
        return self._translate_workload(obj)

    def translate_all(self, objects: Iterable[KubernetesObject]) -> list[Entity]:
        """
        Translate objects concurrently, preserving input order.

        System records shared by several objects are emitted once; the
        first object to produce a given System wins.
        """
        objects = list(objects)
        with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
            translated = list(executor.map(self.translate, objects))

        entities: list[Entity] = []
        seen_systems: set[tuple[str, str]] = set()
        for records in translated:
            for entity in records:
                if entity.kind == EntityKind.SYSTEM:
                    key = (entity.namespace, entity.name)
                    if key in seen_systems:
                        continue
                    seen_systems.add(key)
                entities.append(entity)
        return entities

    def resolve_owner(self, obj: KubernetesObject, naming: Naming) -> str:
        """
        Resolve the owner of obj.

        Precedence: the object's owner annotation, then the owning
        namespace's owner annotation when inheritance is enabled, then
        the configured default owner. All three follow the same
        namespace-prefix rule.
        """
        owner = resolve_owner_ref(obj.annotations.get(self._ann("owner")), naming.references_namespace)
        if owner:
            return owner

        if self.config.inherit_owner_from_namespace and obj.namespace:
            inherited = self.ownership.get_owner_annotation(obj.cluster_name, obj.namespace)
            owner = resolve_owner_ref(inherited, naming.references_namespace)
            if owner:
                return owner

        return (
            resolve_owner_ref(self.config.default_owner, naming.references_namespace)
            or self.config.default_owner
        )

    def _record_namespace(self, obj: KubernetesObject, naming: Naming) -> str:
        return obj.annotations.get(self._ann("backstage-namespace")) or naming.system_namespace

    def _system(self, obj: KubernetesObject, naming: Naming, owner: str) -> Entity:
        annotations = obj.annotations
        spec: dict[str, Any] = {
            "owner": owner,
            "type": annotations.get(self._ann("system-type")) or "kubernetes-namespace",
        }
        domain = annotations.get(self._ann("domain"))
        if domain:
            spec["domain"] = domain

        return Entity(
            kind=EntityKind.SYSTEM,
            metadata={
                "name": naming.system_name,
                "namespace": self._record_namespace(obj, naming),
                "annotations": parse_component_annotations(
                    annotations.get(self._ann("component-annotations")), obj.cluster_name
                ),
            },
            spec=spec,
        )

    def _component(
        self,
        obj: KubernetesObject,
        naming: Naming,
        owner: str,
        ingest_as_resource: bool,
        spec_type: str,
        category_annotations: dict[str, str],
        always_cluster_annotation: bool = False,
        consumes_apis: list[str] | None = None,
        provides_apis: list[str] | None = None,
    ) -> Entity:
        """Build the Component or Resource record shared by every category."""
        annotations = obj.annotations
        links_key = self._ann("links")

        merged: dict[str, str] = {k: v for k, v in annotations.items() if k != links_key}
        merged.update(
            {
                self._ann("kubernetes-resource-kind"): obj.kind,
                self._ann("kubernetes-resource-name"): obj.name,
                self._ann("kubernetes-resource-api-version"): obj.api_version,
                self._ann("kubernetes-resource-namespace"): obj.namespace or "",
            }
        )
        if always_cluster_annotation or naming.cluster_aware:
            merged[KUBERNETES_CLUSTER] = obj.cluster_name
        merged.update(
            parse_component_annotations(
                annotations.get(self._ann("component-annotations")), obj.cluster_name
            )
        )
        merged.update(argo_app_annotations(annotations, self.config.argo_integration))
        merged.update(category_annotations)

        kind = EntityKind.RESOURCE if ingest_as_resource else EntityKind.COMPONENT
        spec: dict[str, Any] = {
            "type": spec_type,
            "lifecycle": annotations.get(self._ann("lifecycle")) or "production",
            "owner": owner,
            "system": annotations.get(self._ann("system")) or naming.system_ref,
        }
        depends_on = split_list_annotation(annotations.get(self._ann("dependsOn")))
        if depends_on:
            spec["dependsOn"] = depends_on
        if kind == EntityKind.COMPONENT:
            if provides_apis:
                spec["providesApis"] = provides_apis
            if consumes_apis:
                spec["consumesApis"] = consumes_apis
        subcomponent_of = annotations.get(self._ann("subcomponent-of"))
        if subcomponent_of:
            spec["subcomponentOf"] = subcomponent_of

        return Entity(
            kind=kind,
            metadata={
                "name": annotations.get(self._ann("name")) or naming.name,
                "title": annotations.get(self._ann("title")) or naming.title,
                "description": annotations.get(self._ann("description"))
                or f"{obj.kind} {obj.name} from {obj.cluster_name}",
                "namespace": self._record_namespace(obj, naming),
                "links": parse_links(annotations.get(links_key), self._logger),
                "annotations": merged,
                "tags": [f"cluster:{obj.cluster_name}", f"kind:{obj.kind.lower()}"],
            },
            spec=spec,
        )

    def _emit(self, system: Entity, component: Entity, naming: Naming) -> list[Entity]:
        """
        Validate names.

        A dropped System takes its component with it only when the
        component references that System.
        """
        records = []
        if has_valid_name(system, self._logger):
            records.append(system)
        elif component.spec.get("system") == naming.system_ref:
            self._logger.warning(
                f"Skipping {component.kind.value} {component.name}: its System was not ingested"
            )
            return []
        if has_valid_name(component, self._logger):
            records.append(component)
        return records

    def _translate_workload(self, obj: KubernetesObject) -> list[Entity]:
        annotations = obj.annotations
        naming = resolve_naming(self.config.mappings, obj)
        owner = self.resolve_owner(obj, naming)

        extra: dict[str, str] = {}
        explicit_selector = annotations.get(self._ann("kubernetes-label-selector"))
        if explicit_selector:
            extra[LABEL_SELECTOR] = explicit_selector
        elif obj.kind in LABEL_SELECTOR_KINDS:
            selector = find_common_labels(obj.raw)
            if selector:
                extra[LABEL_SELECTOR] = selector

        if obj.api_version:
            extra[self._ann("custom-workload-uri")] = custom_workload_uri(
                obj.group, obj.version, obj.kind, obj.name, obj.namespace
            )

        repo_url = annotations.get(self._ann("source-code-repo-url"))
        if repo_url:
            location = f"url:{repo_url}"
            extra[SOURCE_LOCATION] = location
            techdocs_path = annotations.get(self._ann("techdocs-path"))
            if techdocs_path:
                branch = annotations.get(self._ann("source-branch")) or "main"
                extra[TECHDOCS_REF] = f"{location}/blob/{branch}/{techdocs_path}"

        component = self._component(
            obj,
            naming,
            owner,
            ingest_as_resource=self.config.components.ingest_as_resources,
            spec_type=annotations.get(self._ann("component-type")) or obj.workload_type or "service",
            category_annotations=extra,
            provides_apis=split_list_annotation(annotations.get(self._ann("providesApis"))),
            consumes_apis=split_list_annotation(annotations.get(self._ann("consumesApis"))),
        )
        return self._emit(self._system(obj, naming, owner), component, naming)

    def _translate_claim(self, obj: KubernetesObject) -> list[Entity]:
        plural = self.crd_mapping.get(obj.kind)
        if not plural:
            self._logger.debug(f"No CRD mapping found for kind {obj.kind}, skipping claim processing")
            return []

        naming = resolve_naming(self.config.mappings, obj)
        owner = self.resolve_owner(obj, naming)

        resource_ref = obj.spec.get("resourceRef") or {}
        composite_kind = resource_ref.get("kind") or ""
        composite_name = resource_ref.get("name") or ""
        composite_group, _, composite_version = (resource_ref.get("apiVersion") or "").partition("/")
        composition = obj.composition_data

        crossplane = {
            self._ann("claim-name"): obj.name,
            self._ann("claim-kind"): obj.kind,
            self._ann("claim-version"): obj.version,
            self._ann("claim-group"): obj.group,
            self._ann("claim-plural"): plural,
            self._ann("crossplane-resource"): "true",
            self._ann("composite-kind"): composite_kind,
            self._ann("composite-name"): composite_name,
            self._ann("composite-group"): composite_group,
            self._ann("composite-version"): composite_version,
            self._ann("composite-plural"): self.crd_mapping.get(composite_kind, "")
            if composite_kind
            else "",
            self._ann("composition-name"): composition.name if composition else "",
            self._ann("composition-functions"): ",".join(composition.used_functions)
            if composition
            else "",
            self._ann("component-type"): "crossplane-claim",
            LABEL_SELECTOR: (
                f"crossplane.io/claim-name={obj.name},"
                f"crossplane.io/claim-namespace={obj.namespace or ''},"
                f"crossplane.io/composite={composite_name}"
            ),
        }

        component = self._component(
            obj,
            naming,
            owner,
            ingest_as_resource=self.config.crossplane.claims.ingest_as_resources,
            spec_type="crossplane-claim",
            category_annotations=crossplane,
            consumes_apis=[f"{naming.references_namespace}/{api_ref_name(obj.kind, obj.api_version)}"],
        )
        return self._emit(self._system(obj, naming, owner), component, naming)

    def _translate_composite(self, obj: KubernetesObject) -> list[Entity]:
        descriptor = self.composite_lookup.get_for(obj.kind, obj.api_version)
        if descriptor is None:
            self._logger.debug(
                f"No composite kind lookup found for {obj.kind} {obj.api_version}, "
                f"skipping composite processing"
            )
            return []

        naming = resolve_naming(self.config.mappings, obj)
        owner = self.resolve_owner(obj, naming)
        composition = obj.composition_data

        crossplane = {
            self._ann("crossplane-version"): "v2",
            self._ann("crossplane-scope"): descriptor.scope.value,
            self._ann("composite-kind"): obj.kind,
            self._ann("composite-name"): obj.name,
            self._ann("composite-namespace"): obj.namespace or "default",
            self._ann("composite-group"): obj.group,
            self._ann("composite-version"): obj.version,
            self._ann("composite-plural"): descriptor.plural,
            self._ann("composition-name"): obj.composition_ref_name or "",
            self._ann("crossplane-resource"): "true",
            self._ann("component-type"): "crossplane-xr",
            LABEL_SELECTOR: f"crossplane.io/composite={obj.name}",
        }
        if composition and composition.used_functions:
            crossplane[self._ann("composition-functions")] = ",".join(composition.used_functions)

        component = self._component(
            obj,
            naming,
            owner,
            ingest_as_resource=self.config.crossplane.claims.ingest_as_resources,
            spec_type="crossplane-xr",
            category_annotations=crossplane,
            always_cluster_annotation=True,
            consumes_apis=[f"{naming.references_namespace}/{api_ref_name(obj.kind, obj.api_version)}"],
        )
        return self._emit(self._system(obj, naming, owner), component, naming)

    def _translate_kro_instance(
        self, obj: KubernetesObject, descriptor: SchemaDescriptor
    ) -> list[Entity]:
        naming = resolve_naming(self.config.mappings, obj)
        owner = self.resolve_owner(obj, naming)

        if obj.kro_data is not None:
            rgd, crd = obj.kro_data.rgd, obj.kro_data.crd
        else:
            rgd, crd = descriptor.raw, descriptor.generated_crd

        sub_resources = []
        for resource in (rgd.get("spec") or {}).get("resources") or []:
            template = resource.get("template")
            if not template:
                continue
            sub_resources.append(
                f"{(template.get('apiVersion') or '').lower()}:{(template.get('kind') or '').lower()}"
            )

        kro = {
            self._ann("kro-rgd-name"): (rgd.get("metadata") or {}).get("name", ""),
            self._ann("kro-rgd-id"): obj.labels.get(KRO_RGD_LABEL, ""),
            self._ann("kro-rgd-crd-name"): ((crd or {}).get("metadata") or {}).get("name", ""),
            self._ann("kro-instance-uid"): obj.uid or "",
            self._ann("kro-instance-namespace"): obj.namespace or "",
            self._ann("kro-instance-name"): obj.name,
            self._ann("kro-sub-resources"): ",".join(sub_resources),
            self._ann("component-type"): "kro-instance",
        }

        component = self._component(
            obj,
            naming,
            owner,
            ingest_as_resource=self.config.kro.instances.ingest_as_resources,
            spec_type="kro-instance",
            category_annotations=kro,
            consumes_apis=[f"{naming.references_namespace}/{api_ref_name(obj.kind, obj.api_version)}"],
        )
        return self._emit(self._system(obj, naming, owner), component, naming)
