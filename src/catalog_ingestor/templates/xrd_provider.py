"""
XRD and CRD template entity provider.

Publishes one scaffolding Template and one API record per version of
every ingested CompositeResourceDefinition, plus a Template for the
stored version and an API record per version of every CRD targeted by
genericCRDTemplates.
"""

from __future__ import annotations

import logging
from typing import Any

from catalog_ingestor.config import IngestorConfig
from catalog_ingestor.fetcher import ResourceFetcher
from catalog_ingestor.models import (
    Entity,
    SchemaDescriptor,
    Scope,
    version_schema_properties,
)
from catalog_ingestor.providers import CRDDataProvider, XRDDataProvider
from catalog_ingestor.templates.base import TemplateEntityProvider
from catalog_ingestor.templates.schema import (
    crossplane_group,
    metadata_group,
    process_properties,
    publish_group,
    requires_namespace,
    spec_group,
    spec_properties,
)
from catalog_ingestor.templates.steps import (
    CLAIM_TEMPLATE_ACTION,
    CRD_TEMPLATE_ACTION,
    extra_steps,
    manifest_step,
    pull_request_step,
)

logger = logging.getLogger(__name__)

PUBLISH_PARAMS = ["pushToGit", "basePath", "manifestLayout", "_editData", "targetBranch", "repoUrl", "clusters"]

CLAIM_EXCLUDE_PARAMS = ["owner", "compositionSelectionStrategy", *PUBLISH_PARAMS, "xrName", "xrNamespace"]
XR_EXCLUDE_PARAMS = ["crossplane.compositionSelectionStrategy", "owner", *PUBLISH_PARAMS, "xrName"]
CRD_EXCLUDE_PARAMS = ["compositionSelectionStrategy", *PUBLISH_PARAMS, "name", "namespace", "owner"]


class XRDTemplateEntityProvider(TemplateEntityProvider):
    """
    Template entity provider for Crossplane XRDs and generic CRDs.

    Nothing is published while Crossplane is disabled. Template
    generation can be switched off per source with ingestOnlyAsAPI;
    API records are always generated.
    """

    provider_name = "XRDTemplateEntityProvider"

    def __init__(
        self,
        fetcher: ResourceFetcher,
        config: IngestorConfig,
        log: logging.Logger | None = None,
    ) -> None:
        super().__init__(fetcher, config, log or logger)

    def collect(self) -> list[Entity]:
        config = self._config
        if not config.crossplane.enabled:
            self._logger.debug("Crossplane integration is disabled")
            return []

        crds = CRDDataProvider(self._fetcher, config, self._logger).fetch_crd_objects()
        entities: list[Entity] = []

        xrds: list[SchemaDescriptor] = []
        if config.crossplane.xrds.enabled:
            xrds = XRDDataProvider(self._fetcher, config, self._logger).fetch_xrd_objects()
            if not config.crossplane.xrds.ingest_only_as_api:
                for xrd in xrds:
                    entities.extend(self.xrd_templates(xrd))
            for xrd in xrds:
                entities.extend(self.xrd_apis(xrd))

        if not config.generic_crd_templates.ingest_only_as_api:
            for crd in crds:
                entities.extend(self.crd_templates(crd))
        for crd in crds:
            entities.extend(self.crd_apis(crd))

        self._logger.info(
            f"Generated {len(entities)} entities from {len(xrds)} XRDs and {len(crds)} CRDs"
        )
        return entities

    def xrd_templates(self, xrd: SchemaDescriptor) -> list[Entity]:
        """One Template per XRD version."""
        if not xrd.versions:
            self._logger.warning(f"Skipping XRD {xrd.name} due to missing or empty versions array")
            return []

        settings = self._config.crossplane.xrds
        clusters = list(xrd.clusters)
        namespaced = requires_namespace(xrd)
        claim_names = xrd.claim_names or {}
        resource_kind = claim_names.get("kind") if xrd.is_claim_based else xrd.kind

        annotations = self.origin_annotations(xrd)
        if xrd.is_claim_based:
            annotations[self._config.annotation("crossplane-claim")] = "true"
        annotations[self._config.annotation("crossplane-version")] = "v2" if xrd.is_v2 else "v1"
        annotations[self._config.annotation("crossplane-scope")] = xrd.scope.value

        required = ["xrName", "owner"] + (["xrNamespace"] if namespaced else [])

        templates = []
        for version in xrd.versions:
            version_name = version.get("name", "")
            parameters = [
                metadata_group("xrName", "xrNamespace" if namespaced else None, required),
                spec_group(
                    process_properties(
                        spec_properties(version),
                        placeholders=settings.convert_default_values_to_placeholders,
                    )
                ),
                crossplane_group(xrd),
                publish_group(settings.publish_phase, clusters),
            ]
            templates.append(
                self.build_template(
                    name=f"{xrd.name}-{version_name}",
                    title=claim_names.get("kind") or xrd.kind,
                    description=f"A template to create a {xrd.name} instance",
                    tags=["crossplane", *self.cluster_tags(clusters)],
                    labels={"forEntity": "system", "source": "crossplane"},
                    annotations=dict(annotations),
                    spec_type=xrd.name,
                    parameters=parameters,
                    steps=self._xrd_steps(xrd, version, resource_kind, namespaced),
                    publish=settings.publish_phase,
                )
            )

        return self.valid(templates)

    def _xrd_steps(
        self,
        xrd: SchemaDescriptor,
        version: dict[str, Any],
        kind: str,
        namespaced: bool,
    ) -> list[dict[str, Any]]:
        if xrd.is_claim_based:
            namespace_param = "xrNamespace"
            exclude = CLAIM_EXCLUDE_PARAMS
        else:
            namespace_param = "xrNamespace" if namespaced else ""
            exclude = XR_EXCLUDE_PARAMS + (["xrNamespace"] if namespaced else [])

        steps = [
            manifest_step(
                CLAIM_TEMPLATE_ACTION,
                api_version=f"{xrd.group}/{version.get('name', '')}",
                kind=kind,
                name_param="xrName",
                namespace_param=namespace_param,
                exclude_params=exclude,
                owner_param="owner",
            )
        ]
        pr_step = pull_request_step(self._config.crossplane.xrds.publish_phase, kind, "xrName")
        if pr_step is not None:
            steps.append(pr_step)
        steps.extend(extra_steps(version, self._logger))
        return steps

    def xrd_apis(self, xrd: SchemaDescriptor) -> list[Entity]:
        """One API record per XRD version."""
        if not xrd.versions:
            self._logger.warning(
                f"Skipping XRD API generation for {xrd.name} due to missing or empty versions array"
            )
            return []

        claim_names = xrd.claim_names or {}
        if xrd.is_claim_based:
            kind = claim_names.get("kind") or xrd.kind
            plural = claim_names.get("plural") or xrd.plural
        else:
            kind = xrd.kind
            plural = xrd.plural

        apis = []
        for version in xrd.versions:
            version_name = version.get("name", "")
            apis.append(
                self.build_api(
                    xrd,
                    version=version_name,
                    kind=kind,
                    plural=plural,
                    properties=self._xrd_schema_properties(xrd, version),
                    namespaced=requires_namespace(xrd),
                    tag="crossplane",
                )
            )
        return self.valid(apis)

    @staticmethod
    def _xrd_schema_properties(xrd: SchemaDescriptor, version: dict[str, Any]) -> dict[str, Any]:
        """Prefer the generated CRD's schema for the version over the XRD's own."""
        if xrd.generated_crd:
            crd_versions = (xrd.generated_crd.get("spec") or {}).get("versions") or []
            match = (
                next((v for v in crd_versions if v.get("name") == version.get("name")), None)
                or next((v for v in crd_versions if v.get("storage")), None)
                or (crd_versions[0] if crd_versions else None)
            )
            properties = version_schema_properties(match)
            if properties:
                return properties
        return version_schema_properties(version)

    def crd_templates(self, crd: SchemaDescriptor) -> list[Entity]:
        """A Template for the stored version of a CRD."""
        stored = crd.stored_version()
        if stored is None:
            self._logger.warning(
                f"No stored version found for CRD {crd.name}, skipping template generation"
            )
            return []

        publish = self._config.generic_crd_templates.publish_phase
        clusters = list(crd.clusters)
        namespaced = crd.scope == Scope.NAMESPACED
        version_name = stored.get("name", "")

        parameters = [
            metadata_group("name", "namespace" if namespaced else None, ["name"]),
            spec_group(
                process_properties(
                    spec_properties(stored), gate_enabled=False, strip_required=True
                )
            ),
            publish_group(publish, clusters),
        ]

        steps = [
            manifest_step(
                CRD_TEMPLATE_ACTION,
                api_version=f"{crd.group}/{version_name}",
                kind=crd.kind,
                name_param="name",
                namespace_param="namespace" if namespaced else "",
                exclude_params=CRD_EXCLUDE_PARAMS,
            )
        ]
        pr_step = pull_request_step(publish, crd.kind, "name")
        if pr_step is not None:
            steps.append(pr_step)

        template = self.build_template(
            name=f"{crd.singular}-{version_name}",
            title=crd.kind,
            description=f"A template to create a {crd.kind} instance",
            tags=["kubernetes-crd", *self.cluster_tags(clusters)],
            labels={"forEntity": "system", "source": "kubernetes"},
            annotations=self.origin_annotations(crd),
            spec_type=crd.singular,
            parameters=parameters,
            steps=steps,
            publish=publish,
        )
        return self.valid([template])

    def crd_apis(self, crd: SchemaDescriptor) -> list[Entity]:
        """One API record per CRD version."""
        apis = [
            self.build_api(
                crd,
                version=version.get("name", ""),
                kind=crd.kind,
                plural=crd.plural,
                properties=version_schema_properties(version),
                namespaced=crd.scope == Scope.NAMESPACED,
                tag="crd",
            )
            for version in crd.versions
        ]
        return self.valid(apis)
