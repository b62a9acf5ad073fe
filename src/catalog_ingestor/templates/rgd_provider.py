"""
RGD template entity provider.

Publishes a scaffolding Template for the first version of every active
ResourceGraphDefinition's generated CRD, and an API record per version.
"""

from __future__ import annotations

import logging

from catalog_ingestor.config import IngestorConfig
from catalog_ingestor.fetcher import ResourceFetcher
from catalog_ingestor.models import Entity, SchemaDescriptor, Scope, version_schema_properties
from catalog_ingestor.providers import RGDDataProvider
from catalog_ingestor.templates.base import PLAIN_MANIFEST_URL, TemplateEntityProvider
from catalog_ingestor.templates.schema import (
    metadata_group,
    process_properties,
    publish_group,
    spec_group,
    spec_properties,
)
from catalog_ingestor.templates.steps import (
    CRD_TEMPLATE_ACTION,
    manifest_step,
    pull_request_step,
    rename_steps,
)

logger = logging.getLogger(__name__)

NAME_PARAM = "kroInstanceName"
NAMESPACE_PARAM = "kroInstanceNamespace"

EXCLUDE_PARAMS = [
    "pushToGit",
    "basePath",
    "manifestLayout",
    "_editData",
    "targetBranch",
    "repoUrl",
    "clusters",
    NAME_PARAM,
    NAMESPACE_PARAM,
    "owner",
]


class RGDTemplateEntityProvider(TemplateEntityProvider):
    """Template entity provider for KRO ResourceGraphDefinitions."""

    provider_name = "RGDTemplateEntityProvider"

    def __init__(
        self,
        fetcher: ResourceFetcher,
        config: IngestorConfig,
        log: logging.Logger | None = None,
    ) -> None:
        super().__init__(fetcher, config, log or logger)

    def collect(self) -> list[Entity]:
        kro = self._config.kro
        if not kro.enabled or not kro.rgds.enabled:
            self._logger.debug("RGD template generation is disabled")
            return []

        rgds = RGDDataProvider(self._fetcher, self._config, self._logger).fetch_rgd_objects()
        entities: list[Entity] = []
        for rgd in rgds:
            entities.extend(self.rgd_templates(rgd))
        for rgd in rgds:
            entities.extend(self.rgd_apis(rgd))

        self._logger.info(f"Generated {len(entities)} entities from {len(rgds)} RGDs")
        return entities

    def rgd_templates(self, rgd: SchemaDescriptor) -> list[Entity]:
        """A Template for the first version of the RGD's generated CRD."""
        if not rgd.generated_crd or not rgd.versions:
            self._logger.warning(f"Skipping RGD {rgd.name} due to missing metadata, spec, or CRD")
            return []

        settings = self._config.kro.rgds
        clusters = self._config.allowed_cluster_names or [c.name for c in rgd.cluster_details]
        version = rgd.versions[0]
        version_name = version.get("name", "")

        annotations = self.origin_annotations(rgd)
        annotations[self._config.annotation("kro-rgd")] = "true"

        parameters = [
            metadata_group(NAME_PARAM, NAMESPACE_PARAM, [NAME_PARAM, NAMESPACE_PARAM]),
            spec_group(
                process_properties(
                    spec_properties(version),
                    placeholders=settings.convert_default_values_to_placeholders,
                )
            ),
            publish_group(settings.publish_phase, clusters),
        ]

        steps = [
            manifest_step(
                CRD_TEMPLATE_ACTION,
                api_version=f"{rgd.group}/{version_name}",
                kind=rgd.kind,
                name_param=NAME_PARAM,
                namespace_param=NAMESPACE_PARAM,
                exclude_params=EXCLUDE_PARAMS,
            ),
            *rename_steps(NAME_PARAM, NAMESPACE_PARAM),
        ]
        pr_step = pull_request_step(settings.publish_phase, rgd.kind, NAME_PARAM)
        if pr_step is not None:
            steps.append(pr_step)

        template = self.build_template(
            name=f"{rgd.name}-{version_name}",
            title=rgd.kind,
            description=f"A template to create a {rgd.name} instance",
            tags=["kro", *self.cluster_tags(clusters)],
            labels={"forEntity": "system", "source": "kro"},
            annotations=annotations,
            spec_type=rgd.name,
            parameters=parameters,
            steps=steps,
            publish=settings.publish_phase,
            manifest_url=PLAIN_MANIFEST_URL,
        )
        return self.valid([template])

    def rgd_apis(self, rgd: SchemaDescriptor) -> list[Entity]:
        """One API record per version of the RGD's generated CRD."""
        if not rgd.generated_crd:
            self._logger.warning(
                f"Skipping RGD API generation for {rgd.name} due to missing metadata, spec, or CRD"
            )
            return []

        apis = [
            self.build_api(
                rgd,
                version=version.get("name", ""),
                kind=rgd.kind,
                plural=rgd.plural,
                properties=version_schema_properties(version),
                namespaced=rgd.scope != Scope.CLUSTER,
                tag="kro",
            )
            for version in rgd.versions
        ]
        return self.valid(apis)
