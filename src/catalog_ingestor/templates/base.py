"""
Shared base for the template entity providers.
"""

from __future__ import annotations

from typing import Any

from catalog_ingestor.catalog import EntityProvider
from catalog_ingestor.config import PublishPhaseConfig
from catalog_ingestor.models import (
    TEMPLATE_API_VERSION,
    Entity,
    EntityKind,
    SchemaDescriptor,
    filter_valid_names,
)
from catalog_ingestor.templates.openapi import (
    api_entity_name,
    build_api_entity,
    build_openapi_document,
)
from catalog_ingestor.templates.steps import pull_request_url
from catalog_ingestor.translation.annotations import (
    MANAGED_BY_LOCATION,
    MANAGED_BY_ORIGIN_LOCATION,
)

BASE64_MANIFEST_URL = "data:application/yaml;base64,${{ steps.generateManifest.output.manifestEncoded }}"
PLAIN_MANIFEST_URL = "data:application/yaml;charset=utf-8,${{ steps.generateManifest.output.manifest }}"


class TemplateEntityProvider(EntityProvider):
    """
    Base class for providers publishing scaffolding templates and API
    records generated from schema descriptors.
    """

    def origin_annotations(self, descriptor: SchemaDescriptor) -> dict[str, str]:
        """managed-by annotations pointing at the descriptor's first cluster."""
        origin = f"cluster origin: {descriptor.cluster_name}"
        return {
            MANAGED_BY_LOCATION: origin,
            MANAGED_BY_ORIGIN_LOCATION: origin,
        }

    def build_template(
        self,
        name: str,
        title: str,
        description: str,
        tags: list[str],
        labels: dict[str, str],
        annotations: dict[str, str],
        spec_type: str,
        parameters: list[dict[str, Any]],
        steps: list[dict[str, Any]],
        publish: PublishPhaseConfig,
        manifest_url: str = BASE64_MANIFEST_URL,
    ) -> Entity:
        """
        Assemble a scaffolding Template record.

        The output links offer the generated manifest for download and,
        when the manifest was pushed, the opened pull request.
        """
        return Entity(
            kind=EntityKind.TEMPLATE,
            api_version=TEMPLATE_API_VERSION,
            metadata={
                "name": name,
                "title": title,
                "description": description,
                "tags": tags,
                "labels": labels,
                "annotations": annotations,
            },
            spec={
                "type": spec_type,
                "parameters": parameters,
                "steps": steps,
                "output": {
                    "links": [
                        {"title": "Download YAML Manifest", "url": manifest_url},
                        {
                            "title": "Open Pull Request",
                            "if": "${{ parameters.pushToGit }}",
                            "url": pull_request_url(publish.target),
                        },
                    ]
                },
            },
        )

    def build_api(
        self,
        descriptor: SchemaDescriptor,
        version: str,
        kind: str,
        plural: str,
        properties: dict[str, Any] | None,
        namespaced: bool,
        tag: str,
    ) -> Entity:
        """Build the API record for one version of a descriptor."""
        document = build_openapi_document(
            group=descriptor.group,
            version=version,
            plural=plural,
            kind=kind,
            namespaced=namespaced,
            properties=properties,
            cluster_details=descriptor.cluster_details,
        )
        return build_api_entity(
            name=api_entity_name(kind, descriptor.group, version),
            document=document,
            cluster_name=descriptor.cluster_name,
            owner=self._config.default_owner,
            tags=[tag],
        )

    def valid(self, entities: list[Entity]) -> list[Entity]:
        """Drop records whose names are too long."""
        return filter_valid_names(entities, self._logger)

    @staticmethod
    def cluster_tags(clusters: list[str]) -> list[str]:
        return [f"cluster:{cluster}" for cluster in clusters]
