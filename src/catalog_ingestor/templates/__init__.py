"""
Scaffolding template and API record generation.

Builds parameter schemas, workflow steps and OpenAPI documents from
schema descriptors, and provides the XRD/CRD and RGD template entity
providers.
"""

from catalog_ingestor.templates.base import TemplateEntityProvider
from catalog_ingestor.templates.openapi import (
    api_entity_name,
    build_api_entity,
    build_openapi_document,
    build_paths,
)
from catalog_ingestor.templates.rgd_provider import RGDTemplateEntityProvider
from catalog_ingestor.templates.schema import (
    crossplane_group,
    metadata_group,
    owner_field,
    process_properties,
    publish_group,
    requires_namespace,
    spec_group,
    spec_properties,
)
from catalog_ingestor.templates.steps import (
    extra_steps,
    manifest_step,
    pull_request_action,
    pull_request_step,
    pull_request_url,
    rename_steps,
)
from catalog_ingestor.templates.xrd_provider import XRDTemplateEntityProvider

__all__ = [
    "TemplateEntityProvider",
    "api_entity_name",
    "build_api_entity",
    "build_openapi_document",
    "build_paths",
    "RGDTemplateEntityProvider",
    "crossplane_group",
    "metadata_group",
    "owner_field",
    "process_properties",
    "publish_group",
    "requires_namespace",
    "spec_group",
    "spec_properties",
    "extra_steps",
    "manifest_step",
    "pull_request_action",
    "pull_request_step",
    "pull_request_url",
    "rename_steps",
    "XRDTemplateEntityProvider",
]
