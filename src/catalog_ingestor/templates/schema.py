"""
Parameter schema builders for scaffolding templates.

Each builder returns one parameter group (a plain JSON-schema dict)
and the template providers compose the groups they need:

    [metadata_group(...), spec_group(...), crossplane_group(...), publish_group(...)]
"""

from __future__ import annotations

import copy
from typing import Any

from catalog_ingestor.config import PublishPhaseConfig
from catalog_ingestor.models import DescriptorSource, SchemaDescriptor, Scope

NAME_PATTERN = "^[a-z0-9]([-a-z0-9]*[a-z0-9])?$"

MANIFEST_LAYOUTS = ["cluster-scoped", "namespace-scoped", "custom"]

MANIFEST_LAYOUT_HELP = (
    "Choose how the manifest should be generated in the repo.\n"
    "* Cluster-scoped - a manifest is created for each selected cluster under the "
    "root directory of the clusters name\n"
    "* namespace-scoped - a manifest is created for the resource under the root "
    "directory with the namespace name\n"
    "* custom - a manifest is created under the specified base path"
)


def _dns_label_field(title: str, description: str) -> dict[str, Any]:
    return {
        "title": title,
        "description": description,
        "pattern": NAME_PATTERN,
        "maxLength": 63,
        "type": "string",
    }


def owner_field() -> dict[str, Any]:
    """Owner picker restricted to groups."""
    return {
        "title": "Owner",
        "description": "The owner of the resource",
        "type": "string",
        "ui:field": "OwnerPicker",
        "ui:options": {"catalogFilter": {"kind": "Group"}},
    }


def metadata_group(
    name_field: str,
    namespace_field: str | None = None,
    required: list[str] | None = None,
) -> dict[str, Any]:
    """
    Build the "Resource Metadata" group.

    Args:
        name_field: Parameter holding the resource name
        namespace_field: Parameter holding the namespace, omitted if None
        required: Required parameter names (defaults to the name field)

    Returns:
        Parameter group with name, optional namespace and owner fields
    """
    properties: dict[str, Any] = {
        name_field: _dns_label_field("Name", "The name of the resource"),
    }
    if namespace_field:
        properties[namespace_field] = _dns_label_field(
            "Namespace", "The namespace in which to create the resource"
        )
    properties["owner"] = owner_field()

    return {
        "title": "Resource Metadata",
        "required": list(required) if required is not None else [name_field],
        "properties": properties,
        "type": "object",
    }


def process_properties(
    properties: dict[str, Any],
    placeholders: bool = False,
    gate_enabled: bool = True,
    strip_required: bool = False,
) -> dict[str, Any]:
    """
    Convert OpenAPI properties into form-friendly parameter properties.

    - Untyped x-kubernetes-preserve-unknown-fields properties become
      free-text textareas.
    - Objects are processed recursively. With gate_enabled, an object
      holding a boolean "enabled" property shows its other properties
      only once enabled is true.
    - With placeholders, non-boolean defaults become ui:placeholder
      hints instead of prefilled values.

    Args:
        properties: openAPIV3Schema properties to convert
        placeholders: Turn defaults into placeholders
        gate_enabled: Build enabled-gated conditional groups
        strip_required: Drop "required" lists at every level

    Returns:
        New properties dict; the input is not modified
    """
    processed: dict[str, Any] = {}

    for key, value in (properties or {}).items():
        value = copy.deepcopy(value)
        if strip_required:
            value.pop("required", None)

        if value.get("x-kubernetes-preserve-unknown-fields") is True and not value.get("type"):
            value.update(
                {
                    "type": "string",
                    "ui:widget": "textarea",
                    "ui:options": {"rows": 10},
                }
            )
            processed[key] = value

        elif value.get("type") == "object" and value.get("properties"):
            children = process_properties(
                value["properties"], placeholders, gate_enabled, strip_required
            )
            enabled = children.get("enabled") or {}
            if gate_enabled and enabled.get("type") == "boolean":
                siblings = {k: v for k, v in children.items() if k != "enabled"}
                value["properties"] = {"enabled": enabled}
                value["dependencies"] = {
                    "enabled": {
                        "if": {"properties": {"enabled": {"const": True}}},
                        "then": {"properties": siblings},
                    }
                }
            else:
                value["properties"] = children
            processed[key] = value

        else:
            if placeholders and "default" in value and value.get("type") != "boolean":
                value["ui:placeholder"] = value.pop("default")
            processed[key] = value

    return processed


def spec_properties(version: dict[str, Any] | None) -> dict[str, Any]:
    """Return the raw properties of a version's spec schema, or {}."""
    schema = ((version or {}).get("schema") or {}).get("openAPIV3Schema") or {}
    spec = (schema.get("properties") or {}).get("spec") or {}
    return spec.get("properties") or {}


def spec_group(properties: dict[str, Any]) -> dict[str, Any]:
    """Build the "Resource Spec" group from processed properties."""
    return {
        "title": "Resource Spec",
        "properties": properties,
        "type": "object",
    }


def _composition_selection(descriptor: SchemaDescriptor) -> tuple[dict[str, Any], dict[str, Any]]:
    """Composition policy properties and the selection-strategy dependencies."""
    strategies = ["runtime"]
    if descriptor.compositions:
        strategies.append("direct-reference")
    strategies.append("label-selector")

    properties = {
        "compositionUpdatePolicy": {
            "title": "Composition Update Policy",
            "enum": ["Automatic", "Manual"],
            "type": "string",
        },
        "compositionSelectionStrategy": {
            "title": "Composition Selection Strategy",
            "description": "How the composition should be selected.",
            "enum": strategies,
            "default": "runtime",
            "type": "string",
        },
    }

    one_of: list[dict[str, Any]] = [
        {"properties": {"compositionSelectionStrategy": {"enum": ["runtime"]}}},
    ]
    if descriptor.compositions:
        name: dict[str, Any] = {
            "type": "string",
            "title": "Select A Composition By Name",
            "enum": list(descriptor.compositions),
        }
        if descriptor.default_composition:
            name["default"] = descriptor.default_composition
        one_of.append(
            {
                "properties": {
                    "compositionSelectionStrategy": {"enum": ["direct-reference"]},
                    "compositionRef": {
                        "title": "Composition Reference",
                        "properties": {"name": name},
                        "required": ["name"],
                        "type": "object",
                    },
                }
            }
        )
    one_of.append(
        {
            "properties": {
                "compositionSelectionStrategy": {"enum": ["label-selector"]},
                "compositionSelector": {
                    "title": "Composition Selector",
                    "properties": {
                        "matchLabels": {
                            "title": "Match Labels",
                            "additionalProperties": {"type": "string"},
                            "type": "object",
                        }
                    },
                    "required": ["matchLabels"],
                    "type": "object",
                },
            }
        }
    )

    return properties, {"compositionSelectionStrategy": {"oneOf": one_of}}


def crossplane_group(descriptor: SchemaDescriptor) -> dict[str, Any]:
    """
    Build the "Crossplane Settings" group for an XRD.

    Claim-based XRDs (v1 and v2 LegacyCluster) keep the flat claim
    settings, including the connection secret and delete policy. v2
    Cluster and Namespaced XRDs nest composition settings under a
    "crossplane" object and have no connection secret.
    """
    properties, dependencies = _composition_selection(descriptor)

    if not descriptor.is_claim_based:
        return {
            "title": "Crossplane Settings",
            "properties": {
                "crossplane": {
                    "title": "Crossplane Configuration",
                    "type": "object",
                    "properties": properties,
                    "dependencies": dependencies,
                }
            },
            "type": "object",
        }

    flat: dict[str, Any] = {
        "writeConnectionSecretToRef": {
            "title": "Crossplane Configuration Details",
            "properties": {
                "name": {"title": "Connection Secret Name", "type": "string"},
            },
            "type": "object",
        },
        "compositeDeletePolicy": {
            "title": "Composite Delete Policy",
            "default": "Background",
            "enum": ["Background", "Foreground"],
            "type": "string",
        },
    }
    flat.update(properties)
    return {
        "title": "Crossplane Settings",
        "properties": flat,
        "dependencies": dependencies,
        "type": "object",
    }


def _repo_url_field(publish: PublishPhaseConfig) -> dict[str, Any]:
    options: dict[str, Any] = {"allowedHosts": publish.allowed_hosts}
    if publish.request_user_credentials:
        options["requestUserCredentials"] = {"secretsKey": "USER_OAUTH_TOKEN"}
    return {
        "content": {"type": "string"},
        "description": "Name of repository",
        "ui:field": "RepoUrlPicker",
        "ui:options": options,
    }


def _manifest_layout_dependencies(clusters: list[str]) -> dict[str, Any]:
    return {
        "manifestLayout": {
            "oneOf": [
                {
                    "properties": {
                        "manifestLayout": {"enum": ["cluster-scoped"]},
                        "clusters": {
                            "title": "Target Clusters",
                            "description": "The target clusters to apply the resource to",
                            "type": "array",
                            "minItems": 1,
                            "items": {"enum": list(clusters), "type": "string"},
                            "uniqueItems": True,
                            "ui:widget": "checkboxes",
                        },
                    },
                    "required": ["clusters"],
                },
                {
                    "properties": {
                        "manifestLayout": {"enum": ["custom"]},
                        "basePath": {
                            "type": "string",
                            "description": "Base path in GitOps repository to push the manifest to",
                        },
                    },
                    "required": ["basePath"],
                },
                {"properties": {"manifestLayout": {"enum": ["namespace-scoped"]}}},
            ]
        }
    }


def publish_group(publish: PublishPhaseConfig, clusters: list[str]) -> dict[str, Any]:
    """
    Build the "Creation Settings" group.

    With repository selection allowed, the user picks the repository
    and target branch. Otherwise the repository picker is only shown
    when user credentials are requested, prefilled with the configured
    repository.

    Args:
        publish: Publish phase settings
        clusters: Clusters offered for cluster-scoped manifest layouts

    Returns:
        Parameter group
    """
    push_enabled: dict[str, Any] = {"pushToGit": {"enum": [True]}}

    if publish.allow_repo_selection:
        push_enabled["repoUrl"] = _repo_url_field(publish)
        push_enabled["targetBranch"] = {
            "type": "string",
            "description": "Target Branch for the PR",
            "default": "main",
        }
    elif publish.request_user_credentials:
        repo_url = _repo_url_field(publish)
        if publish.repo_url:
            repo_url["default"] = publish.repo_url
        push_enabled["repoUrl"] = repo_url

    push_enabled["manifestLayout"] = {
        "type": "string",
        "description": "Layout of the manifest",
        "default": "cluster-scoped",
        "ui:help": MANIFEST_LAYOUT_HELP,
        "enum": list(MANIFEST_LAYOUTS),
    }

    return {
        "title": "Creation Settings",
        "properties": {
            "pushToGit": {
                "title": "Push Manifest to GitOps Repository",
                "type": "boolean",
                "default": True,
            }
        },
        "dependencies": {
            "pushToGit": {
                "oneOf": [
                    {"properties": {"pushToGit": {"enum": [False]}}},
                    {
                        "properties": push_enabled,
                        "dependencies": _manifest_layout_dependencies(clusters),
                    },
                ]
            }
        },
    }


def requires_namespace(descriptor: SchemaDescriptor) -> bool:
    """Whether instances of descriptor are created in a namespace."""
    if descriptor.source == DescriptorSource.XRD and descriptor.is_claim_based:
        return True
    return descriptor.scope == Scope.NAMESPACED
