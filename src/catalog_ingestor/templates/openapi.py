"""
OpenAPI documents and API records for custom resource types.
"""

from __future__ import annotations

from typing import Any

import yaml

from catalog_ingestor.models import (
    CATALOG_API_VERSION,
    ClusterDetail,
    Entity,
    EntityKind,
)
from catalog_ingestor.translation.annotations import (
    MANAGED_BY_LOCATION,
    MANAGED_BY_ORIGIN_LOCATION,
)

API_SYSTEM = "kubernetes-auto-ingested"

RESOURCE_REF = "#/components/schemas/Resource"

OPERATION_TAGS = [
    {"name": "Cluster Scoped Operations", "description": "Operations on the cluster level"},
    {"name": "Namespace Scoped Operations", "description": "Operations on the namespace level"},
    {"name": "Specific Object Scoped Operations", "description": "Operations on a specific resource"},
]

CLUSTER_TAG = "Cluster Scoped Operations"
NAMESPACE_TAG = "Namespace Scoped Operations"
OBJECT_TAG = "Specific Object Scoped Operations"


def _path_param(name: str) -> dict[str, Any]:
    return {"name": name, "in": "path", "required": True, "schema": {"type": "string"}}


def _json_body(schema: dict[str, Any]) -> dict[str, Any]:
    return {"content": {"application/json": {"schema": schema}}}


def _resource_schema() -> dict[str, Any]:
    return {"type": "object", "$ref": RESOURCE_REF}


def _list_schema() -> dict[str, Any]:
    return {"type": "array", "items": {"$ref": RESOURCE_REF}}


def _list_all(plural: str) -> dict[str, Any]:
    return {
        "tags": [CLUSTER_TAG],
        "summary": f"List all {plural} in all namespaces",
        "operationId": f"list{plural}AllNamespaces",
        "responses": {
            "200": {
                "description": f"List of {plural} in all namespaces",
                **_json_body(_list_schema()),
            }
        },
    }


def _create(tag: str, params: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "tags": [tag],
        "summary": "Create a resource",
        "operationId": "createResource",
        "parameters": params,
        "requestBody": {"required": True, **_json_body(_resource_schema())},
        "responses": {"201": {"description": "Resource created"}},
    }


def _object_operations(kind: str, params: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "get": {
            "tags": [OBJECT_TAG],
            "summary": f"Get a {kind}",
            "operationId": f"get{kind}",
            "parameters": params,
            "responses": {
                "200": {"description": "Resource details", **_json_body(_resource_schema())}
            },
        },
        "put": {
            "tags": [OBJECT_TAG],
            "summary": "Update a resource",
            "operationId": "updateResource",
            "parameters": params,
            "requestBody": {"required": True, **_json_body(_resource_schema())},
            "responses": {"200": {"description": "Resource updated"}},
        },
        "delete": {
            "tags": [OBJECT_TAG],
            "summary": "Delete a resource",
            "operationId": "deleteResource",
            "parameters": params,
            "responses": {"200": {"description": "Resource deleted"}},
        },
    }


def build_paths(
    group: str, version: str, plural: str, kind: str, namespaced: bool
) -> dict[str, Any]:
    """
    Build the paths object for one resource version.

    Cluster scoped resources are listed, created and addressed at the
    cluster level. Namespaced resources are listed across all
    namespaces and per namespace, and created and addressed per
    namespace.
    """
    base = f"/apis/{group}/{version}"

    if not namespaced:
        name = [_path_param("name")]
        list_ops = _list_all(plural)
        return {
            f"{base}/{plural}": {"get": list_ops, "post": _create(CLUSTER_TAG, [])},
            f"{base}/{plural}/{{name}}": _object_operations(kind, name),
        }

    namespace = [_path_param("namespace")]
    namespaced_name = [_path_param("namespace"), _path_param("name")]
    return {
        f"{base}/{plural}": {"get": _list_all(plural)},
        f"{base}/namespaces/{{namespace}}/{plural}": {
            "get": {
                "tags": [NAMESPACE_TAG],
                "summary": f"List all {plural} in a namespace",
                "operationId": f"list{plural}",
                "parameters": namespace,
                "responses": {
                    "200": {"description": f"List of {plural}", **_json_body(_list_schema())}
                },
            },
            "post": _create(NAMESPACE_TAG, namespace),
        },
        f"{base}/namespaces/{{namespace}}/{plural}/{{name}}": _object_operations(
            kind, namespaced_name
        ),
    }


def build_openapi_document(
    group: str,
    version: str,
    plural: str,
    kind: str,
    namespaced: bool,
    properties: dict[str, Any] | None,
    cluster_details: list[ClusterDetail],
) -> dict[str, Any]:
    """
    Build an OpenAPI 3.0 document for one version of a resource type.

    Args:
        group: API group
        version: Version name
        plural: Plural resource name
        kind: Resource kind
        namespaced: Whether the resource lives in namespaces
        properties: Schema properties of the resource
        cluster_details: Clusters serving the resource, used as servers

    Returns:
        OpenAPI document
    """
    return {
        "openapi": "3.0.0",
        "info": {"title": f"{plural}.{group}", "version": version},
        "servers": [{"url": c.url, "description": c.name} for c in cluster_details],
        "tags": [dict(tag) for tag in OPERATION_TAGS],
        "paths": build_paths(group, version, plural, kind, namespaced),
        "components": {
            "schemas": {"Resource": {"type": "object", "properties": properties or {}}},
            "securitySchemes": {
                "bearerHttpAuthentication": {
                    "description": "Bearer token using a JWT",
                    "type": "http",
                    "scheme": "bearer",
                    "bearerFormat": "JWT",
                }
            },
        },
        "security": [{"bearerHttpAuthentication": []}],
    }


def api_entity_name(kind: str, group: str, version: str) -> str:
    """Name of the API record for a resource version."""
    return f"{kind.lower()}-{group}--{version}"


def build_api_entity(
    name: str,
    document: dict[str, Any],
    cluster_name: str,
    owner: str,
    tags: list[str],
) -> Entity:
    """Wrap an OpenAPI document in an API record."""
    origin = f"cluster origin: {cluster_name}"
    return Entity(
        kind=EntityKind.API,
        api_version=CATALOG_API_VERSION,
        metadata={
            "name": name,
            "title": name,
            "tags": list(tags),
            "annotations": {
                MANAGED_BY_LOCATION: origin,
                MANAGED_BY_ORIGIN_LOCATION: origin,
            },
        },
        spec={
            "type": "openapi",
            "lifecycle": "production",
            "owner": owner,
            "system": API_SYSTEM,
            "definition": yaml.safe_dump(document, sort_keys=False),
        },
    )
