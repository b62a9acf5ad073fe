"""
Annotation helpers for the translation engine.

Parsing of list-valued and key=value annotations, link and ArgoCD
annotations, label selector derivation and resource path helpers.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

ARGO_TRACKING_ID = "argocd.argoproj.io/tracking-id"
ARGO_APP_NAME = "argocd/app-name"
MANAGED_BY_LOCATION = "backstage.io/managed-by-location"
MANAGED_BY_ORIGIN_LOCATION = "backstage.io/managed-by-origin-location"
LABEL_SELECTOR = "backstage.io/kubernetes-label-selector"
KUBERNETES_CLUSTER = "backstage.io/kubernetes-cluster"
SOURCE_LOCATION = "backstage.io/source-location"
TECHDOCS_REF = "backstage.io/techdocs-ref"

LABEL_SELECTOR_KINDS = {"Deployment", "StatefulSet", "DaemonSet", "CronJob"}

_LIST_SEPARATORS = re.compile(r"[,\n]")


def split_list_annotation(value: str | None) -> list[str]:
    """
    Split a comma- or newline-separated annotation value.

    Whitespace around segments is stripped and empty segments dropped:
    "a,b,c", "a\\nb\\nc\\n" and " a ,\\n b,,c" all give ["a", "b", "c"].
    """
    if not value:
        return []
    return [part.strip() for part in _LIST_SEPARATORS.split(value) if part.strip()]


def parse_component_annotations(value: str | None, cluster: str) -> dict[str, str]:
    """
    Parse key=value pairs merged onto generated records.

    The managed-by location defaults are always present and may be
    overridden by the pairs. Pairs without '=' or with an empty key or
    value are ignored.
    """
    result = {
        MANAGED_BY_LOCATION: f"cluster origin: {cluster}",
        MANAGED_BY_ORIGIN_LOCATION: f"cluster origin: {cluster}",
    }
    for pair in split_list_annotation(value):
        key, sep, val = pair.partition("=")
        key, val = key.strip(), val.strip()
        if sep and key and val:
            result[key] = val
    return result


def argo_app_annotations(annotations: dict[str, str], enabled: bool = True) -> dict[str, str]:
    """Derive argocd/app-name from the ArgoCD tracking id."""
    if not enabled:
        return {}
    tracking_id = annotations.get(ARGO_TRACKING_ID)
    if not tracking_id:
        return {}
    app_name = tracking_id.split(":")[0]
    if not app_name:
        return {}
    return {ARGO_APP_NAME: app_name}


def find_common_labels(raw: dict[str, Any]) -> str | None:
    """
    Build a label selector locating an object's pods.

    Uses the object labels that also appear on the pod template, or
    every object label when none overlap.

    Returns:
        "k=v,k=v" selector, or None if the object has no labels
    """
    labels = (raw.get("metadata") or {}).get("labels") or {}
    pod_labels = (
        (((raw.get("spec") or {}).get("template") or {}).get("metadata") or {}).get("labels")
        or {}
    )

    common = [key for key in labels if pod_labels.get(key)]
    if common:
        return ",".join(f"{key}={labels[key]}" for key in common)
    if labels:
        return ",".join(f"{key}={value}" for key, value in labels.items())
    return None


def parse_links(value: str | None, log: logging.Logger | None = None) -> list[dict[str, Any]]:
    """Parse a JSON array of links, keeping url, title and icon."""
    if not value:
        return []
    log = log or logger
    try:
        links = json.loads(value)
        if not isinstance(links, list):
            raise ValueError("links annotation must be a JSON array")
        return [
            {"url": link.get("url"), "title": link.get("title"), "icon": link.get("icon")}
            for link in links
            if isinstance(link, dict)
        ]
    except ValueError as e:
        log.warning(f"Failed to parse links annotation: {e}; raw value: {value}")
        return []


def pluralize(word: str) -> str:
    """English plural for a resource kind: Policy -> Policies, Ingress -> Ingresses."""
    if not word:
        return word
    lower = word.lower()
    if lower.endswith("y") and len(lower) > 1 and lower[-2] not in "aeiou":
        return word[:-1] + "ies"
    if lower.endswith(("s", "x", "z", "ch", "sh")):
        return word + "es"
    return word + "s"


def custom_workload_uri(
    group: str, version: str, kind: str, name: str, namespace: str | None
) -> str:
    """Lower-cased API path of a single object."""
    base = f"/apis/{group}/{version}" if group else f"/api/{version}"
    if namespace:
        path = f"{base}/namespaces/{namespace}/{pluralize(kind)}/{name}"
    else:
        path = f"{base}/{pluralize(kind)}/{name}"
    return path.lower()


def api_ref_name(kind: str, api_version: str) -> str:
    """Name of the generated API record for a kind and apiVersion."""
    return f"{kind.lower()}-{api_version.replace('/', '--')}"
