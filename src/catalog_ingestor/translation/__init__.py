"""
Translation of cluster objects into catalog records.
"""

from catalog_ingestor.translation.annotations import (
    api_ref_name,
    argo_app_annotations,
    custom_workload_uri,
    find_common_labels,
    parse_component_annotations,
    parse_links,
    pluralize,
    split_list_annotation,
)
from catalog_ingestor.translation.engine import TranslationEngine
from catalog_ingestor.translation.naming import Naming, resolve_naming
from catalog_ingestor.translation.ownership import OwnershipCache, resolve_owner_ref
from catalog_ingestor.translation.provider import KubernetesEntityProvider

__all__ = [
    "api_ref_name",
    "argo_app_annotations",
    "custom_workload_uri",
    "find_common_labels",
    "parse_component_annotations",
    "parse_links",
    "pluralize",
    "split_list_annotation",
    "TranslationEngine",
    "Naming",
    "resolve_naming",
    "OwnershipCache",
    "resolve_owner_ref",
    "KubernetesEntityProvider",
]
