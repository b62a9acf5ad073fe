"""
Cluster resolution and descriptor aggregation shared by the data providers.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, TypeVar

from catalog_ingestor.config import IngestorConfig
from catalog_ingestor.fetcher import ResourceFetcher
from catalog_ingestor.models import SchemaDescriptor

logger = logging.getLogger(__name__)

CRD_PATH = "apiextensions.k8s.io/v1/customresourcedefinitions"
COMPOSITIONS_PATH = "apiextensions.crossplane.io/v1/compositions"
RGD_PATH = "kro.run/v1alpha1/resourcegraphdefinitions"

T = TypeVar("T")


def resolve_clusters(
    fetcher: ResourceFetcher,
    config: IngestorConfig,
    log: logging.Logger | None = None,
) -> list[str]:
    """
    Resolve the clusters a run should read from.

    The configured allow-list wins; otherwise clusters are discovered
    through the fetcher. A discovery failure is logged and yields no
    clusters, as does an empty result.
    """
    log = log or logger
    if config.allowed_cluster_names is not None:
        clusters = list(config.allowed_cluster_names)
    else:
        try:
            clusters = fetcher.list_clusters()
        except Exception as e:
            log.error(f"Failed to discover clusters: {e}")
            return []

    if not clusters:
        log.warning("No clusters found.")
    return clusters


def fan_out_clusters(
    clusters: list[str],
    work: Callable[[str], list[T]],
    max_workers: int,
    description: str,
    log: logging.Logger | None = None,
) -> dict[str, list[T]]:
    """
    Run work(cluster) for every cluster concurrently.

    A cluster whose work raises is logged at error level and contributes
    an empty list. Results are keyed by cluster.
    """
    log = log or logger
    results: dict[str, list[T]] = {}
    if not clusters:
        return results

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        future_to_cluster = {executor.submit(work, cluster): cluster for cluster in clusters}

        for future in as_completed(future_to_cluster):
            cluster = future_to_cluster[future]
            try:
                results[cluster] = future.result()
            except Exception as e:
                log.error(f"Failed to fetch {description} for cluster {cluster}: {e}")
                results[cluster] = []

    return results


def aggregate_by_name(
    clusters: list[str],
    per_cluster: dict[str, list[SchemaDescriptor]],
    fetcher: ResourceFetcher,
) -> list[SchemaDescriptor]:
    """
    Merge descriptors of the same name found on several clusters.

    The first cluster in resolution order provides the descriptor body;
    later clusters are appended to its cluster list.
    """
    merged: dict[str, SchemaDescriptor] = {}
    for cluster in clusters:
        url = fetcher.get_cluster_url(cluster)
        for descriptor in per_cluster.get(cluster, []):
            existing = merged.get(descriptor.name)
            if existing is None:
                descriptor.clusters = []
                descriptor.cluster_details = []
                descriptor.add_cluster(cluster, url)
                merged[descriptor.name] = descriptor
            else:
                existing.add_cluster(cluster, url)
    return list(merged.values())
