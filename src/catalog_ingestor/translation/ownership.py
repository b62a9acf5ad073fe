"""
Owner resolution and the per-run namespace ownership cache.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future

from catalog_ingestor.fetcher import ResourceFetcher

logger = logging.getLogger(__name__)


def resolve_owner_ref(annotation: str | None, namespace_ref: str) -> str | None:
    """
    Resolve an owner annotation value.

    A value containing ':' is a full entity reference and is returned
    as-is; any other value is prefixed with namespace_ref.

    Returns:
        The owner reference, or None when annotation is empty
    """
    if not annotation:
        return None
    if ":" in annotation:
        return annotation
    return f"{namespace_ref}/{annotation}"


class OwnershipCache:
    """
    Namespace owners looked up during one run.

    Keyed by (cluster, namespace). The first caller for a key performs
    the namespace fetch; concurrent callers for the same key wait on
    the same Future. A failed fetch is stored as None and never retried
    until clear() is called, which happens at the start and end of
    every run.
    """

    def __init__(
        self,
        fetcher: ResourceFetcher,
        annotation_key: str,
        log: logging.Logger | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._annotation_key = annotation_key
        self._logger = log or logger
        self._lock = threading.Lock()
        self._entries: dict[tuple[str, str], Future] = {}

    def clear(self) -> None:
        """Drop every cached entry."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_owner_annotation(self, cluster: str, namespace: str) -> str | None:
        """
        Return the namespace's owner annotation value, fetching at most once.

        Args:
            cluster: Cluster name
            namespace: Namespace name

        Returns:
            Raw annotation value, or None if absent or the fetch failed
        """
        key = (cluster, namespace)
        with self._lock:
            future = self._entries.get(key)
            owner = future is None
            if owner:
                future = Future()
                self._entries[key] = future

        if owner:
            future.set_result(self._fetch(cluster, namespace))
        return future.result()

    def _fetch(self, cluster: str, namespace: str) -> str | None:
        try:
            ns = self._fetcher.proxy(cluster, f"/api/v1/namespaces/{namespace}")
        except Exception as e:
            self._logger.debug(f"Failed to fetch namespace {namespace} on {cluster}: {e}")
            return None
        annotations = ((ns or {}).get("metadata") or {}).get("annotations") or {}
        return annotations.get(self._annotation_key) or None
