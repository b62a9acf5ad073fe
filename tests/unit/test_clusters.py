"""
Unit tests for cluster resolution, fan-out and descriptor aggregation.
"""

from __future__ import annotations

import logging

from catalog_ingestor.config import IngestorConfig
from catalog_ingestor.fetcher import FetchError
from catalog_ingestor.models import DescriptorSource, SchemaDescriptor
from catalog_ingestor.providers import aggregate_by_name, fan_out_clusters, resolve_clusters


def _descriptor(name: str) -> SchemaDescriptor:
    return SchemaDescriptor(
        name=name, source=DescriptorSource.CRD, group="example.com", kind="Widget", plural="widgets"
    )


class TestResolveClusters:
    """Tests for resolve_clusters."""

    def test_allow_list_wins(self, make_fetcher):
        """Test the configured allow-list is used without discovery."""
        fetcher = make_fetcher(clusters=RuntimeError("should not be called"))
        config = IngestorConfig(allowed_cluster_names=["prod", "dev"])
        assert resolve_clusters(fetcher, config) == ["prod", "dev"]

    def test_discovery(self, make_fetcher, config):
        """Test clusters are discovered through the fetcher."""
        assert resolve_clusters(make_fetcher(clusters=["a", "b"]), config) == ["a", "b"]

    def test_discovery_failure(self, make_fetcher, config, caplog):
        """Test a discovery failure yields no clusters and logs an error."""
        fetcher = make_fetcher(clusters=FetchError("*", "kubeconfig", "missing"))
        with caplog.at_level(logging.ERROR):
            assert resolve_clusters(fetcher, config) == []
        assert "Failed to discover clusters" in caplog.text

    def test_no_clusters(self, make_fetcher, config, caplog):
        """Test an empty cluster list is a warning, not an error."""
        with caplog.at_level(logging.WARNING):
            assert resolve_clusters(make_fetcher(clusters=[]), config) == []
        assert "No clusters found." in caplog.text


class TestFanOutClusters:
    """Tests for fan_out_clusters."""

    def test_failing_cluster_is_isolated(self, caplog):
        """Test one failing cluster contributes an empty list."""

        def work(cluster):
            if cluster == "bad":
                raise FetchError(cluster, "/apis", "unreachable")
            return [cluster.upper()]

        with caplog.at_level(logging.ERROR):
            results = fan_out_clusters(["a", "bad", "b"], work, 4, "widgets")

        assert results == {"a": ["A"], "bad": [], "b": ["B"]}
        assert "Failed to fetch widgets for cluster bad" in caplog.text

    def test_no_clusters(self):
        """Test no work is done without clusters."""
        assert fan_out_clusters([], lambda c: [c], 4, "widgets") == {}


class TestAggregateByName:
    """Tests for aggregate_by_name."""

    def test_merges_clusters(self, make_fetcher):
        """Test descriptors with one name merge in cluster order."""
        fetcher = make_fetcher()
        fetcher.urls = {"prod": "https://prod:6443"}
        first = _descriptor("widgets.example.com")
        per_cluster = {
            "dev": [_descriptor("widgets.example.com"), _descriptor("gadgets.example.com")],
            "prod": [first],
        }

        merged = aggregate_by_name(["prod", "dev"], per_cluster, fetcher)

        assert [d.name for d in merged] == ["widgets.example.com", "gadgets.example.com"]
        assert merged[0] is first
        assert merged[0].clusters == ["prod", "dev"]
        assert [c.url for c in merged[0].cluster_details] == ["https://prod:6443", "dev"]
        assert merged[1].clusters == ["dev"]
