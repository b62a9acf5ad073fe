"""
Unit tests for annotation helpers.
"""

from __future__ import annotations

import logging

import pytest

from catalog_ingestor.translation import (
    api_ref_name,
    argo_app_annotations,
    custom_workload_uri,
    find_common_labels,
    parse_component_annotations,
    parse_links,
    pluralize,
    split_list_annotation,
)


class TestSplitListAnnotation:
    """Tests for split_list_annotation."""

    @pytest.mark.parametrize(
        "value",
        ["a,b,c", "a\nb\nc\n", " a ,\n b,,c"],
    )
    def test_separators(self, value):
        """Test comma and newline separators with whitespace."""
        assert split_list_annotation(value) == ["a", "b", "c"]

    def test_empty(self):
        """Test empty values."""
        assert split_list_annotation(None) == []
        assert split_list_annotation("") == []
        assert split_list_annotation(" , \n") == []


class TestParseComponentAnnotations:
    """Tests for parse_component_annotations."""

    def test_defaults(self):
        """Test managed-by locations default to the cluster origin."""
        result = parse_component_annotations(None, "prod")
        assert result == {
            "backstage.io/managed-by-location": "cluster origin: prod",
            "backstage.io/managed-by-origin-location": "cluster origin: prod",
        }

    def test_pairs(self):
        """Test key=value pairs are merged and may override defaults."""
        value = "team=payments,\nbackstage.io/managed-by-location=url:https://git/x\ntier = gold"
        result = parse_component_annotations(value, "prod")
        assert result["team"] == "payments"
        assert result["tier"] == "gold"
        assert result["backstage.io/managed-by-location"] == "url:https://git/x"

    def test_value_with_equals(self):
        """Test only the first '=' splits key from value."""
        result = parse_component_annotations("query=a=b", "prod")
        assert result["query"] == "a=b"

    def test_invalid_pairs_ignored(self):
        """Test pairs without '=' or with empty parts are ignored."""
        result = parse_component_annotations("novalue,=x,y=", "prod")
        assert len(result) == 2


class TestArgoAnnotations:
    """Tests for argo_app_annotations."""

    def test_tracking_id(self):
        """Test the app name is the tracking id prefix."""
        annotations = {"argocd.argoproj.io/tracking-id": "shop:apps/Deployment:team-a/web"}
        assert argo_app_annotations(annotations) == {"argocd/app-name": "shop"}

    def test_disabled_or_missing(self):
        """Test nothing is derived when disabled or absent."""
        annotations = {"argocd.argoproj.io/tracking-id": "shop:x"}
        assert argo_app_annotations(annotations, enabled=False) == {}
        assert argo_app_annotations({}) == {}
        assert argo_app_annotations({"argocd.argoproj.io/tracking-id": ":x"}) == {}


class TestFindCommonLabels:
    """Tests for find_common_labels."""

    def test_common_labels(self):
        """Test labels shared with the pod template are used."""
        raw = {
            "metadata": {"labels": {"app": "web", "team": "a"}},
            "spec": {"template": {"metadata": {"labels": {"app": "web", "pod": "x"}}}},
        }
        assert find_common_labels(raw) == "app=web"

    def test_falls_back_to_all_labels(self):
        """Test every object label is used when none overlap."""
        raw = {"metadata": {"labels": {"app": "web", "team": "a"}}, "spec": {}}
        assert find_common_labels(raw) == "app=web,team=a"

    def test_no_labels(self):
        """Test None without labels."""
        assert find_common_labels({"metadata": {}}) is None


class TestParseLinks:
    """Tests for parse_links."""

    def test_valid(self):
        """Test links keep url, title and icon."""
        value = '[{"url": "https://a", "title": "A", "icon": "dashboard", "extra": 1}]'
        assert parse_links(value) == [{"url": "https://a", "title": "A", "icon": "dashboard"}]

    def test_invalid_json(self, caplog):
        """Test malformed JSON logs a warning and yields no links."""
        with caplog.at_level(logging.WARNING):
            assert parse_links("[{not json") == []
        assert "Failed to parse links annotation" in caplog.text
        assert "[{not json" in caplog.text

    def test_not_a_list(self):
        """Test a JSON object is rejected."""
        assert parse_links('{"url": "https://a"}') == []

    def test_empty(self):
        """Test missing values."""
        assert parse_links(None) == []


class TestPathHelpers:
    """Tests for pluralize, custom_workload_uri and api_ref_name."""

    @pytest.mark.parametrize(
        "word,plural",
        [
            ("Deployment", "Deployments"),
            ("Policy", "Policies"),
            ("Gateway", "Gateways"),
            ("Ingress", "Ingresses"),
            ("Box", "Boxes"),
            ("Mesh", "Meshes"),
            ("", ""),
        ],
    )
    def test_pluralize(self, word, plural):
        """Test English plurals of kinds."""
        assert pluralize(word) == plural

    def test_namespaced_uri(self):
        """Test a namespaced API path is lower-cased."""
        uri = custom_workload_uri("Example.org", "v1", "Database", "My-DB", "team-a")
        assert uri == "/apis/example.org/v1/namespaces/team-a/databases/my-db"

    def test_cluster_uri(self):
        """Test a cluster-scoped core path."""
        assert custom_workload_uri("", "v1", "Node", "n1", None) == "/api/v1/nodes/n1"

    def test_api_ref_name(self):
        """Test API record names."""
        assert api_ref_name("XDatabase", "example.org/v1alpha1") == "xdatabase-example.org--v1alpha1"
