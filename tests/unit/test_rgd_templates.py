"""
Unit tests for the RGD template entity provider.
"""

from __future__ import annotations

import pytest
import yaml

from catalog_ingestor.config import IngestorConfig
from catalog_ingestor.models import EntityKind
from catalog_ingestor.providers import CRD_PATH, RGD_PATH
from catalog_ingestor.templates import RGDTemplateEntityProvider
from catalog_ingestor.templates.rgd_provider import EXCLUDE_PARAMS


@pytest.fixture
def kro_config() -> IngestorConfig:
    """Return a configuration with RGD templates enabled."""
    return IngestorConfig.from_dict({"kro": {"enabled": True, "rgds": {"enabled": True}}})


@pytest.fixture
def rgd_fetcher(fetcher, make_rgd, make_rgd_crd, rgd_selector):
    """Return a fetcher serving one active RGD and its CRD."""
    fetcher.urls = {"cluster-a": "https://cluster-a:6443"}
    fetcher.add("cluster-a", RGD_PATH, [make_rgd()])
    fetcher.add(
        "cluster-a",
        CRD_PATH,
        [make_rgd_crd(versions=["v1alpha1", "v1"])],
        selector=rgd_selector("rgd-uid-1"),
    )
    return fetcher


def _split(entities):
    templates = [e for e in entities if e.kind == EntityKind.TEMPLATE]
    apis = [e for e in entities if e.kind == EntityKind.API]
    return templates, apis


class TestRGDTemplateEntityProvider:
    """Tests for RGDTemplateEntityProvider."""

    @pytest.mark.parametrize(
        "settings",
        [{}, {"kro": {"enabled": True}}, {"kro": {"rgds": {"enabled": True}}}],
    )
    def test_disabled(self, rgd_fetcher, settings):
        """Test nothing is generated unless KRO and RGD templates are enabled."""
        config = IngestorConfig.from_dict(settings)
        assert RGDTemplateEntityProvider(rgd_fetcher, config).collect() == []
        assert rgd_fetcher.calls == []

    def test_template(self, rgd_fetcher, kro_config):
        """Test the template for the first CRD version."""
        templates, _ = _split(RGDTemplateEntityProvider(rgd_fetcher, kro_config).collect())

        (template,) = templates
        assert template.name == "webapp-v1alpha1"
        assert template.metadata["title"] == "WebApp"
        assert template.metadata["description"] == "A template to create a webapp instance"
        assert template.metadata["tags"] == ["kro", "cluster:cluster-a"]
        assert template.metadata["labels"] == {"forEntity": "system", "source": "kro"}
        assert template.metadata["annotations"]["terasky.backstage.io/kro-rgd"] == "true"
        assert template.spec["type"] == "webapp"

        metadata, spec, publish = template.spec["parameters"]
        assert metadata["required"] == ["kroInstanceName", "kroInstanceNamespace"]
        assert spec["properties"]["replicas"] == {"type": "integer", "default": 1}
        layouts = publish["dependencies"]["pushToGit"]["oneOf"][1]["dependencies"]
        clusters = layouts["manifestLayout"]["oneOf"][0]["properties"]["clusters"]
        assert clusters["items"]["enum"] == ["cluster-a"]

        assert [s["id"] for s in template.spec["steps"]] == [
            "generateManifest",
            "moveNamespacedManifest",
            "moveCustomManifest",
            "create-pull-request",
        ]
        manifest = template.spec["steps"][0]
        assert manifest["action"] == "terasky:crd-template"
        assert manifest["input"]["apiVersion"] == "kro.run/v1alpha1"
        assert manifest["input"]["kind"] == "WebApp"
        assert manifest["input"]["nameParam"] == "kroInstanceName"
        assert manifest["input"]["excludeParams"] == EXCLUDE_PARAMS
        pull_request = template.spec["steps"][3]
        assert pull_request["input"]["branchName"] == (
            "create-${{ parameters.kroInstanceName }}-resource"
        )

        download = template.spec["output"]["links"][0]
        assert download["url"].startswith("data:application/yaml;charset=utf-8,")

    def test_apis(self, rgd_fetcher, kro_config):
        """Test one API record per CRD version."""
        _, apis = _split(RGDTemplateEntityProvider(rgd_fetcher, kro_config).collect())

        assert [a.name for a in apis] == ["webapp-kro.run--v1alpha1", "webapp-kro.run--v1"]
        api = apis[0]
        assert api.metadata["tags"] == ["kro"]
        assert api.spec["owner"] == "kubernetes-auto-ingested"
        assert api.spec["system"] == "kubernetes-auto-ingested"
        definition = yaml.safe_load(api.spec["definition"])
        assert definition["servers"] == [
            {"url": "https://cluster-a:6443", "description": "cluster-a"}
        ]
        assert "/apis/kro.run/v1alpha1/namespaces/{namespace}/webapps" in definition["paths"]

    def test_cluster_scoped_api(self, fetcher, kro_config, make_rgd, make_rgd_crd, rgd_selector):
        """Test cluster scoped RGD instances get cluster level paths."""
        fetcher.add("cluster-a", RGD_PATH, [make_rgd()])
        fetcher.add(
            "cluster-a",
            CRD_PATH,
            [make_rgd_crd(scope="Cluster")],
            selector=rgd_selector("rgd-uid-1"),
        )

        _, apis = _split(RGDTemplateEntityProvider(fetcher, kro_config).collect())

        definition = yaml.safe_load(apis[0].spec["definition"])
        assert "/apis/kro.run/v1alpha1/webapps/{name}" in definition["paths"]

    def test_allowed_clusters(self, rgd_fetcher):
        """Test the configured cluster list is offered when set."""
        config = IngestorConfig.from_dict(
            {
                "allowedClusterNames": ["cluster-a", "cluster-b"],
                "kro": {"enabled": True, "rgds": {"enabled": True}},
            }
        )

        templates, _ = _split(RGDTemplateEntityProvider(rgd_fetcher, config).collect())

        publish = templates[0].spec["parameters"][2]
        layouts = publish["dependencies"]["pushToGit"]["oneOf"][1]["dependencies"]
        clusters = layouts["manifestLayout"]["oneOf"][0]["properties"]["clusters"]
        assert clusters["items"]["enum"] == ["cluster-a", "cluster-b"]

    def test_yaml_target(self, rgd_fetcher):
        """Test the yaml target keeps the rename steps but drops the pull request."""
        config = IngestorConfig.from_dict(
            {"kro": {"enabled": True, "rgds": {"enabled": True, "publishPhase": {"target": "yaml"}}}}
        )

        templates, _ = _split(RGDTemplateEntityProvider(rgd_fetcher, config).collect())

        assert [s["id"] for s in templates[0].spec["steps"]] == [
            "generateManifest",
            "moveNamespacedManifest",
            "moveCustomManifest",
        ]
