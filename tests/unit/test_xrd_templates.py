"""
Unit tests for the XRD and CRD template entity provider.
"""

from __future__ import annotations

import yaml

from catalog_ingestor.catalog import InMemoryCatalogConnection
from catalog_ingestor.config import IngestorConfig
from catalog_ingestor.models import EntityKind
from catalog_ingestor.providers import CRD_PATH
from catalog_ingestor.templates import XRDTemplateEntityProvider
from catalog_ingestor.templates.xrd_provider import (
    CLAIM_EXCLUDE_PARAMS,
    CRD_EXCLUDE_PARAMS,
    XR_EXCLUDE_PARAMS,
)

XRD_V1_PATH = "apiextensions.crossplane.io/v1/compositeresourcedefinitions"
XRD_V2_PATH = "apiextensions.crossplane.io/v2/compositeresourcedefinitions"


def _split(entities):
    templates = [e for e in entities if e.kind == EntityKind.TEMPLATE]
    apis = [e for e in entities if e.kind == EntityKind.API]
    return templates, apis


def _step(template, step_id):
    return next(s for s in template.spec["steps"] if s["id"] == step_id)


class TestXRDTemplates:
    """Tests for XRD template generation."""

    def test_crossplane_disabled(self, fetcher):
        """Test nothing is generated while Crossplane is disabled."""
        config = IngestorConfig.from_dict({"crossplane": {"enabled": False}})
        assert XRDTemplateEntityProvider(fetcher, config).collect() == []
        assert fetcher.calls == []

    def test_v1_claim_template(self, fetcher, config, make_xrd):
        """Test the template for a v1 claim-based XRD."""
        fetcher.add("cluster-a", XRD_V1_PATH, [make_xrd()])

        templates, apis = _split(XRDTemplateEntityProvider(fetcher, config).collect())

        (template,) = templates
        assert template.api_version == "scaffolder.backstage.io/v1beta3"
        assert template.name == "xdatabases.example.org-v1alpha1"
        assert template.metadata["title"] == "Database"
        assert template.metadata["description"] == (
            "A template to create a xdatabases.example.org instance"
        )
        assert template.metadata["tags"] == ["crossplane", "cluster:cluster-a"]
        assert template.metadata["labels"] == {"forEntity": "system", "source": "crossplane"}
        assert list(template.metadata["annotations"].items()) == [
            ("backstage.io/managed-by-location", "cluster origin: cluster-a"),
            ("backstage.io/managed-by-origin-location", "cluster origin: cluster-a"),
            ("terasky.backstage.io/crossplane-claim", "true"),
            ("terasky.backstage.io/crossplane-version", "v1"),
            ("terasky.backstage.io/crossplane-scope", "Cluster"),
        ]
        assert template.spec["type"] == "xdatabases.example.org"

        metadata, spec, crossplane, publish = template.spec["parameters"]
        assert metadata["required"] == ["xrName", "owner", "xrNamespace"]
        assert "xrNamespace" in metadata["properties"]
        assert spec["properties"]["size"] == {"type": "string", "default": "small"}
        assert "writeConnectionSecretToRef" in crossplane["properties"]
        assert publish["title"] == "Creation Settings"

        manifest = _step(template, "generateManifest")
        assert manifest["action"] == "terasky:claim-template"
        assert manifest["input"]["kind"] == "Database"
        assert manifest["input"]["apiVersion"] == "example.org/v1alpha1"
        assert manifest["input"]["namespaceParam"] == "xrNamespace"
        assert manifest["input"]["ownerParam"] == "owner"
        assert manifest["input"]["excludeParams"] == CLAIM_EXCLUDE_PARAMS

        pull_request = _step(template, "create-pull-request")
        assert pull_request["action"] == "publish:github:pull-request"
        assert pull_request["input"]["title"] == "Create Database Resource ${{ parameters.xrName }}"

        links = template.spec["output"]["links"]
        assert [link["title"] for link in links] == ["Download YAML Manifest", "Open Pull Request"]

        (api,) = apis
        assert api.name == "database-example.org--v1alpha1"
        assert api.metadata["tags"] == ["crossplane"]
        definition = yaml.safe_load(api.spec["definition"])
        assert "/apis/example.org/v1alpha1/namespaces/{namespace}/databases" in definition["paths"]

    def test_v2_namespaced(self, fetcher, config, make_xrd):
        """Test a v2 namespaced XRD targets the composite."""
        fetcher.add(
            "cluster-a",
            XRD_V2_PATH,
            [make_xrd(name="xbuckets.example.org", kind="XBucket", plural="xbuckets",
                      scope="Namespaced", claim_kind=None)],
        )

        templates, apis = _split(XRDTemplateEntityProvider(fetcher, config).collect())

        (template,) = templates
        assert template.metadata["title"] == "XBucket"
        annotations = template.metadata["annotations"]
        assert "terasky.backstage.io/crossplane-claim" not in annotations
        assert annotations["terasky.backstage.io/crossplane-version"] == "v2"
        assert annotations["terasky.backstage.io/crossplane-scope"] == "Namespaced"

        crossplane = template.spec["parameters"][2]
        assert list(crossplane["properties"]) == ["crossplane"]

        manifest = _step(template, "generateManifest")
        assert manifest["input"]["kind"] == "XBucket"
        assert manifest["input"]["namespaceParam"] == "xrNamespace"
        assert manifest["input"]["excludeParams"] == XR_EXCLUDE_PARAMS + ["xrNamespace"]

        (api,) = apis
        assert api.name == "xbucket-example.org--v1alpha1"
        definition = yaml.safe_load(api.spec["definition"])
        assert "/apis/example.org/v1alpha1/namespaces/{namespace}/xbuckets" in definition["paths"]

    def test_v2_cluster(self, fetcher, config, make_xrd):
        """Test a v2 cluster scoped XRD has no namespace."""
        fetcher.add(
            "cluster-a",
            XRD_V2_PATH,
            [make_xrd(name="xnets.example.org", kind="XNet", plural="xnets",
                      scope="Cluster", claim_kind=None)],
        )

        templates, apis = _split(XRDTemplateEntityProvider(fetcher, config).collect())

        metadata = templates[0].spec["parameters"][0]
        assert metadata["required"] == ["xrName", "owner"]
        assert "xrNamespace" not in metadata["properties"]
        manifest = _step(templates[0], "generateManifest")
        assert manifest["input"]["namespaceParam"] == ""
        assert manifest["input"]["excludeParams"] == XR_EXCLUDE_PARAMS
        definition = yaml.safe_load(apis[0].spec["definition"])
        assert list(definition["paths"]) == [
            "/apis/example.org/v1alpha1/xnets",
            "/apis/example.org/v1alpha1/xnets/{name}",
        ]

    def test_one_template_per_version(self, fetcher, config, make_xrd):
        """Test every version gets a template and an API record."""
        fetcher.add("cluster-a", XRD_V1_PATH, [make_xrd(versions=["v1alpha1", "v1"])])

        templates, apis = _split(XRDTemplateEntityProvider(fetcher, config).collect())

        assert [t.name for t in templates] == [
            "xdatabases.example.org-v1alpha1",
            "xdatabases.example.org-v1",
        ]
        assert [a.name for a in apis] == [
            "database-example.org--v1alpha1",
            "database-example.org--v1",
        ]

    def test_ingest_only_as_api(self, fetcher, make_xrd):
        """Test ingestOnlyAsAPI suppresses templates."""
        config = IngestorConfig.from_dict({"crossplane": {"xrds": {"ingestOnlyAsAPI": True}}})
        fetcher.add("cluster-a", XRD_V1_PATH, [make_xrd()])

        entities = XRDTemplateEntityProvider(fetcher, config).collect()

        assert [e.kind for e in entities] == [EntityKind.API]

    def test_placeholders(self, fetcher, make_xrd):
        """Test defaults become placeholders when configured."""
        config = IngestorConfig.from_dict(
            {"crossplane": {"xrds": {"convertDefaultValuesToPlaceholders": True}}}
        )
        fetcher.add("cluster-a", XRD_V1_PATH, [make_xrd()])

        templates, _ = _split(XRDTemplateEntityProvider(fetcher, config).collect())

        spec = templates[0].spec["parameters"][1]
        assert spec["properties"]["size"] == {"type": "string", "ui:placeholder": "small"}

    def test_yaml_target(self, fetcher, make_xrd):
        """Test the yaml target omits the pull request step."""
        config = IngestorConfig.from_dict(
            {"crossplane": {"xrds": {"publishPhase": {"target": "yaml"}}}}
        )
        fetcher.add("cluster-a", XRD_V1_PATH, [make_xrd()])

        templates, _ = _split(XRDTemplateEntityProvider(fetcher, config).collect())

        assert [s["id"] for s in templates[0].spec["steps"]] == ["generateManifest"]

    def test_extra_steps(self, fetcher, config, make_xrd):
        """Test version-declared steps are appended."""
        xrd = make_xrd()
        schema = xrd["spec"]["versions"][0]["schema"]["openAPIV3Schema"]
        schema["properties"]["steps"] = {"default": "- id: notify\n  action: debug:log\n"}
        fetcher.add("cluster-a", XRD_V1_PATH, [xrd])

        templates, _ = _split(XRDTemplateEntityProvider(fetcher, config).collect())

        assert [s["id"] for s in templates[0].spec["steps"]] == [
            "generateManifest",
            "create-pull-request",
            "notify",
        ]

    def test_generated_crd_schema(self, fetcher, config, make_xrd, make_crd):
        """Test API schemas come from the generated CRD when available."""
        crd = make_crd(
            name="xdatabases.example.org",
            group="example.org",
            kind="XDatabase",
            plural="xdatabases",
            versions=["v1alpha1"],
            spec_properties={"engine": {"type": "string"}},
        )
        fetcher.add("cluster-a", XRD_V1_PATH, [make_xrd()])
        fetcher.add("cluster-a", CRD_PATH, [crd])

        _, apis = _split(XRDTemplateEntityProvider(fetcher, config).collect())

        definition = yaml.safe_load(apis[0].spec["definition"])
        resource = definition["components"]["schemas"]["Resource"]
        assert resource["properties"]["spec"]["properties"] == {"engine": {"type": "string"}}

    def test_long_name_dropped(self, fetcher, config, make_xrd, caplog):
        """Test templates with names over 63 characters are dropped."""
        fetcher.add("cluster-a", XRD_V1_PATH, [make_xrd(name=f"{'x' * 50}.example.org")])

        templates, apis = _split(XRDTemplateEntityProvider(fetcher, config).collect())

        assert templates == []
        assert len(apis) == 1

    def test_run_publishes(self, fetcher, config, make_xrd):
        """Test a run publishes under the provider's location key."""
        fetcher.add("cluster-a", XRD_V1_PATH, [make_xrd()])
        connection = InMemoryCatalogConnection()
        provider = XRDTemplateEntityProvider(fetcher, config)
        provider.connect(connection)

        assert provider.run() is True
        assert len(connection.entities("provider:XRDTemplateEntityProvider")) == 2


class TestCRDTemplates:
    """Tests for generic CRD template generation."""

    def _config(self, **extra):
        generic = {"crdLabelSelector": {"key": "catalog", "value": "yes"}, **extra}
        return IngestorConfig.from_dict({"genericCRDTemplates": generic})

    def test_template_and_apis(self, fetcher, make_crd):
        """Test the stored version template and per-version APIs."""
        crd = make_crd(
            versions=["v1", "v2"],
            storage="v2",
            spec_properties={
                "db": {"type": "object", "required": ["engine"],
                       "properties": {"engine": {"type": "string", "default": "pg"}}},
            },
        )
        fetcher.add("cluster-a", CRD_PATH, [crd], selector="catalog=yes")

        templates, apis = _split(XRDTemplateEntityProvider(fetcher, self._config()).collect())

        (template,) = templates
        assert template.name == "widget-v2"
        assert template.metadata["title"] == "Widget"
        assert template.metadata["tags"] == ["kubernetes-crd", "cluster:cluster-a"]
        assert template.metadata["labels"] == {"forEntity": "system", "source": "kubernetes"}
        assert template.spec["type"] == "widget"

        metadata, spec, publish = template.spec["parameters"]
        assert metadata["required"] == ["name"]
        assert list(metadata["properties"]) == ["name", "namespace", "owner"]
        assert "required" not in spec["properties"]["db"]
        assert spec["properties"]["db"]["properties"]["engine"]["default"] == "pg"

        manifest = _step(template, "generateManifest")
        assert manifest["action"] == "terasky:crd-template"
        assert manifest["input"]["apiVersion"] == "example.com/v2"
        assert manifest["input"]["kind"] == "Widget"
        assert manifest["input"]["excludeParams"] == CRD_EXCLUDE_PARAMS
        assert "ownerParam" not in manifest["input"]

        assert [a.name for a in apis] == ["widget-example.com--v1", "widget-example.com--v2"]
        assert all(a.metadata["tags"] == ["crd"] for a in apis)

    def test_cluster_scoped(self, fetcher, make_crd):
        """Test cluster scoped CRDs have no namespace parameter."""
        fetcher.add("cluster-a", CRD_PATH, [make_crd(scope="Cluster")], selector="catalog=yes")

        templates, apis = _split(XRDTemplateEntityProvider(fetcher, self._config()).collect())

        assert list(templates[0].spec["parameters"][0]["properties"]) == ["name", "owner"]
        assert _step(templates[0], "generateManifest")["input"]["namespaceParam"] == ""
        definition = yaml.safe_load(apis[0].spec["definition"])
        assert "/apis/example.com/v1/widgets/{name}" in definition["paths"]

    def test_ingest_only_as_api(self, fetcher, make_crd):
        """Test CRD templates can be suppressed."""
        fetcher.add("cluster-a", CRD_PATH, [make_crd()], selector="catalog=yes")
        config = self._config(ingestOnlyAsAPI=True)

        entities = XRDTemplateEntityProvider(fetcher, config).collect()

        assert [e.kind for e in entities] == [EntityKind.API]
