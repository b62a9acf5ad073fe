"""
Ingestor configuration for the Kubernetes catalog ingestor.

Provides configuration management for cluster selection, naming models,
per-category ingestion switches, template publish phases and task runners.
"""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import yaml

DEFAULT_ANNOTATION_PREFIX = "terasky.backstage.io"
DEFAULT_OWNER = "kubernetes-auto-ingested"


class ConfigurationError(ValueError):
    """Raised when the ingestor configuration is invalid."""


class NamespaceModel(Enum):
    """Where generated records are placed in the catalog."""

    DEFAULT = "default"
    CLUSTER = "cluster"
    NAMESPACE = "namespace"


class SystemModel(Enum):
    """How the system record name is derived."""

    NAMESPACE = "namespace"
    CLUSTER = "cluster"
    CLUSTER_NAMESPACE = "cluster-namespace"
    DEFAULT = "default"


class NameModel(Enum):
    """How component/resource record names are derived."""

    NAME = "name"
    NAME_KIND = "name-kind"
    NAME_CLUSTER = "name-cluster"
    NAME_NAMESPACE = "name-namespace"


class TitleModel(Enum):
    """How record titles are derived."""

    NAME = "name"
    NAME_CLUSTER = "name-cluster"
    NAME_NAMESPACE = "name-namespace"


class ReferencesNamespaceModel(Enum):
    """Namespace used when records reference systems and owners."""

    DEFAULT = "default"
    SAME = "same"


class PublishTarget(Enum):
    """Source-control provider used by generated templates."""

    GITHUB = "github"
    GITLAB = "gitlab"
    BITBUCKET = "bitbucket"
    BITBUCKET_CLOUD = "bitbucketcloud"
    YAML = "yaml"


def _parse_enum(enum_cls: type[Enum], value: Any, default: Enum) -> Any:
    """Parse a case-insensitive enum value, raising ConfigurationError."""
    if value is None or value == "":
        return default
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ConfigurationError(
            f"Invalid value '{value}' for {enum_cls.__name__} (allowed: {allowed})"
        )


_DURATION_UNITS = {
    "second": 1,
    "minute": 60,
    "hour": 3600,
    "day": 86400,
}

_RATE = re.compile(r"^(?:rate\()?\s*(\d+)\s*(second|minute|hour|day)s?\s*\)?$", re.I)


def parse_duration(value: Any, default: int) -> int:
    """
    Parse a schedule duration into seconds.

    Accepts a number of seconds, a rate string such as "rate(10 minutes)"
    or "30 seconds", or a mapping such as {"minutes": 10}.

    Raises:
        ConfigurationError: If the value cannot be parsed
    """
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid duration: {value}")
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, dict):
        seconds = 0
        for unit, amount in value.items():
            factor = _DURATION_UNITS.get(str(unit).lower().rstrip("s"))
            if factor is None:
                raise ConfigurationError(f"Unknown duration unit: {unit}")
            seconds += int(amount) * factor
        return seconds

    text = str(value).strip()
    if text.isdigit():
        return int(text)
    match = _RATE.match(text)
    if not match:
        raise ConfigurationError(f"Invalid duration: {value}")
    return int(match.group(1)) * _DURATION_UNITS[match.group(2).lower()]


@dataclass
class TaskRunnerConfig:
    """Schedule for a provider task, in seconds."""

    frequency: int = 600
    timeout: int = 600

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"frequency": self.frequency, "timeout": self.timeout}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> TaskRunnerConfig:
        """Create from dictionary."""
        data = data or {}
        return cls(
            frequency=parse_duration(data.get("frequency"), 600),
            timeout=parse_duration(data.get("timeout"), 600),
        )


@dataclass
class WorkloadType:
    """A resource type fetched as a first-class workload."""

    group: str
    api_version: str
    plural: str
    default_type: str | None = None

    @property
    def resource_path(self) -> str:
        """Path relative to /apis used to list this type."""
        return f"{self.group}/{self.api_version}/{self.plural}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data: dict[str, Any] = {
            "group": self.group,
            "apiVersion": self.api_version,
            "plural": self.plural,
        }
        if self.default_type:
            data["defaultType"] = self.default_type
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WorkloadType:
        """Create from dictionary."""
        try:
            return cls(
                group=data["group"],
                api_version=data["apiVersion"],
                plural=data["plural"],
                default_type=data.get("defaultType"),
            )
        except KeyError as e:
            raise ConfigurationError(f"customWorkloadTypes entry is missing {e}")


@dataclass
class MappingsConfig:
    """Naming models applied to generated records."""

    namespace_model: NamespaceModel = NamespaceModel.DEFAULT
    system_model: SystemModel = SystemModel.NAMESPACE
    name_model: NameModel = NameModel.NAME
    title_model: TitleModel = TitleModel.NAME
    references_namespace_model: ReferencesNamespaceModel = ReferencesNamespaceModel.DEFAULT

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "namespaceModel": self.namespace_model.value,
            "systemModel": self.system_model.value,
            "nameModel": self.name_model.value,
            "titleModel": self.title_model.value,
            "referencesNamespaceModel": self.references_namespace_model.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> MappingsConfig:
        """Create from dictionary."""
        data = data or {}
        return cls(
            namespace_model=_parse_enum(
                NamespaceModel, data.get("namespaceModel"), NamespaceModel.DEFAULT
            ),
            system_model=_parse_enum(
                SystemModel, data.get("systemModel"), SystemModel.NAMESPACE
            ),
            name_model=_parse_enum(NameModel, data.get("nameModel"), NameModel.NAME),
            title_model=_parse_enum(TitleModel, data.get("titleModel"), TitleModel.NAME),
            references_namespace_model=_parse_enum(
                ReferencesNamespaceModel,
                data.get("referencesNamespaceModel"),
                ReferencesNamespaceModel.DEFAULT,
            ),
        )


@dataclass
class PublishPhaseConfig:
    """Source-control settings for generated scaffolding templates."""

    target: PublishTarget = PublishTarget.GITHUB
    allowed_targets: list[str] | None = None
    allow_repo_selection: bool = False
    request_user_credentials: bool = False
    repo_url: str | None = None
    target_branch: str | None = None

    @property
    def allowed_hosts(self) -> list[str]:
        """Hosts offered by the repository picker."""
        if self.allowed_targets is not None:
            return list(self.allowed_targets)
        return {
            PublishTarget.GITHUB: ["github.com"],
            PublishTarget.GITLAB: ["gitlab.com"],
            PublishTarget.BITBUCKET: ["only-bitbucket-server-is-allowed"],
            PublishTarget.BITBUCKET_CLOUD: ["bitbucket.org"],
        }.get(self.target, [])

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data: dict[str, Any] = {
            "target": self.target.value,
            "allowRepoSelection": self.allow_repo_selection,
            "requestUserCredentialsForRepoUrl": self.request_user_credentials,
            "git": {"repoUrl": self.repo_url, "targetBranch": self.target_branch},
        }
        if self.allowed_targets is not None:
            data["allowedTargets"] = self.allowed_targets
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> PublishPhaseConfig:
        """Create from dictionary."""
        data = data or {}
        git = data.get("git") or {}
        return cls(
            target=_parse_enum(PublishTarget, data.get("target"), PublishTarget.GITHUB),
            allowed_targets=data.get("allowedTargets"),
            allow_repo_selection=bool(data.get("allowRepoSelection", False)),
            request_user_credentials=bool(
                data.get("requestUserCredentialsForRepoUrl", False)
            ),
            repo_url=git.get("repoUrl"),
            target_branch=git.get("targetBranch"),
        )


@dataclass
class ComponentsConfig:
    """Settings for ordinary workload ingestion."""

    enabled: bool = True
    ingest_as_resources: bool = False
    disable_default_workload_types: bool = False
    only_ingest_annotated_resources: bool = False
    excluded_namespaces: list[str] = field(default_factory=list)
    custom_workload_types: list[WorkloadType] = field(default_factory=list)
    task_runner: TaskRunnerConfig = field(default_factory=TaskRunnerConfig)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "enabled": self.enabled,
            "ingestAsResources": self.ingest_as_resources,
            "disableDefaultWorkloadTypes": self.disable_default_workload_types,
            "onlyIngestAnnotatedResources": self.only_ingest_annotated_resources,
            "excludedNamespaces": self.excluded_namespaces,
            "customWorkloadTypes": [w.to_dict() for w in self.custom_workload_types],
            "taskRunner": self.task_runner.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ComponentsConfig:
        """Create from dictionary."""
        data = data or {}
        return cls(
            enabled=bool(data.get("enabled", True)),
            ingest_as_resources=bool(data.get("ingestAsResources", False)),
            disable_default_workload_types=bool(
                data.get("disableDefaultWorkloadTypes", False)
            ),
            only_ingest_annotated_resources=bool(
                data.get("onlyIngestAnnotatedResources", False)
            ),
            excluded_namespaces=list(data.get("excludedNamespaces") or []),
            custom_workload_types=[
                WorkloadType.from_dict(w) for w in data.get("customWorkloadTypes") or []
            ],
            task_runner=TaskRunnerConfig.from_dict(data.get("taskRunner")),
        )


@dataclass
class ClaimsConfig:
    """Settings for Crossplane claims and v2 composites."""

    ingest_all_claims: bool = False
    ingest_as_resources: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "ingestAllClaims": self.ingest_all_claims,
            "ingestAsResources": self.ingest_as_resources,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ClaimsConfig:
        """Create from dictionary."""
        data = data or {}
        return cls(
            ingest_all_claims=bool(data.get("ingestAllClaims", False)),
            ingest_as_resources=bool(data.get("ingestAsResources", False)),
        )


@dataclass
class XRDConfig:
    """Settings for CompositeResourceDefinition templates and APIs."""

    enabled: bool = True
    ingest_all_xrds: bool = False
    ingest_only_as_api: bool = False
    convert_default_values_to_placeholders: bool = False
    publish_phase: PublishPhaseConfig = field(default_factory=PublishPhaseConfig)
    task_runner: TaskRunnerConfig = field(default_factory=TaskRunnerConfig)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "enabled": self.enabled,
            "ingestAllXRDs": self.ingest_all_xrds,
            "ingestOnlyAsAPI": self.ingest_only_as_api,
            "convertDefaultValuesToPlaceholders": self.convert_default_values_to_placeholders,
            "publishPhase": self.publish_phase.to_dict(),
            "taskRunner": self.task_runner.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> XRDConfig:
        """Create from dictionary."""
        data = data or {}
        return cls(
            enabled=bool(data.get("enabled", True)),
            ingest_all_xrds=bool(data.get("ingestAllXRDs", False)),
            ingest_only_as_api=bool(data.get("ingestOnlyAsAPI", False)),
            convert_default_values_to_placeholders=bool(
                data.get("convertDefaultValuesToPlaceholders", False)
            ),
            publish_phase=PublishPhaseConfig.from_dict(data.get("publishPhase")),
            task_runner=TaskRunnerConfig.from_dict(data.get("taskRunner")),
        )


@dataclass
class CrossplaneConfig:
    """Crossplane integration settings."""

    enabled: bool = True
    claims: ClaimsConfig = field(default_factory=ClaimsConfig)
    xrds: XRDConfig = field(default_factory=XRDConfig)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "enabled": self.enabled,
            "claims": self.claims.to_dict(),
            "xrds": self.xrds.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> CrossplaneConfig:
        """Create from dictionary."""
        data = data or {}
        return cls(
            enabled=bool(data.get("enabled", True)),
            claims=ClaimsConfig.from_dict(data.get("claims")),
            xrds=XRDConfig.from_dict(data.get("xrds")),
        )


@dataclass
class KroInstancesConfig:
    """Settings for KRO resource-graph instances."""

    ingest_all_instances: bool = False
    ingest_as_resources: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "ingestAllInstances": self.ingest_all_instances,
            "ingestAsResources": self.ingest_as_resources,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> KroInstancesConfig:
        """Create from dictionary."""
        data = data or {}
        return cls(
            ingest_all_instances=bool(data.get("ingestAllInstances", False)),
            ingest_as_resources=bool(data.get("ingestAsResources", False)),
        )


@dataclass
class RGDConfig:
    """Settings for ResourceGraphDefinition templates and APIs."""

    enabled: bool = False
    convert_default_values_to_placeholders: bool = False
    publish_phase: PublishPhaseConfig = field(default_factory=PublishPhaseConfig)
    task_runner: TaskRunnerConfig = field(default_factory=TaskRunnerConfig)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "enabled": self.enabled,
            "convertDefaultValuesToPlaceholders": self.convert_default_values_to_placeholders,
            "publishPhase": self.publish_phase.to_dict(),
            "taskRunner": self.task_runner.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> RGDConfig:
        """Create from dictionary."""
        data = data or {}
        return cls(
            enabled=bool(data.get("enabled", False)),
            convert_default_values_to_placeholders=bool(
                data.get("convertDefaultValuesToPlaceholders", False)
            ),
            publish_phase=PublishPhaseConfig.from_dict(data.get("publishPhase")),
            task_runner=TaskRunnerConfig.from_dict(data.get("taskRunner")),
        )


@dataclass
class KroConfig:
    """KRO integration settings."""

    enabled: bool = False
    instances: KroInstancesConfig = field(default_factory=KroInstancesConfig)
    rgds: RGDConfig = field(default_factory=RGDConfig)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "enabled": self.enabled,
            "instances": self.instances.to_dict(),
            "rgds": self.rgds.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> KroConfig:
        """Create from dictionary."""
        data = data or {}
        return cls(
            enabled=bool(data.get("enabled", False)),
            instances=KroInstancesConfig.from_dict(data.get("instances")),
            rgds=RGDConfig.from_dict(data.get("rgds")),
        )


@dataclass
class LabelSelectorConfig:
    """A single key=value label selector."""

    key: str
    value: str

    def to_selector(self) -> str:
        """Render as a Kubernetes label selector string."""
        return f"{self.key}={self.value}"


@dataclass
class GenericCRDTemplatesConfig:
    """Settings for template generation from arbitrary CRDs."""

    crds: list[str] = field(default_factory=list)
    crd_label_selector: LabelSelectorConfig | None = None
    ingest_only_as_api: bool = False
    publish_phase: PublishPhaseConfig = field(default_factory=PublishPhaseConfig)

    @property
    def is_configured(self) -> bool:
        """Whether any CRD target is configured."""
        return bool(self.crds) or self.crd_label_selector is not None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data: dict[str, Any] = {
            "crds": self.crds,
            "ingestOnlyAsAPI": self.ingest_only_as_api,
            "publishPhase": self.publish_phase.to_dict(),
        }
        if self.crd_label_selector:
            data["crdLabelSelector"] = {
                "key": self.crd_label_selector.key,
                "value": self.crd_label_selector.value,
            }
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> GenericCRDTemplatesConfig:
        """Create from dictionary."""
        data = data or {}
        selector = data.get("crdLabelSelector")
        return cls(
            crds=list(data.get("crds") or []),
            crd_label_selector=LabelSelectorConfig(
                key=selector["key"], value=selector["value"]
            )
            if selector
            else None,
            ingest_only_as_api=bool(data.get("ingestOnlyAsAPI", False)),
            publish_phase=PublishPhaseConfig.from_dict(data.get("publishPhase")),
        )


@dataclass
class IngestorConfig:
    """
    Complete ingestor configuration.

    This is the main configuration class that contains all settings
    consumed by the data providers, entity providers and task runners.
    """

    annotation_prefix: str = DEFAULT_ANNOTATION_PREFIX
    default_owner: str = DEFAULT_OWNER
    allowed_cluster_names: list[str] | None = None
    inherit_owner_from_namespace: bool = False
    argo_integration: bool = True
    max_workers: int = 8
    mappings: MappingsConfig = field(default_factory=MappingsConfig)
    components: ComponentsConfig = field(default_factory=ComponentsConfig)
    crossplane: CrossplaneConfig = field(default_factory=CrossplaneConfig)
    kro: KroConfig = field(default_factory=KroConfig)
    generic_crd_templates: GenericCRDTemplatesConfig = field(
        default_factory=GenericCRDTemplatesConfig
    )

    def annotation(self, name: str) -> str:
        """Return the fully prefixed annotation key for name."""
        return f"{self.annotation_prefix}/{name}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data: dict[str, Any] = {
            "annotationPrefix": self.annotation_prefix,
            "defaultOwner": self.default_owner,
            "inheritOwnerFromNamespace": self.inherit_owner_from_namespace,
            "argoIntegration": self.argo_integration,
            "maxWorkers": self.max_workers,
            "mappings": self.mappings.to_dict(),
            "components": self.components.to_dict(),
            "crossplane": self.crossplane.to_dict(),
            "kro": self.kro.to_dict(),
            "genericCRDTemplates": self.generic_crd_templates.to_dict(),
        }
        if self.allowed_cluster_names is not None:
            data["allowedClusterNames"] = self.allowed_cluster_names
        return data

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> IngestorConfig:
        """Create from dictionary, accepting a kubernetesIngestor wrapper."""
        data = data or {}
        if "kubernetesIngestor" in data:
            data = data["kubernetesIngestor"] or {}
        max_workers = int(data.get("maxWorkers", 8))
        if max_workers < 1:
            raise ConfigurationError("maxWorkers must be at least 1")
        allowed = data.get("allowedClusterNames")
        return cls(
            annotation_prefix=data.get("annotationPrefix") or DEFAULT_ANNOTATION_PREFIX,
            default_owner=data.get("defaultOwner") or DEFAULT_OWNER,
            allowed_cluster_names=list(allowed) if allowed is not None else None,
            inherit_owner_from_namespace=bool(data.get("inheritOwnerFromNamespace", False)),
            argo_integration=bool(data.get("argoIntegration", True)),
            max_workers=max_workers,
            mappings=MappingsConfig.from_dict(data.get("mappings")),
            components=ComponentsConfig.from_dict(data.get("components")),
            crossplane=CrossplaneConfig.from_dict(data.get("crossplane")),
            kro=KroConfig.from_dict(data.get("kro")),
            generic_crd_templates=GenericCRDTemplatesConfig.from_dict(
                data.get("genericCRDTemplates")
            ),
        )

    @classmethod
    def from_json(cls, json_str: str) -> IngestorConfig:
        """Create from JSON string."""
        return cls.from_dict(json.loads(json_str))

    @classmethod
    def from_file(cls, path: str) -> IngestorConfig:
        """Load configuration from a YAML or JSON file."""
        path = os.path.expanduser(path)
        with open(path, "r", encoding="utf-8") as f:
            if path.endswith(".json"):
                return cls.from_dict(json.load(f))
            return cls.from_dict(yaml.safe_load(f))

    def save(self, path: str) -> None:
        """Save configuration to a YAML or JSON file."""
        path = os.path.expanduser(path)
        with open(path, "w", encoding="utf-8") as f:
            if path.endswith(".json"):
                json.dump(self.to_dict(), f, indent=2)
            else:
                yaml.safe_dump(self.to_dict(), f, sort_keys=False)


def load_config_from_env() -> IngestorConfig:
    """
    Load configuration from environment variables.

    Environment variables:
        INGESTOR_CONFIG_FILE: Path to configuration file
        INGESTOR_ANNOTATION_PREFIX: Annotation prefix override
        INGESTOR_DEFAULT_OWNER: Default owner override
        INGESTOR_CLUSTERS: Comma-separated list of allowed cluster names

    Returns:
        IngestorConfig instance
    """
    config_file = os.getenv("INGESTOR_CONFIG_FILE")
    if config_file and os.path.exists(config_file):
        return IngestorConfig.from_file(config_file)

    config = IngestorConfig()

    prefix = os.getenv("INGESTOR_ANNOTATION_PREFIX")
    if prefix:
        config.annotation_prefix = prefix

    owner = os.getenv("INGESTOR_DEFAULT_OWNER")
    if owner:
        config.default_owner = owner

    clusters = os.getenv("INGESTOR_CLUSTERS")
    if clusters:
        config.allowed_cluster_names = [c.strip() for c in clusters.split(",") if c.strip()]

    return config
