"""
Configuration management for the Kubernetes catalog ingestor.

Provides dataclass-based configuration loaded from YAML/JSON files
or environment variables.
"""

from catalog_ingestor.config.ingestor_config import (
    DEFAULT_ANNOTATION_PREFIX,
    DEFAULT_OWNER,
    ClaimsConfig,
    ComponentsConfig,
    ConfigurationError,
    CrossplaneConfig,
    GenericCRDTemplatesConfig,
    IngestorConfig,
    KroConfig,
    KroInstancesConfig,
    LabelSelectorConfig,
    MappingsConfig,
    NameModel,
    NamespaceModel,
    PublishPhaseConfig,
    PublishTarget,
    ReferencesNamespaceModel,
    RGDConfig,
    SystemModel,
    TaskRunnerConfig,
    TitleModel,
    WorkloadType,
    XRDConfig,
    load_config_from_env,
    parse_duration,
)

__all__ = [
    "DEFAULT_ANNOTATION_PREFIX",
    "DEFAULT_OWNER",
    "ClaimsConfig",
    "ComponentsConfig",
    "ConfigurationError",
    "CrossplaneConfig",
    "GenericCRDTemplatesConfig",
    "IngestorConfig",
    "KroConfig",
    "KroInstancesConfig",
    "LabelSelectorConfig",
    "MappingsConfig",
    "NameModel",
    "NamespaceModel",
    "PublishPhaseConfig",
    "PublishTarget",
    "ReferencesNamespaceModel",
    "RGDConfig",
    "SystemModel",
    "TaskRunnerConfig",
    "TitleModel",
    "WorkloadType",
    "XRDConfig",
    "load_config_from_env",
    "parse_duration",
]
