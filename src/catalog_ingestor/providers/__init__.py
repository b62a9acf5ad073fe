"""
Data providers for the Kubernetes catalog ingestor.

Schema data providers scan CRDs, XRDs and RGDs and build lookup tables;
the Kubernetes data provider fetches the objects that become components.
"""

from catalog_ingestor.providers.clusters import (
    COMPOSITIONS_PATH,
    CRD_PATH,
    RGD_PATH,
    aggregate_by_name,
    fan_out_clusters,
    resolve_clusters,
)
from catalog_ingestor.providers.crd import CRDDataProvider, descriptor_from_crd
from catalog_ingestor.providers.kubernetes import (
    DEFAULT_WORKLOAD_TYPES,
    KubernetesDataProvider,
    used_functions,
)
from catalog_ingestor.providers.rgd import RGDDataProvider, descriptor_from_rgd
from catalog_ingestor.providers.xrd import XRDDataProvider

__all__ = [
    "COMPOSITIONS_PATH",
    "CRD_PATH",
    "RGD_PATH",
    "aggregate_by_name",
    "fan_out_clusters",
    "resolve_clusters",
    "CRDDataProvider",
    "descriptor_from_crd",
    "DEFAULT_WORKLOAD_TYPES",
    "KubernetesDataProvider",
    "used_functions",
    "RGDDataProvider",
    "descriptor_from_rgd",
    "XRDDataProvider",
]
