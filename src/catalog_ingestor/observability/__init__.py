"""
Observability for the Kubernetes catalog ingestor.

Provides logging formatters and configuration.
"""

from catalog_ingestor.observability.logging import (
    ROOT_LOGGER_NAME,
    HumanReadableFormatter,
    StructuredFormatter,
    configure_logging,
    configure_logging_from_env,
)

__all__ = [
    "ROOT_LOGGER_NAME",
    "HumanReadableFormatter",
    "StructuredFormatter",
    "configure_logging",
    "configure_logging_from_env",
]
