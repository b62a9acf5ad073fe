"""
Kubernetes Catalog Ingestor CLI entry point.

This module provides the command-line interface for running the
entity providers once, serving them on a schedule, and listing
discovered clusters.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import signal
import sys

import yaml

from catalog_ingestor import __version__
from catalog_ingestor.catalog import (
    EntityProvider,
    FileCatalogConnection,
    InMemoryCatalogConnection,
)
from catalog_ingestor.config import (
    ConfigurationError,
    IngestorConfig,
    TaskRunnerConfig,
    load_config_from_env,
)
from catalog_ingestor.fetcher import FetchError, KubernetesResourceFetcher, ResourceFetcher
from catalog_ingestor.observability import configure_logging
from catalog_ingestor.scheduling import TaskRunner
from catalog_ingestor.templates import RGDTemplateEntityProvider, XRDTemplateEntityProvider
from catalog_ingestor.translation import KubernetesEntityProvider

logger = logging.getLogger(__name__)

PROVIDERS = {
    "kubernetes": KubernetesEntityProvider,
    "xrd": XRDTemplateEntityProvider,
    "rgd": RGDTemplateEntityProvider,
}


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="catalog-ingestor",
        description="Kubernetes Catalog Ingestor - developer catalog records from live clusters",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"catalog-ingestor {__version__}",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (can be repeated)",
    )

    parser.add_argument(
        "--log-format",
        choices=["human", "json"],
        default="human",
        help="Log output format (default: human)",
    )

    parser.add_argument(
        "--config",
        help="Path to a YAML or JSON configuration file (default: environment)",
    )

    access = parser.add_mutually_exclusive_group()
    access.add_argument(
        "--kubeconfig",
        help="Path to kubeconfig file (default: $KUBECONFIG or ~/.kube/config)",
    )
    access.add_argument(
        "--in-cluster",
        action="store_true",
        help="Use the in-cluster service account",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # run command
    run_parser = subparsers.add_parser("run", help="Run providers once")
    run_parser.add_argument(
        "--provider",
        choices=[*PROVIDERS, "all"],
        default="all",
        help="Provider to run (default: all)",
    )
    run_parser.add_argument(
        "--output",
        help="File to write the published entities to (default: stdout)",
    )
    run_parser.add_argument(
        "--format",
        choices=["yaml", "json"],
        default="yaml",
        help="Output format (default: yaml)",
    )

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Run providers on their schedules")
    serve_parser.add_argument(
        "--output-dir",
        default="./catalog",
        help="Directory to write one file per provider to (default: ./catalog)",
    )
    serve_parser.add_argument(
        "--format",
        choices=["yaml", "json"],
        default="yaml",
        help="Output format (default: yaml)",
    )

    # clusters command
    subparsers.add_parser("clusters", help="List discovered clusters")

    return parser


def load_config(args: argparse.Namespace) -> IngestorConfig:
    """Load configuration from --config or the environment."""
    if getattr(args, "config", None):
        return IngestorConfig.from_file(args.config)
    return load_config_from_env()


def create_fetcher(args: argparse.Namespace) -> ResourceFetcher:
    """Create the resource fetcher selected by the access options."""
    return KubernetesResourceFetcher(
        kubeconfig=getattr(args, "kubeconfig", None),
        in_cluster=bool(getattr(args, "in_cluster", False)),
    )


def create_providers(
    names: list[str], fetcher: ResourceFetcher, config: IngestorConfig
) -> list[EntityProvider]:
    """Instantiate the named providers."""
    return [PROVIDERS[name](fetcher, config) for name in names]


def task_schedule(provider: EntityProvider, config: IngestorConfig) -> TaskRunnerConfig:
    """Task runner settings for a provider."""
    if isinstance(provider, XRDTemplateEntityProvider):
        return config.crossplane.xrds.task_runner
    if isinstance(provider, RGDTemplateEntityProvider):
        return config.kro.rgds.task_runner
    return config.components.task_runner


def _selected(provider: str) -> list[str]:
    return list(PROVIDERS) if provider == "all" else [provider]


def cmd_run(args: argparse.Namespace, fetcher: ResourceFetcher, config: IngestorConfig) -> int:
    """Run the selected providers once and write their records."""
    connection = InMemoryCatalogConnection()
    failed = []

    for provider in create_providers(_selected(args.provider), fetcher, config):
        provider.connect(connection)
        if not provider.run():
            failed.append(provider.get_provider_name())

    documents = [e.entity.to_dict() for e in connection.entities()]
    if args.format == "json":
        text = json.dumps(documents, indent=2)
    else:
        text = yaml.safe_dump_all(documents, sort_keys=False)

    if args.output:
        with open(os.path.expanduser(args.output), "w", encoding="utf-8") as f:
            f.write(text)
        print(f"Wrote {len(documents)} entities to {args.output}")
    else:
        sys.stdout.write(text)

    if failed:
        logger.error(f"Failed providers: {', '.join(failed)}")
        return 1
    return 0


def cmd_serve(args: argparse.Namespace, fetcher: ResourceFetcher, config: IngestorConfig) -> int:
    """Run every provider on its schedule until interrupted."""
    connection = FileCatalogConnection(args.output_dir, format=args.format)
    runner = TaskRunner()

    for provider in create_providers(list(PROVIDERS), fetcher, config):
        provider.connect(connection)
        runner.add_provider(provider, task_schedule(provider, config))

    def handle_signal(signum, frame):
        logger.info(f"Received signal {signum}, shutting down")
        runner.stop()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    runner.start()
    while runner.is_running():
        runner.wait(1)
    return 0


def cmd_clusters(args: argparse.Namespace, fetcher: ResourceFetcher, config: IngestorConfig) -> int:
    """List clusters visible to the fetcher."""
    try:
        clusters = fetcher.list_clusters()
    except FetchError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not clusters:
        print("No clusters found.")
        return 0

    for cluster in clusters:
        print(cluster)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    level = "DEBUG" if args.verbose > 1 else "INFO" if args.verbose else "WARNING"
    configure_logging(level=level, format=args.log_format)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        config = load_config(args)
    except (OSError, ConfigurationError, yaml.YAMLError) as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        return 1

    command_handlers = {
        "run": cmd_run,
        "serve": cmd_serve,
        "clusters": cmd_clusters,
    }

    handler = command_handlers.get(args.command)
    if handler:
        return handler(args, create_fetcher(args), config)

    print(f"Unknown command: {args.command}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
