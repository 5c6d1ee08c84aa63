"""Console entry point for the Azure Arc Extension Reconciler CLI."""

from __future__ import annotations

import argparse
from typing import List

from catalog import AzCliCatalogSource, FileCatalogSource
from config import ReconcilerConfig
from log_utils import setup_logging
from reconciler import ExtensionReconciler


def build_parser() -> argparse.ArgumentParser:
    """Build and return the CLI argument parser."""
    parser = argparse.ArgumentParser(
        description=(
            "Compare Azure Arc machine extensions with the latest available "
            "versions and optionally upgrade them."
        )
    )
    parser.add_argument("--subscription", required=True, help="Azure subscription ID")
    parser.add_argument(
        "--resource-group", required=True, help="Resource group of the Arc machines"
    )
    parser.add_argument(
        "--location",
        required=True,
        help="Azure region used to list the latest extension images (e.g. westeurope)",
    )

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--check",
        dest="update",
        action="store_false",
        help="Only report outdated extensions (default)",
    )
    mode.add_argument(
        "--update",
        dest="update",
        action="store_true",
        help="Upgrade outdated extensions and wait for the jobs to finish",
    )
    parser.set_defaults(update=False)

    parser.add_argument(
        "--catalog-file",
        help="Read the extension catalog from a JSON file instead of the Azure CLI",
    )
    parser.add_argument("--poll-interval", type=float, default=30)
    parser.add_argument("--dispatch-delay", type=float, default=2.0)
    parser.add_argument("--verbose", action="store_true")
    return parser


def main(argv: List[str] | None = None) -> int:
    """CLI main for console_scripts entry point."""
    parser = build_parser()
    args = parser.parse_args(args=argv)

    log_file = "arc-extension-update.log" if args.update else "arc-extension-check.log"
    setup_logging(verbose=args.verbose, log_file=log_file)

    config = ReconcilerConfig.from_args(args)

    if config.catalog_file:
        source = FileCatalogSource(config.catalog_file)
    else:
        source = AzCliCatalogSource(config.location)

    runner = ExtensionReconciler(
        subscription_id=config.subscription_id,
        resource_group=config.resource_group,
        catalog_source=source,
        update=config.update,
        poll_interval=config.poll_interval,
        dispatch_delay=config.dispatch_delay,
    )
    runner.run()
    return 0
