"""
Azure Arc Extension Reconciler.
"""

from catalog import AzCliCatalogSource, FileCatalogSource, build_catalog
from clients import ArcRestClient
from config import ReconcilerConfig
from jobs import UpgradeJobTracker, wait_for_upgrade_jobs
from log_utils import setup_logging
from models import (
    CatalogError,
    ExtensionMismatch,
    InstalledExtension,
    Machine,
    UpgradeJob,
    VersionCatalog,
)
from reconciler import ExtensionReconciler

__all__ = [
    "AzCliCatalogSource",
    "FileCatalogSource",
    "build_catalog",
    "ArcRestClient",
    "ReconcilerConfig",
    "UpgradeJobTracker",
    "wait_for_upgrade_jobs",
    "setup_logging",
    "CatalogError",
    "ExtensionMismatch",
    "InstalledExtension",
    "Machine",
    "UpgradeJob",
    "VersionCatalog",
    "ExtensionReconciler",
]
