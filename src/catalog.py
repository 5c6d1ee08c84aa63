"""
Sources for the catalog of latest available extension versions.
"""

import json
import logging
import subprocess
from typing import Dict, List

from models import CatalogError, VersionCatalog

logger = logging.getLogger(__name__)


def _parse_records(payload: str, origin: str) -> List[Dict]:
    try:
        data = json.loads(payload)
    except ValueError as e:
        raise CatalogError(f"Catalog from {origin} is not valid JSON: {e}") from e
    if not isinstance(data, list):
        raise CatalogError(
            f"Catalog from {origin} must be an array, got {type(data).__name__}"
        )
    return data


class AzCliCatalogSource:
    """Reads the latest extension images with the Azure CLI."""

    def __init__(self, location: str, az_command: str = "az"):
        self.location = location
        self.az_command = az_command

    def command(self) -> List[str]:
        return [
            self.az_command,
            "vm",
            "extension",
            "image",
            "list",
            "--latest",
            "--location",
            self.location,
            "--output",
            "json",
        ]

    def fetch(self) -> List[Dict]:
        """
        Run the Azure CLI once and return the raw catalog records.

        Raises:
            CatalogError: If the command fails or returns malformed output
        """
        cmd = self.command()
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            process = subprocess.run(cmd, text=True, capture_output=True)
        except OSError as e:
            raise CatalogError(f"Unable to run {self.az_command}: {e}") from e
        if process.returncode != 0:
            raise CatalogError(
                f"Catalog command failed (exit {process.returncode}): "
                f"{(process.stderr or '').strip()[:500]}"
            )
        return _parse_records(process.stdout, "az cli")


class FileCatalogSource:
    """Reads catalog records from a JSON file."""

    def __init__(self, path: str):
        self.path = path

    def fetch(self) -> List[Dict]:
        try:
            with open(self.path, encoding="utf-8") as f:
                payload = f.read()
        except OSError as e:
            raise CatalogError(f"Unable to read catalog file {self.path}: {e}") from e
        return _parse_records(payload, self.path)


def build_catalog(source) -> VersionCatalog:
    """
    Build the version catalog from a source. Not retried.

    Args:
        source: Object with a fetch() method returning catalog records

    Returns:
        VersionCatalog instance

    Raises:
        CatalogError: If the source fails or any record is malformed
    """
    catalog = VersionCatalog.from_records(source.fetch())
    logger.info(f"Catalog loaded: {len(catalog)} extension type(s)")
    return catalog
