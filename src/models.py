"""
Data models for the Azure Arc Extension Reconciler.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, Mapping, Optional


class CatalogError(RuntimeError):
    """Raised when the extension catalog cannot be built."""


@dataclass(frozen=True)
class VersionCatalog:
    """Latest available extension versions keyed by ``publisher.name``."""

    versions: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "versions", MappingProxyType(dict(self.versions)))

    @classmethod
    def from_records(cls, records: Iterable[Dict]) -> "VersionCatalog":
        """
        Build a catalog from an array of extension image records.

        Args:
            records: Records with at least publisher, name and version

        Returns:
            VersionCatalog instance

        Raises:
            CatalogError: If a record is malformed
        """
        versions: Dict[str, str] = {}
        for index, record in enumerate(records):
            if not isinstance(record, dict):
                raise CatalogError(f"Catalog record {index} is not an object: {record!r}")
            try:
                publisher = record["publisher"]
                name = record["name"]
                version = record["version"]
            except KeyError as e:
                raise CatalogError(
                    f"Catalog record {index} is missing field {e}: {record!r}"
                ) from e
            # Later records for the same key win
            versions[f"{publisher}.{name}"] = str(version)
        return cls(versions)

    def get(self, key: str) -> Optional[str]:
        return self.versions.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self.versions

    def __len__(self) -> int:
        return len(self.versions)

    def __iter__(self) -> Iterator[str]:
        return iter(self.versions)


@dataclass
class Machine:
    """Azure Arc-enabled machine."""

    name: str
    provisioning_state: str
    status: str
    resource_group: str = ""
    location: str = ""

    @property
    def eligible(self) -> bool:
        return (
            self.provisioning_state.lower() == "succeeded"
            and self.status.lower() == "connected"
        )


@dataclass
class InstalledExtension:
    """Extension installed on an Arc machine."""

    machine_name: str
    name: str  # declared name, e.g. MicrosoftDefenderForSQL
    publisher: str
    type_name: str  # effective type, e.g. AdvancedThreatProtection.Windows
    version: str
    provisioning_state: str

    @property
    def lookup_key(self) -> str:
        """Catalog key built from the effective type, never the declared name."""
        return f"{self.publisher}.{self.type_name}"


@dataclass
class ExtensionMismatch:
    """Installed extension whose version differs from the catalog."""

    machine_name: str
    extension_key: str
    installed_version: str
    target_version: Optional[str]  # None when the key is absent from the catalog
    provisioning_state: str = ""

    @property
    def reason(self) -> str:
        return "not_in_catalog" if self.target_version is None else "version_mismatch"


@dataclass
class UpgradeJob:
    """Dispatched extension upgrade operation."""

    name: str  # upgradeExtensions/<machine>/<extension key>
    machine_name: str
    extension_key: str
    target_version: Optional[str]  # None when the key is absent from the catalog
    handle: str  # Azure-AsyncOperation or Location URL, may be empty
    submitted_at: float
    state: str = "InProgress"
