"""
Extension version reconciliation for Azure Arc-enabled servers.
"""

import logging
import time
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from catalog import build_catalog
from clients import ArcRestClient
from jobs import UpgradeJobTracker, upgrade_job_name, wait_for_upgrade_jobs
from models import (
    ExtensionMismatch,
    InstalledExtension,
    Machine,
    UpgradeJob,
    VersionCatalog,
)

logger = logging.getLogger(__name__)

# Extensions in these states are mid-operation and are not compared
BUSY_STATES = {"creating", "updating"}


def is_comparable(ext: InstalledExtension) -> bool:
    """Failed extensions stay comparable so an upgrade can retry them."""
    return ext.provisioning_state.lower() not in BUSY_STATES


def find_mismatch(
    ext: InstalledExtension, catalog: VersionCatalog
) -> Optional[ExtensionMismatch]:
    """
    Compare one installed extension against the catalog.

    Versions are compared as exact strings, so a catalog version lower than
    the installed one is still a mismatch.

    Returns:
        ExtensionMismatch, or None if the extension is in sync
    """
    key = ext.lookup_key
    target = catalog.get(key)
    if target is not None and target == ext.version:
        return None
    return ExtensionMismatch(
        machine_name=ext.machine_name,
        extension_key=key,
        installed_version=ext.version,
        target_version=target,
        provisioning_state=ext.provisioning_state,
    )


def filter_eligible_machines(machines: Iterable[Machine]) -> List[Machine]:
    return [m for m in machines if m.eligible]


class ExtensionReconciler:
    """Checks or upgrades Arc machine extensions against the latest catalog."""

    def __init__(
        self,
        subscription_id: str,
        resource_group: str,
        catalog_source,
        update: bool = False,
        poll_interval: float = 30,
        dispatch_delay: float = 2.0,
        api: Optional[ArcRestClient] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the reconciler.

        Args:
            subscription_id: Azure subscription ID
            resource_group: Resource group holding the Arc machines
            catalog_source: Object whose fetch() returns catalog records
            update: If True, dispatch upgrades; otherwise only report
            poll_interval: Interval between active job polls (seconds)
            dispatch_delay: Pause after each upgrade dispatch (seconds)
            api: REST client (built from subscription_id if None)
            sleep: Sleep function, replaced in tests
        """
        self.subscription_id = subscription_id
        self.resource_group = resource_group
        self.catalog_source = catalog_source
        self.update = update
        self.poll_interval = poll_interval
        self.dispatch_delay = dispatch_delay
        self.sleep = sleep

        self.api = api or ArcRestClient(subscription_id=subscription_id)
        self.tracker = UpgradeJobTracker(self.api)

        self.stats = {
            "machines_total": 0,
            "machines_eligible": 0,
            "extensions_checked": 0,
            "extensions_skipped": 0,
            "in_sync": 0,
            "mismatched": 0,
            "not_in_catalog": 0,
            "dispatched": 0,
        }

        self.run_start_time: Optional[float] = None
        self.run_end_time: Optional[float] = None
        self.mismatches: List[ExtensionMismatch] = []

    def list_eligible_machines(self) -> List[Machine]:
        """
        List machines in the resource group that are Succeeded and Connected.

        Queries the inventory on every call.
        """
        machines = self.api.list_machines(self.resource_group)
        eligible = filter_eligible_machines(machines)
        self.stats["machines_total"] += len(machines)
        self.stats["machines_eligible"] += len(eligible)

        for m in machines:
            if not m.eligible:
                logger.info(
                    f"[-] Skipping {m.name}: state={m.provisioning_state}, status={m.status}"
                )
        logger.info(
            f"Found {len(eligible)} eligible machine(s) of {len(machines)} in {self.resource_group}"
        )
        return eligible

    def reconcile_machine(
        self, machine: Machine, catalog: VersionCatalog
    ) -> List[ExtensionMismatch]:
        """
        Compare a machine's extensions against the catalog.

        In update mode every mismatch is dispatched as an upgrade, including
        extensions missing from the catalog (sent with a null target version).

        Returns:
            Mismatches found on the machine
        """
        found: List[ExtensionMismatch] = []

        for ext in self.api.list_extensions(self.resource_group, machine.name):
            if not is_comparable(ext):
                logger.debug(
                    f"Skipping {machine.name}/{ext.name}: state={ext.provisioning_state}"
                )
                self.stats["extensions_skipped"] += 1
                continue

            self.stats["extensions_checked"] += 1
            mismatch = find_mismatch(ext, catalog)
            if mismatch is None:
                self.stats["in_sync"] += 1
                logger.debug(f"[=] {machine.name}: {ext.lookup_key} {ext.version}")
                continue

            found.append(mismatch)
            self.mismatches.append(mismatch)
            if mismatch.target_version is None:
                self.stats["not_in_catalog"] += 1
                logger.info(
                    f"[?] {machine.name}: {mismatch.extension_key} {mismatch.installed_version} not in catalog"
                )
            else:
                self.stats["mismatched"] += 1
                logger.info(
                    f"[>] {machine.name}: {mismatch.extension_key} {mismatch.installed_version} -> {mismatch.target_version}"
                )

            if self.update:
                self._dispatch(machine, mismatch)

        return found

    def _dispatch(self, machine: Machine, mismatch: ExtensionMismatch) -> UpgradeJob:
        """Submit an upgrade and pause before the next one."""
        targets = {mismatch.extension_key: {"targetVersion": mismatch.target_version}}
        handle = self.api.upgrade_extensions(self.resource_group, machine.name, targets)
        job = UpgradeJob(
            name=upgrade_job_name(machine.name, mismatch.extension_key),
            machine_name=machine.name,
            extension_key=mismatch.extension_key,
            target_version=mismatch.target_version,
            handle=handle,
            submitted_at=time.time(),
        )
        self.tracker.submit(job)
        self.stats["dispatched"] += 1
        logger.info(f"Started upgrade: {job.name} -> {job.target_version or 'latest'}")

        if self.dispatch_delay > 0:
            self.sleep(self.dispatch_delay)
        return job

    def count_active_upgrade_jobs(self) -> int:
        return self.tracker.count_active_upgrade_jobs()

    def run(self) -> Dict:
        """
        Execute the reconciliation run.

        Returns:
            Statistics dictionary
        """
        self.run_start_time = time.time()

        mode = "Update" if self.update else "Check"
        logger.info("=" * 70)
        logger.info(f"Azure Arc Extension Reconciler ({mode})")
        logger.info("=" * 70)
        logger.info(f"Subscription: {self.subscription_id}")
        logger.info(f"Resource group: {self.resource_group}")
        if self.update:
            logger.info(f"Dispatch delay: {self.dispatch_delay}s")
            logger.info(f"Poll interval: {self.poll_interval}s")
        logger.info(f"Start time: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        logger.info("=" * 70)

        # Catalog errors are fatal; nothing is compared without it
        catalog = build_catalog(self.catalog_source)

        machines = self.list_eligible_machines()
        for index, machine in enumerate(machines, start=1):
            logger.info(f"Checking {machine.name} ({index}/{len(machines)})")
            self.reconcile_machine(machine, catalog)

        if self.update and self.tracker.jobs:
            wait_for_upgrade_jobs(
                self.count_active_upgrade_jobs, self.poll_interval, sleep=self.sleep
            )

        self.run_end_time = time.time()
        self._print_report()

        return self.stats

    def _format_duration(self, seconds: float) -> str:
        """Format duration in human-readable format."""
        if seconds < 60:
            return f"{seconds:.1f}s"
        elif seconds < 3600:
            mins = int(seconds // 60)
            secs = seconds % 60
            return f"{mins}m {secs:.0f}s"
        else:
            hours = int(seconds // 3600)
            mins = int((seconds % 3600) // 60)
            secs = seconds % 60
            return f"{hours}h {mins}m {secs:.0f}s"

    def _print_report(self):
        """Print timing, statistics and mismatch tables."""
        total_duration = self.run_end_time - self.run_start_time

        logger.info("")
        logger.info("=" * 70)
        logger.info("EXTENSION REPORT")
        logger.info("=" * 70)

        logger.info("")
        logger.info("TIMING SUMMARY")
        logger.info("-" * 40)
        logger.info(
            f"Start time:      {datetime.fromtimestamp(self.run_start_time).strftime('%Y-%m-%d %H:%M:%S')}"
        )
        logger.info(
            f"End time:        {datetime.fromtimestamp(self.run_end_time).strftime('%Y-%m-%d %H:%M:%S')}"
        )
        logger.info(f"Total duration:  {self._format_duration(total_duration)}")

        logger.info("")
        logger.info("STATISTICS")
        logger.info("-" * 40)
        for k, v in self.stats.items():
            logger.info(f"{k:20s}: {v}")

        if self.mismatches:
            logger.info("")
            logger.info("MISMATCHED EXTENSIONS")
            logger.info("-" * 40)
            logger.info(
                f"{'Machine':<25} {'Extension':<45} {'Installed':<15} {'Latest'}"
            )
            logger.info("-" * 100)
            for m in self.mismatches:
                logger.info(
                    f"{m.machine_name:<25} {m.extension_key:<45} {m.installed_version:<15} {m.target_version or 'not in catalog'}"
                )

        if self.tracker.jobs:
            logger.info("")
            logger.info("DISPATCHED UPGRADES")
            logger.info("-" * 40)
            logger.info(f"{'Machine':<25} {'Extension':<45} {'Target':<15} {'State'}")
            logger.info("-" * 100)
            for job in self.tracker.jobs:
                logger.info(
                    f"{job.machine_name:<25} {job.extension_key:<45} {job.target_version or 'latest':<15} {job.state}"
                )

        logger.info("")
        logger.info("=" * 70)
