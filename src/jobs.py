"""
Tracking of dispatched extension upgrade operations.
"""

import logging
import time
from typing import Callable, List

from models import UpgradeJob

logger = logging.getLogger(__name__)

UPGRADE_JOB_PREFIX = "upgradeExtensions/"
RUNNING_STATES = {"inprogress", "accepted", "running", "updating"}


def upgrade_job_name(machine_name: str, extension_key: str) -> str:
    return f"{UPGRADE_JOB_PREFIX}{machine_name}/{extension_key}"


class UpgradeJobTracker:
    """Keeps dispatched upgrade operations and reports how many still run."""

    def __init__(self, api):
        self.api = api
        self.jobs: List[UpgradeJob] = []

    def submit(self, job: UpgradeJob) -> None:
        if not job.handle:
            # No handle to poll; the service completed the request synchronously
            job.state = "Succeeded"
        self.jobs.append(job)

    def refresh(self) -> None:
        """Update the state of every job that is still running."""
        for job in self.jobs:
            if job.state.lower() not in RUNNING_STATES:
                continue
            try:
                job.state = self.api.get_operation_status(job.handle) or job.state
            except Exception as e:
                logger.warning(f"Failed polling {job.name}: {e}")

    def count_active_upgrade_jobs(self) -> int:
        """
        Count running jobs whose name carries the upgrade signature.

        Any caller may submit jobs to the tracker, so jobs that are not
        extension upgrades (e.g. a machine start) are left out of the count.
        """
        self.refresh()
        return sum(
            1
            for job in self.jobs
            if job.name.startswith(UPGRADE_JOB_PREFIX)
            and job.state.lower() in RUNNING_STATES
        )


def wait_for_upgrade_jobs(
    count_active: Callable[[], int],
    poll_interval: float,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """
    Block until no upgrade job is running.

    Args:
        count_active: Returns the number of running upgrade jobs
        poll_interval: Seconds between polls
        sleep: Sleep function

    Returns:
        Number of polls performed
    """
    polls = 0
    while True:
        active = count_active()
        polls += 1
        if active == 0:
            logger.info("All upgrade jobs have finished")
            return polls
        logger.info(f"Waiting for {active} upgrade job(s) to finish...")
        sleep(poll_interval)
