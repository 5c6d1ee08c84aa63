"""
Configuration management for the Azure Arc Extension Reconciler.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class ReconcilerConfig:
    """Configuration for extension reconciliation runs."""

    subscription_id: str
    resource_group: str
    location: str
    update: bool = False
    catalog_file: Optional[str] = None
    poll_interval: float = 30
    dispatch_delay: float = 2.0
    verbose: bool = False

    @classmethod
    def from_args(cls, args) -> "ReconcilerConfig":
        """
        Create configuration from command-line arguments.

        Args:
            args: Parsed argparse arguments

        Returns:
            ReconcilerConfig instance
        """
        return cls(
            subscription_id=args.subscription,
            resource_group=args.resource_group,
            location=args.location,
            update=args.update,
            catalog_file=args.catalog_file,
            poll_interval=args.poll_interval,
            dispatch_delay=args.dispatch_delay,
            verbose=args.verbose,
        )
