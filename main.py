#!/usr/bin/env python3
"""
Azure Arc Extension Reconciler

- Report extensions that differ from the latest available version (default)
- Upgrade them with --update and wait for the upgrade jobs to finish

This script supports running directly from a source checkout that uses a
src/ layout. It adds the local `src/` directory to sys.path before importing
the CLI. For production use, prefer installing the project and using the
`arc-extension-reconciler` console script.

Examples:
  python3 main.py --subscription <id> --resource-group arc-servers --location westeurope
  python3 main.py --subscription <id> --resource-group arc-servers --location westeurope --update
"""

import os
import sys

# Add src/ to path to import modules directly
REPO_ROOT = os.path.dirname(os.path.abspath(__file__))
SRC_PATH = os.path.join(REPO_ROOT, "src")
if SRC_PATH not in sys.path:
    sys.path.insert(0, SRC_PATH)

from cli import main


if __name__ == "__main__":
    sys.exit(main())
