"""
Pytest configuration for the reconciler tests.

The modules under src/ are imported by their bare names (``models``,
``clients``), so src/ has to be on sys.path.
"""

import os
import sys

SRC_DIR = os.path.join(os.path.dirname(__file__), "src")

if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)
