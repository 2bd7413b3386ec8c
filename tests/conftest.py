"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

# Make the vegap package importable without installing it
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))
