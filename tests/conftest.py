"""Shared pytest configuration."""

import os
import sys

# Ensure the project root is importable.
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# Console-only logging while testing; must be set before core.logger is imported.
os.environ.setdefault("BALEBOT_LOG_DIR", "")
