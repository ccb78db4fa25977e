"""Pytest configuration and fixtures."""
import sys
from pathlib import Path

# Ensure project root is on path when running pytest from anywhere
root = Path(__file__).resolve().parent.parent
if str(root) not in sys.path:
    sys.path.insert(0, str(root))
