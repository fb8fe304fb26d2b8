"""
Root conftest.py - puts the project root on sys.path for pytest.

Lets tests import both the library (src.*) and the command-line entry
points (scripts.*) without installing the package.
"""

import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))
