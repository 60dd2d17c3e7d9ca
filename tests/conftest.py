"""Pytest configuration for project-switcher tests."""

import sys
from pathlib import Path

# Make the project_switcher package importable without installing it
package_root = Path(__file__).parent.parent
if str(package_root) not in sys.path:
    sys.path.insert(0, str(package_root))
