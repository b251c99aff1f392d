"""
Pytest configuration for dbclip integration tests.
"""

import sys
from pathlib import Path

# Add test/integration to path for fixtures imports
sys.path.insert(0, str(Path(__file__).parent))
