"""Test configuration — ensure the musclemind package is importable."""
import sys
from pathlib import Path

# Add project root to path so `from musclemind.xxx import` works without install
sys.path.insert(0, str(Path(__file__).parent.parent))
