"""
Root conftest.py - Global configuration for all test layers.

Test Layers:
    - unit/         : Unit tests (pure functions, no I/O)
    - unit/golden/  : Characterization tests (never modify)
"""
import os
import sys

# Add project root to path
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)
