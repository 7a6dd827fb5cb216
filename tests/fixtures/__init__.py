"""
Test Fixtures - Sample portfolio data for testing.
"""

from .sample_data import (
    generate_returns_panel,
    estimate_inputs,
    uncorrelated_inputs,
)


__all__ = [
    'generate_returns_panel',
    'estimate_inputs',
    'uncorrelated_inputs',
]
