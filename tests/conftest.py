"""
Pytest configuration and fixtures.

Puts the project root on sys.path and provides shared portfolio inputs.
"""

import sys
import logging

# Configure logging for tests
logging.basicConfig(level=logging.WARNING)


# Add project root to path
from pathlib import Path

project_root = Path(__file__).parent.parent
for path in (project_root, project_root / "tests"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))


# Fixtures
import numpy as np
import pandas as pd
import pytest


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: mark test as running many constrained solves"
    )


@pytest.fixture
def three_asset_inputs():
    """Expected returns and covariance for three correlated assets."""
    expected_returns = np.array([0.08, 0.12, 0.15])
    covariance = np.array([
        [0.0400, 0.0060, 0.0040],
        [0.0060, 0.0900, 0.0120],
        [0.0040, 0.0120, 0.1600],
    ])
    return expected_returns, covariance


@pytest.fixture
def labelled_inputs(three_asset_inputs):
    """Same inputs as pandas objects with asset labels."""
    expected_returns, covariance = three_asset_inputs
    symbols = ['BONDS', 'EQUITY', 'EM']
    return (
        pd.Series(expected_returns, index=symbols),
        pd.DataFrame(covariance, index=symbols, columns=symbols),
    )


@pytest.fixture
def sample_returns():
    """Simulated daily returns panel for four assets."""
    from fixtures.sample_data import generate_returns_panel

    return generate_returns_panel(n_days=750, seed=42)
