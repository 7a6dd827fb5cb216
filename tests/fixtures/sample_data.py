"""
Sample Data Generators - Generate asset return panels for testing.

Returns are simulated from a factor model so covariance estimates are
well-conditioned and realistic:
- One market factor plus independent asset noise
- Fat-tailed shocks (Student's t)
"""

import numpy as np
import pandas as pd
from typing import List, Optional, Tuple

TRADING_DAYS = 252

DEFAULT_SYMBOLS = ['SPY', 'TLT', 'GLD', 'EEM']

# Annualized drift, volatility and market beta per default symbol
DEFAULT_PROFILES = {
    'SPY': (0.09, 0.16, 1.0),
    'TLT': (0.04, 0.12, -0.2),
    'GLD': (0.05, 0.15, 0.1),
    'EEM': (0.11, 0.22, 1.2),
}


def generate_returns_panel(
    symbols: Optional[List[str]] = None,
    n_days: int = 500,
    start: str = "2022-01-03",
    seed: int = None
) -> pd.DataFrame:
    """
    Generate daily simple returns for several assets.

    Args:
        symbols: Asset symbols (must be in DEFAULT_PROFILES, defaults to all)
        n_days: Number of business days
        start: First date
        seed: Random seed for reproducibility

    Returns:
        DataFrame indexed by business day, one column per symbol
    """
    if seed is not None:
        np.random.seed(seed)

    symbols = symbols or DEFAULT_SYMBOLS

    market_vol = 0.15 / np.sqrt(TRADING_DAYS)
    market = np.random.standard_t(5, size=n_days) * market_vol * np.sqrt(3 / 5)

    columns = {}
    for symbol in symbols:
        drift, volatility, beta = DEFAULT_PROFILES[symbol]
        daily_vol = volatility / np.sqrt(TRADING_DAYS)
        idiosyncratic_vol = np.sqrt(max(daily_vol ** 2 - (beta * market_vol) ** 2, (0.25 * daily_vol) ** 2))
        noise = np.random.normal(0, idiosyncratic_vol, n_days)
        columns[symbol] = drift / TRADING_DAYS + beta * market + noise

    index = pd.bdate_range(start=start, periods=n_days)
    return pd.DataFrame(columns, index=index)


def estimate_inputs(
    returns: pd.DataFrame,
    periods_per_year: int = TRADING_DAYS
) -> Tuple[pd.Series, pd.DataFrame]:
    """
    Annualized expected returns and covariance from a returns panel.

    Returns:
        (expected_returns Series, covariance DataFrame), labelled by symbol
    """
    expected_returns = returns.mean() * periods_per_year
    covariance = returns.cov() * periods_per_year
    return expected_returns, covariance


def uncorrelated_inputs(
    volatilities: List[float],
    expected_returns: List[float]
) -> Tuple[np.ndarray, np.ndarray]:
    """Diagonal covariance from per-asset volatilities."""
    volatilities = np.asarray(volatilities, dtype=float)
    return np.asarray(expected_returns, dtype=float), np.diag(volatilities ** 2)
