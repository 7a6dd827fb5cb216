# config/optimizer_params.py
"""
Default optimizer parameters.

Key principle: every solve is driven by explicit values. Nothing here is
read from the environment; callers pass get_params() output to
OptimizerConfig.from_params().
"""

PARAMS = {
    # Algorithm selection: automatic, equality_only, inequality_capable, adaptive
    'strategy': 'automatic',

    # Budgets
    'max_iterations': 100,        # Outer (multiplier update) iterations
    'max_inner_iterations': 500,  # BFGS iterations per subproblem

    # Convergence
    'tolerance': 1e-6,            # Max constraint violation
    'gradient_tolerance': 1e-6,   # Inner gradient norm

    # Penalty schedule
    'initial_penalty': 10.0,
    'penalty_increase': 10.0,
    'max_penalty': 1e8,
    'violation_reduction': 0.25,  # Violation must shrink 4x per outer step or rho grows

    # Numerics
    'finite_difference_step': 1e-6,

    # Diagnostics
    'record_history': False,
    'validate_covariance': True,  # Eigenvalue PSD check before solving
}


# Strategy-specific overrides
STRATEGY_OVERRIDES = {
    'equality_only': {
        'max_iterations': 50,  # Linear equalities settle in a few outer steps
    },
    'inequality_capable': {
        'max_iterations': 150,  # Active-set changes need extra multiplier updates
    },
    'adaptive': {
        'max_inner_iterations': 1000,  # Also the Adam budget on large unconstrained problems
    },
}


def get_params(strategy: str = None) -> dict:
    """Get optimizer parameters, with optional strategy-specific overrides."""
    params = PARAMS.copy()

    if strategy:
        clean_strategy = strategy.lower().replace('-', '_')
        params['strategy'] = clean_strategy
        if clean_strategy in STRATEGY_OVERRIDES:
            params.update(STRATEGY_OVERRIDES[clean_strategy])

    return params
