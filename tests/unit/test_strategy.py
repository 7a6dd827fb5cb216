"""
Tests for optimizer configuration, parameter presets and the factory.
"""

import pytest

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from config.optimizer_params import PARAMS, get_params
from core.exceptions import ConfigurationError, UnsupportedConstraintsError
from optimization import (
    AdaptiveOptimizer,
    AugmentedLagrangianOptimizer,
    Constraint,
    OptimizerConfig,
    OptimizerStrategy,
    PenaltyBarrierOptimizer,
    create_optimizer,
)


@pytest.fixture
def equality():
    return Constraint.equality(lambda v: v.sum - 1.0)


@pytest.fixture
def inequality():
    return Constraint.inequality(lambda v: -v[0])


class TestParams:
    """Test the parameter presets."""

    def test_defaults(self):
        """Test default parameters match the documented values."""
        params = get_params()

        assert params['strategy'] == 'automatic'
        assert params['max_iterations'] == 100
        assert params['max_inner_iterations'] == 500
        assert params['tolerance'] == 1e-6
        assert params['validate_covariance'] is True

    def test_strategy_override(self):
        """Test strategy presets override the defaults."""
        params = get_params('Inequality-Capable')

        assert params['strategy'] == 'inequality_capable'
        assert params['max_iterations'] == 150

    def test_get_params_returns_copy(self):
        """Test callers cannot mutate the module defaults."""
        params = get_params()
        params['max_iterations'] = 1

        assert PARAMS['max_iterations'] == 100


class TestOptimizerConfig:
    """Test configuration validation."""

    def test_from_params(self):
        """Test building a config from presets."""
        config = OptimizerConfig.from_params(get_params('adaptive'))

        assert config.strategy == OptimizerStrategy.ADAPTIVE
        assert config.max_inner_iterations == 1000

    def test_unknown_parameter(self):
        """Test unknown keys are rejected."""
        params = get_params()
        params['learning_rate'] = 0.1

        with pytest.raises(ConfigurationError):
            OptimizerConfig.from_params(params)

    def test_unknown_strategy(self):
        """Test unknown strategy names are rejected."""
        with pytest.raises(ConfigurationError):
            OptimizerConfig(strategy='simplex')

    @pytest.mark.parametrize("overrides", [
        {'max_iterations': 0},
        {'tolerance': -1e-6},
        {'initial_penalty': 0.0},
        {'penalty_increase': 1.0},
        {'max_penalty': 1.0, 'initial_penalty': 10.0},
        {'violation_reduction': 1.5},
        {'finite_difference_step': 0.0},
    ])
    def test_invalid_values(self, overrides):
        """Test out-of-range values raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            OptimizerConfig(**overrides)

    def test_to_dict_round_trip(self):
        """Test to_dict output feeds back into from_params."""
        config = OptimizerConfig(strategy=OptimizerStrategy.EQUALITY_ONLY, tolerance=1e-8)

        rebuilt = OptimizerConfig.from_params(config.to_dict())

        assert rebuilt == config


class TestCreateOptimizer:
    """Test strategy dispatch."""

    def test_automatic_equality(self, equality):
        """Test AUTOMATIC picks the augmented Lagrangian for equalities."""
        optimizer = create_optimizer(OptimizerConfig(), [equality])

        assert type(optimizer) is AugmentedLagrangianOptimizer

    def test_automatic_inequality(self, equality, inequality):
        """Test AUTOMATIC picks the penalty-barrier method for inequalities."""
        optimizer = create_optimizer(OptimizerConfig(), [equality, inequality])

        assert isinstance(optimizer, PenaltyBarrierOptimizer)

    def test_default_config(self):
        """Test a missing config falls back to defaults."""
        optimizer = create_optimizer()

        assert type(optimizer) is AugmentedLagrangianOptimizer
        assert optimizer.max_iterations == 100

    def test_equality_only_rejects_inequalities(self, inequality):
        """Test EQUALITY_ONLY refuses inequality problems."""
        config = OptimizerConfig(strategy=OptimizerStrategy.EQUALITY_ONLY)

        with pytest.raises(UnsupportedConstraintsError):
            create_optimizer(config, [inequality])

    def test_inequality_capable_forced(self, equality):
        """Test INEQUALITY_CAPABLE is used even for equality-only problems."""
        config = OptimizerConfig(strategy=OptimizerStrategy.INEQUALITY_CAPABLE)

        assert isinstance(create_optimizer(config, [equality]), PenaltyBarrierOptimizer)

    def test_adaptive(self, inequality):
        """Test ADAPTIVE returns the dispatching optimizer."""
        config = OptimizerConfig(strategy='adaptive')

        assert isinstance(create_optimizer(config, [inequality]), AdaptiveOptimizer)

    def test_config_values_forwarded(self, equality):
        """Test budgets and penalties reach the optimizer."""
        config = OptimizerConfig(max_iterations=7, initial_penalty=3.0, record_history=True)

        optimizer = create_optimizer(config, [equality])

        assert optimizer.max_iterations == 7
        assert optimizer.initial_penalty == 3.0
        assert optimizer.record_history
