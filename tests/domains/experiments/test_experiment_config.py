"""Tests for experimentation engine configuration."""

import pytest

from formlab.domains.experiments import AssignmentStrategy, ExperimentConfig


class TestExperimentConfig:
    def test_defaults(self):
        config = ExperimentConfig()
        assert config.min_sample_size == 30
        assert config.confidence_threshold == 95.0
        assert config.assignment_strategy == AssignmentStrategy.RANDOM
        assert config.random_seed is None

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("EXPERIMENT_MIN_SAMPLE_SIZE", "100")
        monkeypatch.setenv("EXPERIMENT_CONFIDENCE_THRESHOLD", "99")
        monkeypatch.setenv("EXPERIMENT_ASSIGNMENT_STRATEGY", "user_hash")
        monkeypatch.setenv("EXPERIMENT_RANDOM_SEED", "42")
        config = ExperimentConfig.from_env()
        assert config.min_sample_size == 100
        assert config.confidence_threshold == 99.0
        assert config.assignment_strategy == AssignmentStrategy.USER_HASH
        assert config.random_seed == 42

    def test_string_strategy_is_coerced(self):
        assert ExperimentConfig(assignment_strategy="user_hash").assignment_strategy is (
            AssignmentStrategy.USER_HASH
        )

    @pytest.mark.parametrize("threshold", [0.0, -5.0, 100.5])
    def test_threshold_bounds(self, threshold):
        with pytest.raises(ValueError, match="confidence_threshold"):
            ExperimentConfig(confidence_threshold=threshold)

    def test_negative_min_sample_rejected(self):
        with pytest.raises(ValueError, match="min_sample_size"):
            ExperimentConfig(min_sample_size=-1)

    def test_unknown_strategy_rejected(self):
        with pytest.raises(ValueError):
            ExperimentConfig(assignment_strategy="round_robin")
