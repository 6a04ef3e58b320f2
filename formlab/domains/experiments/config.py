"""Experimentation engine configuration with sensible defaults.

Thresholds for the sequential stopping rule and the assignment strategy.
Every value can be overridden through ``EXPERIMENT_`` environment variables.
"""

import os
from dataclasses import dataclass

from .models import AssignmentStrategy


@dataclass
class ExperimentConfig:
    """Engine-wide tuning parameters."""

    # Both compared variants need strictly more submissions than this
    min_sample_size: int = 30
    # Confidence (percent) above which a winner is declared and the test stops
    confidence_threshold: float = 95.0
    # "random" draws per first contact; "user_hash" derives the draw from ids
    assignment_strategy: AssignmentStrategy = AssignmentStrategy.RANDOM
    # Seed for the random strategy. None seeds from the OS.
    random_seed: int | None = None

    def __post_init__(self) -> None:
        if self.min_sample_size < 0:
            raise ValueError(f"min_sample_size must be >= 0, got {self.min_sample_size}")
        if not 0.0 < self.confidence_threshold <= 100.0:
            raise ValueError(
                f"confidence_threshold must be in (0, 100], got {self.confidence_threshold}"
            )
        self.assignment_strategy = AssignmentStrategy(self.assignment_strategy)

    @classmethod
    def from_env(cls) -> "ExperimentConfig":
        """Load config with env var overrides. Env vars use EXPERIMENT_ prefix."""
        kwargs: dict = {}
        if v := os.getenv("EXPERIMENT_MIN_SAMPLE_SIZE"):
            kwargs["min_sample_size"] = int(v)
        if v := os.getenv("EXPERIMENT_CONFIDENCE_THRESHOLD"):
            kwargs["confidence_threshold"] = float(v)
        if v := os.getenv("EXPERIMENT_ASSIGNMENT_STRATEGY"):
            kwargs["assignment_strategy"] = AssignmentStrategy(v)
        if v := os.getenv("EXPERIMENT_RANDOM_SEED"):
            kwargs["random_seed"] = int(v)
        return cls(**kwargs)


# Module-level default instance
default_config = ExperimentConfig()
