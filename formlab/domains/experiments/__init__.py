"""Form A/B testing domain."""

from .assignment import AssignmentEngine, AssignmentStore, hash_draw, select_variant
from .config import ExperimentConfig
from .engine import ExperimentEngine, get_engine
from .errors import ExperimentError, ValidationError
from .metrics import evaluate_significance, fold_metrics, normal_cdf, two_proportion_z_test
from .modifications import DEFAULT_STYLING, apply_modifications, apply_variant
from .models import (
    ABTest,
    ABTestGoal,
    ABTestResult,
    ABTestStatus,
    ABTestVariant,
    AssignmentStrategy,
    ContentModification,
    ContentSlot,
    CreateABTestRequest,
    FieldModification,
    GoalType,
    LayoutModification,
    MetricsUpdate,
    Modification,
    ModificationOperation,
    SignificanceResult,
    StyleModification,
    TargetAudience,
)
from .registry import ABTestRegistry, validate_traffic_split
from .reporting import NO_RESULTS, export_results, generate_report

__all__ = [
    "ABTest",
    "ABTestGoal",
    "ABTestRegistry",
    "ABTestResult",
    "ABTestStatus",
    "ABTestVariant",
    "AssignmentEngine",
    "AssignmentStore",
    "AssignmentStrategy",
    "ContentModification",
    "ContentSlot",
    "CreateABTestRequest",
    "DEFAULT_STYLING",
    "ExperimentConfig",
    "ExperimentEngine",
    "ExperimentError",
    "FieldModification",
    "GoalType",
    "LayoutModification",
    "MetricsUpdate",
    "Modification",
    "ModificationOperation",
    "NO_RESULTS",
    "SignificanceResult",
    "StyleModification",
    "TargetAudience",
    "ValidationError",
    "apply_modifications",
    "apply_variant",
    "evaluate_significance",
    "export_results",
    "fold_metrics",
    "generate_report",
    "get_engine",
    "hash_draw",
    "normal_cdf",
    "select_variant",
    "two_proportion_z_test",
    "validate_traffic_split",
]
