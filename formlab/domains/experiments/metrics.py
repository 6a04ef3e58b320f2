"""Per-variant metric folding and statistical significance for A/B tests."""

import math
from datetime import UTC, datetime

import structlog

from .config import ExperimentConfig, default_config
from .models import (
    ABTest,
    ABTestResult,
    ABTestStatus,
    MetricsUpdate,
    SignificanceResult,
)

logger = structlog.get_logger()


def fold_metrics(result: ABTestResult, update: MetricsUpdate) -> ABTestResult:
    """Fold a partial metrics update into a variant's running result, in place.

    Counters are summed. ``average_time`` and ``drop_off_rate`` take the
    pairwise average of the previous value and the new sample, which is a
    smoothing rule and not the arithmetic mean of all samples.
    """
    if update.submissions is not None:
        result.submissions += update.submissions
    if update.conversions is not None:
        result.conversions += update.conversions
    if update.average_time is not None:
        result.average_time = (result.average_time + update.average_time) / 2
    if update.drop_off_rate is not None:
        result.drop_off_rate = (result.drop_off_rate + update.drop_off_rate) / 2
    if update.custom_metrics:
        merged = dict(result.custom_metrics or {})
        for name, value in update.custom_metrics.items():
            merged[name] = merged.get(name, 0.0) + value
        result.custom_metrics = merged

    if result.submissions > 0:
        result.completion_rate = result.conversions / result.submissions * 100
    return result


def normal_cdf(x: float) -> float:
    """Standard normal CDF via the Zelen & Severo polynomial (A&S 26.2.17).

    Absolute error is below 7.5e-8.
    """
    z = abs(x)
    t = 1.0 / (1.0 + 0.2316419 * z)
    d = 0.3989423 * math.exp(-z * z / 2.0)
    tail = d * t * (
        0.319381530
        + t * (-0.356563782 + t * (1.781477937 + t * (-1.821255978 + t * 1.330274429)))
    )
    return 1.0 - tail if x > 0 else tail


def two_proportion_z_test(
    control: ABTestResult, treatment: ABTestResult
) -> SignificanceResult:
    """Pooled two-proportion z-test of treatment vs control conversion rates."""
    n_c, n_t = control.submissions, treatment.submissions
    rate_c = control.conversions / n_c
    rate_t = treatment.conversions / n_t

    pooled = (control.conversions + treatment.conversions) / (n_c + n_t)
    # Conversions reported ahead of submissions can push the pooled rate past 1
    variance = max(0.0, pooled * (1 - pooled))
    se = math.sqrt(variance * (1 / n_c + 1 / n_t))
    # Identical all-or-nothing rates leave no variance to test against
    z_score = abs(rate_t - rate_c) / se if se > 0 else 0.0

    p_value = 2 * (1 - normal_cdf(z_score))
    confidence = max(0.0, min(100.0, (1 - p_value) * 100))

    return SignificanceResult(
        control_variant=control.variant_id,
        treatment_variant=treatment.variant_id,
        control_rate=rate_c,
        treatment_rate=rate_t,
        pooled_rate=pooled,
        standard_error=se,
        z_score=z_score,
        p_value=p_value,
        confidence=confidence,
        control_sample_size=n_c,
        treatment_sample_size=n_t,
    )


def evaluate_significance(
    test: ABTest, config: ExperimentConfig = default_config
) -> SignificanceResult | None:
    """Recompute confidence for ``test`` and apply the stopping rule.

    Compares results[0] (control) with results[1]; further variants are not
    compared. Returns None while either side is at or below the minimum
    sample size, leaving ``test.confidence`` untouched.
    """
    results = test.results or []
    if len(results) < 2:
        return None

    control, treatment = results[0], results[1]
    if (
        control.submissions <= config.min_sample_size
        or treatment.submissions <= config.min_sample_size
    ):
        return None

    significance = two_proportion_z_test(control, treatment)
    test.confidence = significance.confidence

    if test.confidence > config.confidence_threshold:
        leader = treatment if treatment.completion_rate > control.completion_rate else control
        test.winner = leader.variant_id
        if test.status != ABTestStatus.COMPLETED:
            test.status = ABTestStatus.COMPLETED
            test.end_date = test.end_date or datetime.now(UTC)
            logger.info(
                "test_auto_completed",
                test_id=test.id,
                winner=test.winner,
                confidence=round(test.confidence, 4),
                z_score=round(significance.z_score, 4),
            )
    return significance
