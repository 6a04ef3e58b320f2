"""ExperimentEngine: the thread-safe service the API and renderers call.

Owns the test registry and the assignment table, and wires lifecycle,
assignment, rendering, metric folding and significance together.
"""

import random
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

import structlog

from .assignment import AssignmentEngine, AssignmentStore
from .config import ExperimentConfig
from .metrics import evaluate_significance, fold_metrics
from .modifications import apply_variant
from .models import (
    ABTest,
    ABTestResult,
    ABTestStatus,
    ABTestVariant,
    CreateABTestRequest,
    MetricsUpdate,
)
from .registry import ABTestRegistry
from .reporting import NO_RESULTS, export_results, generate_report

logger = structlog.get_logger()


class ExperimentEngine:
    def __init__(
        self,
        config: ExperimentConfig | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.config = config or ExperimentConfig()
        self.registry = ABTestRegistry()
        self.assignments = AssignmentStore()
        self._assigner = AssignmentEngine(
            store=self.assignments,
            strategy=self.config.assignment_strategy,
            rng=rng or random.Random(self.config.random_seed),
        )

    # -- registry -----------------------------------------------------------

    def create_test(self, definition: CreateABTestRequest | dict[str, Any]) -> ABTest:
        """Register a new draft test. Raises ValidationError on a bad split."""
        if not isinstance(definition, CreateABTestRequest):
            definition = CreateABTestRequest.model_validate(definition)
        return self.registry.create(definition)

    def list_tests(self, status: ABTestStatus | None = None) -> list[ABTest]:
        return self.registry.list_tests(status)

    def get_test_results(self, test_id: str) -> ABTest | None:
        return self.registry.get(test_id)

    def start_test(self, test_id: str) -> bool:
        return self.registry.start(test_id)

    def pause_test(self, test_id: str) -> bool:
        return self.registry.pause(test_id)

    def stop_test(self, test_id: str) -> bool:
        return self.registry.stop(test_id)

    def delete_test(self, test_id: str) -> bool:
        """Remove the test and every user assignment that points at it."""
        if not self.registry.delete(test_id):
            return False
        purged = self.assignments.purge_test(test_id)
        logger.info("assignments_purged", test_id=test_id, count=purged)
        return True

    def update_traffic_split(self, test_id: str, traffic_split: Sequence[float]) -> ABTest | None:
        return self.registry.update_traffic_split(test_id, traffic_split)

    # -- assignment and rendering -------------------------------------------

    def get_variant_for_user(self, test_id: str, user_id: str) -> str | None:
        # Held so a concurrent delete cannot purge before the first write lands
        with self.registry.locked(test_id) as test:
            if test is None:
                return None
            return self._assigner.assign(test, user_id)

    def get_assignment(self, test_id: str, user_id: str) -> str | None:
        """Stored assignment without assigning."""
        return self.assignments.get(test_id, user_id)

    def get_user_assignments(self, user_id: str) -> dict[str, str]:
        return self.assignments.for_user(user_id)

    @staticmethod
    def apply_variant(document: dict[str, Any], variant: ABTestVariant) -> dict[str, Any]:
        return apply_variant(document, variant)

    def render_for_user(
        self, test_id: str, user_id: str, document: dict[str, Any]
    ) -> tuple[str | None, dict[str, Any]]:
        """Assign the user and render their variant; unassigned users get the base document."""
        variant_id = self.get_variant_for_user(test_id, user_id)
        if variant_id is None:
            return None, document
        test = self.registry.live(test_id)
        variant = test.variant(variant_id) if test else None
        if variant is None:
            return variant_id, document
        return variant_id, apply_variant(document, variant)

    # -- metrics ------------------------------------------------------------

    def record_event(
        self,
        test_id: str,
        variant_id: str,
        metrics: MetricsUpdate | dict[str, Any],
        user_id: str | None = None,
    ) -> ABTestResult | None:
        """Fold caller-observed metrics into a variant and re-check significance.

        Returns a snapshot of the variant's result, or None for an unknown
        test or variant.
        """
        if not isinstance(metrics, MetricsUpdate):
            metrics = MetricsUpdate.model_validate(metrics)

        with self.registry.locked(test_id) as test:
            if test is None:
                logger.warning("event_for_unknown_test", test_id=test_id, variant_id=variant_id)
                return None
            if test.variant(variant_id) is None:
                logger.warning("event_for_unknown_variant", test_id=test_id, variant_id=variant_id)
                return None

            result = test.result(variant_id)
            if result is None:
                result = ABTestResult(variant_id=variant_id)
                self._insert_result(test, result)

            fold_metrics(result, metrics)
            test.updated_at = datetime.now(UTC)
            evaluate_significance(test, self.config)
            snapshot = result.model_copy(deep=True)

        logger.debug(
            "event_recorded",
            test_id=test_id,
            variant_id=variant_id,
            user_id=user_id,
            submissions=snapshot.submissions,
            conversions=snapshot.conversions,
        )
        return snapshot

    @staticmethod
    def _insert_result(test: ABTest, result: ABTestResult) -> None:
        """Keep results in variant declaration order so results[0] is the control."""
        order = {v.id: idx for idx, v in enumerate(test.variants)}
        results = test.results or []
        results.append(result)
        results.sort(key=lambda r: order.get(r.variant_id, len(order)))
        test.results = results

    # -- reporting ----------------------------------------------------------

    def export_results(self, test_id: str) -> dict[str, Any] | None:
        test = self.registry.get(test_id)
        return export_results(test) if test else None

    def generate_report(self, test_id: str) -> str:
        test = self.registry.get(test_id)
        return generate_report(test) if test else NO_RESULTS


# Module-level singleton for the API layer
_engine: ExperimentEngine | None = None


def get_engine() -> ExperimentEngine:
    """Get or create the global ExperimentEngine singleton."""
    global _engine
    if _engine is None:
        _engine = ExperimentEngine(config=ExperimentConfig.from_env())
    return _engine
