"""In-memory store and lifecycle state machine for A/B tests."""

import math
import threading
import uuid
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import UTC, datetime

import structlog

from .errors import ValidationError
from .models import ABTest, ABTestStatus, CreateABTestRequest

logger = structlog.get_logger()


def validate_traffic_split(traffic_split: Sequence[float], num_variants: int) -> None:
    """Raise ValidationError unless the split has one entry per variant summing to 100."""
    if len(traffic_split) != num_variants:
        raise ValidationError(
            f"Traffic split needs one weight per variant: "
            f"{len(traffic_split)} weights for {num_variants} variants"
        )
    if any(w < 0 for w in traffic_split):
        raise ValidationError(f"Traffic split weights must be non-negative, got {list(traffic_split)}")
    total = math.fsum(traffic_split)
    if total != 100:
        raise ValidationError(f"Traffic split must sum to 100%, got {total:g}%")


class ABTestRegistry:
    """Owns every test record.

    Each test has its own lock; callers that read-modify-write a test
    (lifecycle transitions, metric folding) hold it via ``locked``.
    """

    def __init__(self) -> None:
        self._tests: dict[str, ABTest] = {}
        self._test_locks: dict[str, threading.RLock] = {}
        self._lock = threading.Lock()

    # -- creation / lookup --------------------------------------------------

    def create(self, request: CreateABTestRequest) -> ABTest:
        validate_traffic_split(request.traffic_split, len(request.variants))

        now = datetime.now(UTC)
        test_id = f"test_{uuid.uuid4().hex[:12]}"
        variants = [
            v.model_copy(update={"weight": weight}, deep=True)
            for v, weight in zip(request.variants, request.traffic_split)
        ]
        test = ABTest(
            id=test_id,
            name=request.name,
            description=request.description,
            hypothesis=request.hypothesis,
            form_id=request.form_id,
            status=ABTestStatus.DRAFT,
            variants=variants,
            traffic_split=list(request.traffic_split),
            target_audience=request.target_audience,
            goals=list(request.goals),
            created_at=now,
            updated_at=now,
        )

        with self._lock:
            self._tests[test_id] = test
            self._test_locks[test_id] = threading.RLock()

        logger.info("test_created", test_id=test_id, name=test.name, variants=len(variants))
        return test.model_copy(deep=True)

    def get(self, test_id: str) -> ABTest | None:
        """Snapshot of a test, or None."""
        with self.locked(test_id) as test:
            return test.model_copy(deep=True) if test is not None else None

    def list_tests(self, status: ABTestStatus | None = None) -> list[ABTest]:
        with self._lock:
            test_ids = list(self._tests)
        snapshots = [self.get(test_id) for test_id in test_ids]
        return [t for t in snapshots if t is not None and (status is None or t.status == status)]

    def __contains__(self, test_id: str) -> bool:
        return test_id in self._tests

    def __len__(self) -> int:
        return len(self._tests)

    @contextmanager
    def locked(self, test_id: str) -> Iterator[ABTest | None]:
        """Hold the test's lock and yield the live record (None if unknown)."""
        lock = self._test_locks.get(test_id)
        if lock is None:
            yield None
            return
        with lock:
            yield self._tests.get(test_id)

    def live(self, test_id: str) -> ABTest | None:
        """The live record without locking, for read-only hot paths."""
        return self._tests.get(test_id)

    # -- lifecycle ----------------------------------------------------------

    def start(self, test_id: str) -> bool:
        """draft/paused -> running. startDate is stamped on the first start only."""
        with self.locked(test_id) as test:
            if test is None:
                return False
            if test.status not in (ABTestStatus.DRAFT, ABTestStatus.PAUSED):
                self._log_rejected(test, ABTestStatus.RUNNING)
                return False
            if test.status == ABTestStatus.DRAFT:
                test.start_date = datetime.now(UTC)
            test.status = ABTestStatus.RUNNING
            test.updated_at = datetime.now(UTC)
        logger.info("test_started", test_id=test_id)
        return True

    def pause(self, test_id: str) -> bool:
        with self.locked(test_id) as test:
            if test is None:
                return False
            if test.status != ABTestStatus.RUNNING:
                self._log_rejected(test, ABTestStatus.PAUSED)
                return False
            test.status = ABTestStatus.PAUSED
            test.updated_at = datetime.now(UTC)
        logger.info("test_paused", test_id=test_id)
        return True

    def stop(self, test_id: str) -> bool:
        """Force any test to completed and stamp endDate."""
        with self.locked(test_id) as test:
            if test is None:
                return False
            test.status = ABTestStatus.COMPLETED
            test.end_date = datetime.now(UTC)
            test.updated_at = test.end_date
        logger.info("test_stopped", test_id=test_id)
        return True

    def delete(self, test_id: str) -> bool:
        """Drop the test once in-flight holders of its lock have finished."""
        with self.locked(test_id), self._lock:
            test = self._tests.pop(test_id, None)
            self._test_locks.pop(test_id, None)
        if test is None:
            return False
        logger.info("test_deleted", test_id=test_id)
        return True

    def update_traffic_split(self, test_id: str, traffic_split: Sequence[float]) -> ABTest | None:
        """Replace a test's split. Existing user assignments are not revisited."""
        with self.locked(test_id) as test:
            if test is None:
                return None
            validate_traffic_split(traffic_split, len(test.variants))
            test.traffic_split = list(traffic_split)
            for variant, weight in zip(test.variants, traffic_split):
                variant.weight = weight
            test.updated_at = datetime.now(UTC)
            snapshot = test.model_copy(deep=True)
        logger.info("traffic_split_updated", test_id=test_id, traffic_split=list(traffic_split))
        return snapshot

    @staticmethod
    def _log_rejected(test: ABTest, target: ABTestStatus) -> None:
        logger.warning(
            "invalid_state_transition",
            test_id=test.id,
            current=test.status,
            target=target,
        )
