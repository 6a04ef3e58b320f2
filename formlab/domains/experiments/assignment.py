"""Sticky weighted assignment of users to test variants.

The first successful assignment for a (test, user) pair is written to an
in-memory table; every later lookup returns the stored variant, even after
the traffic split has been edited.
"""

import hashlib
import random
import threading
from collections.abc import Sequence

import structlog

from .models import ABTest, ABTestStatus, AssignmentStrategy

logger = structlog.get_logger()


def select_variant(variant_ids: Sequence[str], traffic_split: Sequence[float], draw: float) -> str:
    """Map a draw in [0, 100) onto the cumulative traffic split.

    The first variant whose cumulative weight reaches the draw wins. Falls
    back to the first variant if the weights never get there.
    """
    cumulative = 0.0
    for variant_id, weight in zip(variant_ids, traffic_split):
        cumulative += weight
        # A draw of exactly 0 lands on the first variant even at 0% weight
        if cumulative >= draw:
            return variant_id
    return variant_ids[0]


def hash_draw(test_id: str, user_id: str) -> float:
    """Stable draw in [0, 100) from SHA-256 of test_id + user_id."""
    digest = hashlib.sha256(f"{test_id}:{user_id}".encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big") / 2**64 * 100


class AssignmentStore:
    """user_id -> {test_id -> variant_id}, safe for concurrent use.

    Reads go straight to the dicts; writes take the lock and re-check so a
    pair is assigned at most once.
    """

    def __init__(self) -> None:
        self._assignments: dict[str, dict[str, str]] = {}
        self._lock = threading.Lock()

    def get(self, test_id: str, user_id: str) -> str | None:
        return self._assignments.get(user_id, {}).get(test_id)

    def for_user(self, user_id: str) -> dict[str, str]:
        with self._lock:
            return dict(self._assignments.get(user_id, {}))

    def set_if_absent(self, test_id: str, user_id: str, variant_id: str) -> str:
        """Store variant_id unless the pair already has one; return the stored value."""
        with self._lock:
            user_tests = self._assignments.setdefault(user_id, {})
            return user_tests.setdefault(test_id, variant_id)

    def purge_test(self, test_id: str) -> int:
        """Drop every assignment for test_id and any user left with none."""
        removed = 0
        with self._lock:
            for user_id in list(self._assignments):
                user_tests = self._assignments[user_id]
                if user_tests.pop(test_id, None) is not None:
                    removed += 1
                if not user_tests:
                    del self._assignments[user_id]
        return removed

    def user_count(self) -> int:
        return len(self._assignments)


class AssignmentEngine:
    """Assigns users to variants of running tests."""

    def __init__(
        self,
        store: AssignmentStore | None = None,
        strategy: AssignmentStrategy = AssignmentStrategy.RANDOM,
        rng: random.Random | None = None,
    ) -> None:
        self.store = store or AssignmentStore()
        self.strategy = AssignmentStrategy(strategy)
        self._rng = rng or random.Random()
        self._rng_lock = threading.Lock()

    def assign(self, test: ABTest, user_id: str) -> str | None:
        """Return the user's variant id, or None if the test is not running."""
        if test.status != ABTestStatus.RUNNING or not test.variants:
            return None

        existing = self.store.get(test.id, user_id)
        if existing is not None:
            return existing

        variant_ids = [v.id for v in test.variants]
        chosen = select_variant(variant_ids, test.traffic_split, self._draw(test.id, user_id))
        stored = self.store.set_if_absent(test.id, user_id, chosen)

        if stored == chosen:
            logger.info("user_assigned", test_id=test.id, user_id=user_id, variant_id=stored)
        return stored

    def _draw(self, test_id: str, user_id: str) -> float:
        if self.strategy == AssignmentStrategy.USER_HASH:
            return hash_draw(test_id, user_id)
        with self._rng_lock:
            return self._rng.random() * 100
