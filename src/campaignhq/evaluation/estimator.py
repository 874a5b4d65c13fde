"""
Audience size estimation.

``estimate_size`` counts a known population exactly. The async estimators
model the round trip an authoring session makes for a live size figure:
``PopulationEstimator`` counts a population off the event loop, and
``PlaceholderEstimator`` stands in when no population is available, returning
a bounded pseudo-random figure that is only fit for display.

``AudienceSizeTracker`` conflates requests: every refresh is tagged with a
version and a result is kept only if no newer refresh was issued while it was
in flight, so a slow answer for an old tree never overwrites the figure for
the current one.
"""

import random
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

import anyio
import anyio.to_thread
import structlog

from campaignhq.config import Settings, get_settings
from campaignhq.core.fields import FieldCatalog
from campaignhq.core.tree import RuleGroup
from campaignhq.evaluation.evaluator import PredicateEvaluator, Record

logger = structlog.get_logger()


def estimate_size(
    tree: RuleGroup,
    population: Iterable[Record],
    catalog: FieldCatalog | None = None,
) -> int:
    """Number of records in ``population`` matching ``tree``."""
    return PredicateEvaluator(catalog).count(tree, population)


class AudienceSizeEstimator(Protocol):
    """Anything that can estimate the audience of a tree asynchronously."""

    async def estimate(self, tree: RuleGroup) -> int | None:
        """Estimated audience size, or None when it is unknown."""
        ...


class PopulationEstimator:
    """Exact counts against an in-memory population."""

    def __init__(
        self,
        population: Sequence[Record],
        catalog: FieldCatalog | None = None,
        offload_threshold: int = 10_000,
    ) -> None:
        self._population = population
        self._evaluator = PredicateEvaluator(catalog)
        self._offload_threshold = offload_threshold
        self._log = logger.bind(component="population_estimator")

    @property
    def population_size(self) -> int:
        return len(self._population)

    async def estimate(self, tree: RuleGroup) -> int | None:
        if len(self._population) >= self._offload_threshold:
            size = await anyio.to_thread.run_sync(
                self._evaluator.count, tree, self._population
            )
        else:
            size = self._evaluator.count(tree, self._population)
        self._log.debug("population_counted", tree_id=tree.id, size=size)
        return size


class PlaceholderEstimator:
    """
    Display-only stand-in used when no customer data is reachable.

    Simulates the latency of a backend call and returns a pseudo-random
    figure in ``[minimum, maximum]``. Empty trees return None at once.
    """

    def __init__(
        self,
        latency: float = 0.5,
        minimum: int = 100,
        maximum: int = 9999,
        rng: random.Random | None = None,
    ) -> None:
        if minimum > maximum:
            raise ValueError("minimum must not exceed maximum")
        self._latency = latency
        self._minimum = minimum
        self._maximum = maximum
        self._rng = rng or random.Random()

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        rng: random.Random | None = None,
    ) -> "PlaceholderEstimator":
        """Placeholder configured by the ``estimate_*`` settings."""
        settings = settings or get_settings()
        return cls(
            latency=settings.estimate_latency,
            minimum=settings.estimate_min,
            maximum=settings.estimate_max,
            rng=rng,
        )

    async def estimate(self, tree: RuleGroup) -> int | None:
        if tree.is_empty:
            return None
        if self._latency > 0:
            await anyio.sleep(self._latency)
        return self._rng.randint(self._minimum, self._maximum)


@dataclass(frozen=True)
class SizeEstimate:
    """An accepted estimate and the request version it answers."""

    version: int
    tree_id: str
    size: int | None
    estimated_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class AudienceSizeTracker:
    """Keeps the size figure for the most recently requested tree."""

    def __init__(self, estimator: AudienceSizeEstimator) -> None:
        self._estimator = estimator
        self._version = 0
        self._latest: SizeEstimate | None = None
        self._in_flight: set[int] = set()
        self._log = logger.bind(component="audience_size_tracker")

    @property
    def version(self) -> int:
        return self._version

    @property
    def latest(self) -> SizeEstimate | None:
        return self._latest

    @property
    def size(self) -> int | None:
        return self._latest.size if self._latest else None

    @property
    def is_loading(self) -> bool:
        """Whether the request for the current tree is still in flight."""
        return self._version in self._in_flight

    def invalidate(self) -> None:
        """Discard any in-flight request and forget the current figure."""
        self._version += 1
        self._latest = None

    async def refresh(self, tree: RuleGroup) -> SizeEstimate | None:
        """
        Estimate ``tree`` and keep the result if it is still current.

        Returns the accepted estimate, or None when a newer refresh superseded
        this one before it completed. Empty trees are never sent to the
        estimator; their size is unknown.
        """
        self._version += 1
        version = self._version

        if tree.is_empty:
            self._latest = SizeEstimate(version=version, tree_id=tree.id, size=None)
            return self._latest

        self._in_flight.add(version)
        try:
            size = await self._estimator.estimate(tree)
        except Exception:
            self._log.exception("estimate_failed", version=version, tree_id=tree.id)
            size = None
        finally:
            self._in_flight.discard(version)

        if version != self._version:
            self._log.debug(
                "stale_estimate_discarded",
                version=version,
                current_version=self._version,
            )
            return None

        self._latest = SizeEstimate(version=version, tree_id=tree.id, size=size)
        self._log.debug("estimate_accepted", version=version, size=size)
        return self._latest
