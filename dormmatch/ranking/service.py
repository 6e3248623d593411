from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Iterable

import pandas as pd

from ..catalog.models import Entity
from ..errors import ResolutionCancelled
from ..resolution.cache import QualityCache
from ..resolution.models import QualitySignal
from ..resolution.resolver import EntityResolver
from .config import DEFAULT_RANKING_CONFIG, RankingConfig
from .match_engine import MatchEngine
from .models import Query, RankedItem, RankingResult

logger = logging.getLogger(__name__)

# How often a caller-supplied cancel event is checked while waiting.
_CANCEL_POLL_SECONDS = 0.05


class RankingService:
    """
    Filters, scores and orders the catalog for one query.

    Quality signals are fetched on a shared, bounded thread pool so the
    number of concurrent outbound resolutions stays capped across requests.
    A lookup that fails, times out or is cancelled leaves its entity with
    neutral quality credit instead of failing the ranking.
    """

    def __init__(
        self,
        engine: MatchEngine,
        cache: QualityCache,
        resolver: EntityResolver,
        config: RankingConfig = DEFAULT_RANKING_CONFIG,
        executor: ThreadPoolExecutor | None = None,
    ) -> None:
        self._engine = engine
        self._cache = cache
        self._resolver = resolver
        self._config = config
        self._executor = executor or ThreadPoolExecutor(
            max_workers=config.max_concurrency,
            thread_name_prefix="quality-lookup",
        )

    @property
    def engine(self) -> MatchEngine:
        return self._engine

    def signal_for(
        self,
        entity: Entity,
        cancel_event: threading.Event | None = None,
    ) -> QualitySignal | None:
        return self._cache.get_or_resolve(
            entity.name,
            lambda: self._resolver.resolve(entity.name, entity.coordinates, cancel_event),
        )

    def resolve_signals(
        self,
        entities: Iterable[Entity],
        deadline: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> dict[str, QualitySignal | None]:
        """
        Fetch signals for *entities* concurrently.

        Entities whose lookup does not finish before *deadline* seconds, or
        before *cancel_event* is set, map to ``None``.
        """
        request_cancel = threading.Event()
        futures: dict[Future, str] = {
            self._executor.submit(self.signal_for, entity, request_cancel): entity.name
            for entity in entities
        }
        signals: dict[str, QualitySignal | None] = {name: None for name in futures.values()}

        ends_at = time.monotonic() + deadline if deadline else None
        pending = set(futures)
        while pending:
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Ranking request cancelled with %d lookups pending", len(pending))
                break
            timeout = None if ends_at is None else ends_at - time.monotonic()
            if timeout is not None and timeout <= 0:
                logger.warning("Ranking deadline reached with %d lookups pending", len(pending))
                break
            if cancel_event is not None:
                timeout = _CANCEL_POLL_SECONDS if timeout is None else min(timeout, _CANCEL_POLL_SECONDS)

            done, pending = wait(pending, timeout=timeout, return_when=FIRST_COMPLETED)
            for future in done:
                name = futures[future]
                try:
                    signals[name] = future.result()
                except ResolutionCancelled:
                    signals[name] = None
                except Exception:
                    logger.warning("Quality lookup for %s failed", name, exc_info=True)
                    signals[name] = None

        if pending:
            request_cancel.set()
            for future in pending:
                future.cancel()
        return signals

    def rank(
        self,
        catalog: Iterable[Entity],
        query: Query,
        top_k: int | None = None,
        deadline: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> RankingResult:
        survivors = [e for e in catalog if self._engine.passes_hard_filter(e, query)]
        if not survivors:
            logger.info("No entities offer a %s rate", query.room_type.value)
            return RankingResult(items=[], total_candidates=0, message=self._config.empty_message)

        if deadline is None:
            deadline = self._config.request_deadline
        signals = self.resolve_signals(survivors, deadline=deadline, cancel_event=cancel_event)

        rows: list[dict] = []
        for entity in survivors:
            signal = signals.get(entity.name)
            breakdown = self._engine.score(entity, query, signal)
            rows.append({
                "name": entity.name,
                "total": breakdown.total,
                "item": RankedItem(
                    entity=entity,
                    breakdown=breakdown,
                    matched_rates=self._engine.matching_rates(entity, query),
                    quality_signal=signal,
                ),
            })

        ranked = pd.DataFrame(rows).sort_values(
            ["total", "name"], ascending=[False, True], kind="mergesort"
        )
        if top_k is not None:
            ranked = ranked.head(top_k)

        return RankingResult(
            items=ranked["item"].tolist(),
            total_candidates=len(survivors),
        )

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
