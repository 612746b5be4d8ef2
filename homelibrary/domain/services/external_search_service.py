"""
Multi-provider external book lookup.

=============================================================================
NOTES: Failure semantics
=============================================================================

External providers are a fallback, never a dependency. Each provider call
runs in its own worker thread with a bounded wait:

    provider ok        -> its results, status healthy
    provider raises    -> zero results, status unhealthy ("Service unavailable: ...")
    provider too slow  -> zero results, status unhealthy ("Timed out after Ns"),
                          the future is cancelled and never awaited

Nothing is retried. The caller always gets an ExternalSearchOutcome,
possibly empty, and never an exception from a provider.

=============================================================================
NOTES: Merge order and deduplication
=============================================================================

Results are merged in provider order (the order the providers were
configured, OpenLibrary first by default), keeping each provider's own
ordering. A result is dropped when its normalized ISBN or its normalized
title was already seen.
=============================================================================
"""

import logging
import re
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, Dict, List, Optional, Tuple

from homelibrary.domain.entities import ExternalBook
from homelibrary.domain.ports import ExternalBooksProvider
from homelibrary.domain.utils import normalize_isbn
from homelibrary.domain.value_objects import (
    ExternalApiHealthStatus,
    ExternalSearchOutcome,
    ProviderStatus,
)

logger = logging.getLogger(__name__)

OPERATIONAL_MESSAGE = "Service operational"

# Grace period on top of the per-request HTTP timeout before a worker is abandoned
_WAIT_GRACE_SECONDS = 1.0


def normalize_title(title: str) -> str:
    """Lowercase, strip punctuation and collapse whitespace."""
    cleaned = re.sub(r"[^a-z0-9\s]", "", title.lower())
    return re.sub(r"\s+", " ", cleaned).strip()


class ExternalBookSearchService:
    """
    Fans a lookup out to every configured provider and merges the answers.

    Usage:
        service = ExternalBookSearchService(
            providers=[open_library_provider, google_books_provider],
            timeout_seconds=5,
        )
        outcome = service.search("the great gatsby", limit=10)
        outcome.results          # merged ExternalBook list
        outcome.health.providers # per-provider ProviderStatus
    """

    MAX_RESULTS_PER_PROVIDER = 20

    def __init__(
        self,
        providers: List[ExternalBooksProvider],
        timeout_seconds: float = 5.0,
    ) -> None:
        """
        Args:
            providers: Providers in priority order
            timeout_seconds: Per-provider HTTP timeout; the wait for a
                provider's worker is bounded slightly above it
        """
        if timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {timeout_seconds}")

        self._providers = list(providers)
        self._timeout_seconds = timeout_seconds

    @property
    def is_enabled(self) -> bool:
        return bool(self._providers)

    def get_source_names(self) -> List[str]:
        return [p.get_source_name() for p in self._providers]

    def search(self, query: Optional[str], limit: int = 20, kind: str = "query") -> ExternalSearchOutcome:
        """
        Search all providers concurrently.

        Args:
            query: Free text, title or author depending on `kind`
            limit: Maximum number of merged results
            kind: 'query', 'title' or 'author'

        Returns:
            ExternalSearchOutcome with merged results and per-provider status.
            Blank queries return an empty outcome without any I/O.
        """
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")

        operations: Dict[str, Callable[[ExternalBooksProvider, str, int], List[ExternalBook]]] = {
            "query": lambda p, q, n: p.search_books(q, n),
            "title": lambda p, q, n: p.search_by_title(q, n),
            "author": lambda p, q, n: p.search_by_author(q, n),
        }
        if kind not in operations:
            raise ValueError(f"kind must be one of {sorted(operations)}, got '{kind}'")

        if query is None or not query.strip() or not self._providers:
            return ExternalSearchOutcome.empty()

        query = query.strip()
        per_provider = min(limit, self.MAX_RESULTS_PER_PROVIDER)
        operation = operations[kind]

        logger.info(f"External {kind} search for '{query}' across {len(self._providers)} providers")

        outcomes = self._run_parallel(lambda p: operation(p, query, per_provider))

        merged = self._deduplicate_and_merge([results for results, _ in outcomes])
        health = ExternalApiHealthStatus(
            providers={
                provider.get_source_name(): status
                for provider, (_, status) in zip(self._providers, outcomes)
            }
        )

        logger.info(f"External search for '{query}' returned {len(merged[:limit])} merged results")
        return ExternalSearchOutcome(results=merged[:limit], health=health)

    def search_by_isbn(self, isbn: Optional[str]) -> List[ExternalBook]:
        """
        Look an ISBN up provider by provider, returning the first hit.

        Provider failures are logged and skipped.
        """
        normalized = normalize_isbn(isbn)
        if normalized is None:
            return []

        for provider in self._providers:
            try:
                results = provider.search_by_isbn(normalized)
            except Exception as e:
                logger.warning(
                    f"{provider.get_source_name()} ISBN lookup failed for {normalized}: {e}"
                )
                continue

            if results:
                logger.debug(f"Found ISBN {normalized} in {provider.get_source_name()}")
                return results

        logger.debug(f"No provider knows ISBN {normalized}")
        return []

    def get_health_status(self) -> ExternalApiHealthStatus:
        """
        Probe every provider concurrently.

        A provider whose probe raises, returns False or times out is reported
        unhealthy.
        """
        def probe(provider: ExternalBooksProvider) -> bool:
            return provider.check_health()

        outcomes = self._run_parallel(probe)

        providers = {}
        for provider, (healthy, status) in zip(self._providers, outcomes):
            if status.healthy and not healthy:
                status = ProviderStatus(healthy=False, message="Service unavailable: health probe failed")
            providers[provider.get_source_name()] = status

        return ExternalApiHealthStatus(providers=providers)

    # =========================================================================
    # Private helper methods
    # =========================================================================

    def _run_parallel(self, call: Callable[[ExternalBooksProvider], object]) -> List[Tuple[object, ProviderStatus]]:
        """
        Run `call` once per provider in parallel.

        Returns:
            One (result, status) per provider, in provider order. Failed or
            timed-out providers yield ([], unhealthy status).
        """
        if not self._providers:
            return []

        executor = ThreadPoolExecutor(
            max_workers=len(self._providers),
            thread_name_prefix="external-books",
        )
        try:
            futures = [executor.submit(call, provider) for provider in self._providers]
            _, not_done = wait(futures, timeout=self._timeout_seconds + _WAIT_GRACE_SECONDS)

            outcomes: List[Tuple[object, ProviderStatus]] = []
            for provider, future in zip(self._providers, futures):
                source = provider.get_source_name()

                if future in not_done:
                    future.cancel()
                    logger.warning(f"{source} did not answer within {self._timeout_seconds}s")
                    outcomes.append(
                        ([], ProviderStatus(
                            healthy=False,
                            message=f"Timed out after {self._timeout_seconds}s",
                        ))
                    )
                    continue

                try:
                    result = future.result()
                except Exception as e:
                    logger.warning(f"{source} request failed: {e}")
                    outcomes.append(
                        ([], ProviderStatus(healthy=False, message=f"Service unavailable: {e}"))
                    )
                    continue

                outcomes.append((result, ProviderStatus(healthy=True, message=OPERATIONAL_MESSAGE)))

            return outcomes
        finally:
            # Abandon stragglers instead of blocking the request on them
            executor.shutdown(wait=False, cancel_futures=True)

    @staticmethod
    def _deduplicate_and_merge(result_lists: List[List[ExternalBook]]) -> List[ExternalBook]:
        seen_isbns = set()
        seen_titles = set()
        merged = []

        for results in result_lists:
            for book in results:
                isbn = normalize_isbn(book.isbn)
                title = normalize_title(book.title)

                if isbn is not None and isbn in seen_isbns:
                    continue
                if title and title in seen_titles:
                    continue

                merged.append(book)
                if isbn is not None:
                    seen_isbns.add(isbn)
                if title:
                    seen_titles.add(title)

        return merged
