"""Crawl cycle driver: seeds, processes and prunes one job against the local store."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from confsync.config import JobSpec
from confsync.connectors.repository import RepositoryConnector
from confsync.errors import ServiceInterruption
from confsync.index.storage import SQLiteDocumentStore
from confsync.models import RepositoryDocument

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class CrawlStats:
    inserted: int = 0
    updated: int = 0
    retained: int = 0
    deleted: int = 0
    failed: int = 0
    removed: int = 0
    processed_ids: list[str] = field(default_factory=list)
    retry_after: Optional[datetime] = None

    def increment(self, status: str, doc_id: str) -> None:
        if status == "inserted":
            self.inserted += 1
        elif status == "updated":
            self.updated += 1
        elif status == "retained":
            self.retained += 1
        elif status == "deleted":
            self.deleted += 1
        else:
            self.failed += 1
        self.processed_ids.append(doc_id)

    def defer(self, interruption: ServiceInterruption) -> None:
        if self.retry_after is None or interruption.retry_after < self.retry_after:
            self.retry_after = interruption.retry_after


class _CycleActivity:
    """Forwards processing outcomes to the store and tallies them."""

    def __init__(self, store: SQLiteDocumentStore, stats: CrawlStats) -> None:
        self.store = store
        self.stats = stats

    def ingest(self, doc_id: str, version: str, uri: str, record: RepositoryDocument) -> None:
        status = self.store.upsert_document(doc_id, version, uri, record)
        self.stats.increment(status, doc_id)

    def retain(self, doc_id: str) -> None:
        self.store.retain(doc_id)
        self.stats.increment("retained", doc_id)

    def delete(self, doc_id: str) -> None:
        self.store.delete(doc_id)
        self.stats.increment("deleted", doc_id)

    def record_activity(
        self, doc_id: str, activity: str, result: str, size: Optional[int], started_at: float
    ) -> None:
        self.store.record_activity(doc_id, activity, result, size, started_at)


class Crawler:
    """Runs crawl cycles of one repository connector into a document store."""

    def __init__(
        self,
        connector: RepositoryConnector,
        store: SQLiteDocumentStore,
        *,
        batch_size: int = 10,
    ) -> None:
        self.connector = connector
        self.store = store
        self.batch_size = batch_size

    def crawl(self, spec: JobSpec) -> CrawlStats:
        """Run one full crawl cycle.

        A failure while seeding propagates and leaves the store untouched.
        A per-document service interruption is counted as failed and the
        cycle carries on; documents missing from the listing are removed
        only once every seed has been handled, and only within the job's
        space when one is set.
        """
        seeds: List[str] = []
        self.connector.add_seeds(spec, seeds.append)
        seeds = list(dict.fromkeys(seeds))
        LOGGER.info("Crawling %d document(s)", len(seeds))

        stats = CrawlStats()
        activity = _CycleActivity(self.store, stats)

        for i in range(0, len(seeds), self.batch_size):
            batch = seeds[i : i + self.batch_size]
            versions = self.store.versions(batch)

            for doc_id in batch:
                try:
                    self.connector.process_documents([doc_id], versions, spec, activity)
                except ServiceInterruption as exc:
                    LOGGER.error("Failed to process %s: %s", doc_id, exc)
                    stats.increment("failed", doc_id)
                    stats.defer(exc)

            self.connector.poll()

        stats.removed = self.store.remove_unseen(seeds, spec.space)
        if stats.removed:
            LOGGER.info("Removed %d document(s) no longer listed", stats.removed)
        return stats
