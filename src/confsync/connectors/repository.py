"""Repository connector: seeds and processes Confluence documents."""

from __future__ import annotations

import dataclasses
import logging
import time
from typing import Callable, Iterable, Mapping, Optional, Protocol

from confsync.config import JobSpec
from confsync.connectors.base import BaseConnector
from confsync.failures import PROCESSING, SEEDING, failure_guard
from confsync.models import Attachment, ContentItem, RepositoryDocument
from confsync.source.client import ConfluenceClient
from confsync.sync.assembler import assemble
from confsync.sync.seeds import enumerate_seeds
from confsync.sync.versioning import Delete, Ingest, Retain, VersionGate

LOGGER = logging.getLogger(__name__)

ACTIVITY_READ = "read document"


class ProcessActivity(Protocol):
    """Callbacks the host provides to receive processing outcomes."""

    def ingest(self, doc_id: str, version: str, uri: str, record: RepositoryDocument) -> None: ...

    def retain(self, doc_id: str) -> None: ...

    def delete(self, doc_id: str) -> None: ...

    def record_activity(
        self, doc_id: str, activity: str, result: str, size: Optional[int], started_at: float
    ) -> None: ...


class RepositoryConnector(BaseConnector):
    """Enumerates documents of a space and decides their fate one by one."""

    def _probe(self, client: ConfluenceClient) -> bool:
        return client.check_reachable()

    def add_seeds(
        self,
        spec: JobSpec,
        add_seed: Callable[[str], None],
        last_seed_version: Optional[str] = None,
    ) -> str:
        """Hand every document id in scope to ``add_seed``.

        The listing is always walked from the start, so the returned seed
        version is empty and ``last_seed_version`` is ignored. Any remote
        failure fails the whole call.
        """
        client = self.session.acquire()
        count = 0
        with failure_guard(SEEDING):
            for doc_id in enumerate_seeds(
                client,
                spec.space,
                page_size=self.page_size,
                include_attachments=spec.include_attachments,
            ):
                add_seed(doc_id)
                count += 1
        LOGGER.info("Added %d seed documents", count)
        return ""

    def process_documents(
        self,
        doc_ids: Iterable[str],
        versions: Mapping[str, Optional[str]],
        spec: JobSpec,
        activity: ProcessActivity,
    ) -> None:
        """Ingest, retain or delete each document, reporting to ``activity``."""
        client = self.session.acquire()
        gate = VersionGate(client)
        for doc_id in doc_ids:
            self._process_document(client, gate, doc_id, versions.get(doc_id), activity)

    def _process_document(
        self,
        client: ConfluenceClient,
        gate: VersionGate,
        doc_id: str,
        stored_version: Optional[str],
        activity: ProcessActivity,
    ) -> None:
        LOGGER.debug("Processing document identifier '%s'", doc_id)
        started_at = time.time()
        result = "FAILED"
        size: Optional[int] = None
        try:
            with failure_guard(PROCESSING):
                decision = gate.decide(doc_id, stored_version)
                if isinstance(decision, Ingest):
                    item = self._with_content(client, decision.item)

            if isinstance(decision, Delete):
                activity.delete(doc_id)
            elif isinstance(decision, Retain):
                activity.retain(doc_id)
            else:
                record = assemble(item)
                activity.ingest(doc_id, decision.version, item.web_url or item.url, record)
                size = record.length
            result = "OK"
        finally:
            activity.record_activity(doc_id, ACTIVITY_READ, result, size, started_at)

    @staticmethod
    def _with_content(client: ConfluenceClient, item: ContentItem) -> ContentItem:
        if isinstance(item, Attachment) and item.content is None:
            return dataclasses.replace(item, content=client.fetch_attachment_content(item))
        return item
