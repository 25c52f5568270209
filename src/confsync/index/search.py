"""Keyword search over ingested documents, filtered by access tokens."""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from typing import Collection, Iterable, List

from confsync.index.storage import SQLiteDocumentStore

_TAGS = re.compile(r"<[^>]+>")
_WORDS = re.compile(r"\w+")


@dataclass(slots=True)
class SearchResult:
    doc_id: str
    title: str
    space: str
    uri: str
    score: float
    snippet: str


def is_visible(acl: Iterable[str], deny_acl: Iterable[str], tokens: Collection[str]) -> bool:
    """A document is visible iff a token is allowed and none is denied."""
    allowed = any(token in tokens for token in acl)
    denied = any(token in tokens for token in deny_acl)
    return allowed and not denied


def html_to_text(markup: str) -> str:
    return " ".join(html.unescape(_TAGS.sub(" ", markup)).split())


class Searcher:
    """High-level API to query the document store."""

    def __init__(self, store: SQLiteDocumentStore) -> None:
        self.store = store

    def search(self, query: str, tokens: Collection[str], *, top_k: int = 10) -> List[SearchResult]:
        terms = [term.lower() for term in _WORDS.findall(query)]
        if not terms:
            return []

        results: List[SearchResult] = []
        for document in self.store.iter_documents():
            if not is_visible(document["acl"], document["deny_acl"], tokens):
                continue
            title = (document["title"] or "").lower()
            if document["mime_type"] == "text/html":
                text = html_to_text(document["body"].decode("utf-8", errors="replace"))
            else:
                text = ""
            lowered = text.lower()
            score = sum(3 * title.count(term) + lowered.count(term) for term in terms)
            if score == 0:
                continue
            results.append(
                SearchResult(
                    doc_id=document["doc_id"],
                    title=document["title"] or "",
                    space=document["space"] or "",
                    uri=document["uri"] or "",
                    score=float(score),
                    snippet=_snippet(text, lowered, terms),
                )
            )

        results.sort(key=lambda result: (-result.score, result.doc_id))
        return results[:top_k]


def _snippet(text: str, lowered: str, terms: List[str], width: int = 180) -> str:
    positions = [lowered.find(term) for term in terms if term in lowered]
    start = max(min(positions) - width // 4, 0) if positions else 0
    return text[start : start + width]
