"""Past-paper search: cache, backup dataset and live refresh behind one API."""

from __future__ import annotations

import logging
import os
import threading
from typing import Callable, Iterable, Sequence

from backup_data import BACKUP_QUESTIONS
from cache import QuestionCache, topic_key
from classifier import TOPIC_OTHER, TOPIC_RULES, classify_candidate
from models import (
    ALL_TOPICS_KEY,
    CHEMISTRY_PAPER,
    PHYSICS_PAPER,
    PaperLink,
    QuestionRecord,
    SourceDescriptor,
)
from pdf_ingest import ingest_document
from question_extractor import extract_candidates
from scraper import run_per_source, scrape_source, scrape_sources
from sources import SOURCE_REGISTRY

MAX_RESULTS = 5
MAX_PDFS_PER_SOURCE = int(os.getenv("MAX_PDFS_PER_SOURCE", "10"))
MIN_TERM_LENGTH = 4
MAX_BACKGROUND_REFRESHES = int(os.getenv("MAX_BACKGROUND_REFRESHES", "1"))

# Cache keys a search miss may refresh; a miss on any other key is served from backup.
REFRESHABLE_KEYS = frozenset(
    {
        ALL_TOPICS_KEY,
        TOPIC_OTHER,
        *(rule.topic for rule in TOPIC_RULES),
        PHYSICS_PAPER.lower(),
        CHEMISTRY_PAPER.lower(),
        "physics",
        "chemistry",
        "p1",
        "p2",
    }
)

LOGGER = logging.getLogger(__name__)

RecordCollector = Callable[[Sequence[SourceDescriptor]], list[QuestionRecord]]
LinkScraper = Callable[[Sequence[SourceDescriptor]], list[PaperLink]]


def search_terms(query: str) -> list[str]:
    """Lowercase whitespace tokens longer than three characters."""
    return [term for term in (query or "").lower().split() if len(term) >= MIN_TERM_LENGTH]


def topic_matches(record: QuestionRecord, topic_filter: str) -> bool:
    """Case-insensitive substring match on the record's topic or paper label."""
    wanted = (topic_filter or "").strip().lower()
    if not wanted:
        return True
    return wanted in record.topic.lower() or wanted in record.paper.lower()


def query_matches(record: QuestionRecord, query: str, terms: Sequence[str]) -> bool:
    """True for an empty query, else when any term occurs in question or subtopic.

    A non-empty query made only of short words has no terms and matches nothing.
    """
    if not (query or "").strip():
        return True
    question = record.question.lower()
    subtopic = record.subtopic.lower()
    return any(term in question or term in subtopic for term in terms)


def collect_source_records(source: SourceDescriptor) -> list[QuestionRecord]:
    """Run the full pipeline for one source.

    Scrape links, download each document, segment its text and classify
    every candidate. Document-level failures yield no records for that
    document; a scrape failure raises SourceFetchError.
    """
    links = scrape_source(source)
    if len(links) > MAX_PDFS_PER_SOURCE:
        LOGGER.info(
            "Capping documents for source=%s: found=%s cap=%s",
            source.name,
            len(links),
            MAX_PDFS_PER_SOURCE,
        )
        links = links[:MAX_PDFS_PER_SOURCE]

    records: list[QuestionRecord] = []
    for link in links:
        text = ingest_document(link.url, link.source, link.year)
        candidates = extract_candidates(text)
        records.extend(
            classify_candidate(candidate, year=link.year, url=link.url, source=link.source)
            for candidate in candidates
        )
        LOGGER.info(
            "Extracted questions url=%s chars=%s questions=%s",
            link.url,
            len(text),
            len(candidates),
        )
    return records


def collect_records(
    sources: Iterable[SourceDescriptor], max_workers: int | None = None
) -> list[QuestionRecord]:
    """Run the pipeline for every source concurrently; failing sources are skipped."""
    return run_per_source(sources, collect_source_records, max_workers=max_workers)


class PastPaperSearch:
    """Search and refresh over one QuestionCache.

    search() never blocks on the network: it serves whatever the cache holds
    (or the backup dataset) and, when the entry is stale or missing, starts a
    background refresh whose only effect is a later cache put. At most
    max_background_refreshes refreshes run at once across all keys, and a
    miss only refreshes keys in REFRESHABLE_KEYS.
    """

    def __init__(
        self,
        cache: QuestionCache | None = None,
        sources: Iterable[SourceDescriptor] = SOURCE_REGISTRY,
        backup: Iterable[QuestionRecord] | None = None,
        collector: RecordCollector | None = None,
        link_scraper: LinkScraper | None = None,
        refresh_on_miss: bool = True,
        max_background_refreshes: int | None = None,
    ) -> None:
        self.cache = cache if cache is not None else QuestionCache()
        self.sources = tuple(sources)
        # An empty override would break the non-empty guarantee; ship ours instead.
        self.backup = tuple(backup or ()) or BACKUP_QUESTIONS
        self.refresh_on_miss = refresh_on_miss
        self._collector: RecordCollector = collector or collect_records
        self._link_scraper: LinkScraper = link_scraper or scrape_sources
        self._refreshing: set[str] = set()
        self._refreshing_lock = threading.Lock()
        self._refresh_slots = threading.BoundedSemaphore(
            max(1, max_background_refreshes or MAX_BACKGROUND_REFRESHES)
        )

    def search(self, query: str, topic_filter: str = "") -> list[QuestionRecord]:
        """Return at most MAX_RESULTS records matching query and topic_filter."""
        try:
            return self._search(query or "", topic_filter or "")
        except Exception:
            LOGGER.exception("Search failed for query=%r topic=%r", query, topic_filter)
            return []

    def refresh(self, topic_filter: str = "") -> None:
        """Scrape all sources now and replace the cache entry for topic_filter."""
        key = topic_key(topic_filter)
        try:
            records = self._collector(self.sources)
            kept = [record for record in records if topic_matches(record, topic_filter)]
            self.cache.put(key, kept)
            LOGGER.info(
                "Refresh complete: key=%s scraped=%s kept=%s", key, len(records), len(kept)
            )
        except Exception:
            LOGGER.exception("Refresh failed for key=%s", key)

    def list_papers(self, topic_filter: str = "") -> list[PaperLink]:
        """Return discovered paper links whose paper label contains topic_filter."""
        wanted = (topic_filter or "").strip().lower()
        try:
            links = self._link_scraper(self.sources)
        except Exception:
            LOGGER.exception("Listing papers failed for topic=%r", topic_filter)
            return []
        return [link for link in links if not wanted or wanted in link.paper.lower()]

    def refresh_in_background(self, topic_filter: str = "") -> threading.Thread | None:
        """Start a fire-and-forget refresh if the key is idle and a slot is free.

        Returns None when a refresh for the key is already running or the
        global limit is reached. The returned thread is exposed for tests;
        callers must not join it.
        """
        key = topic_key(topic_filter)
        with self._refreshing_lock:
            if key in self._refreshing:
                LOGGER.debug("Background refresh already running for key=%s", key)
                return None
            if not self._refresh_slots.acquire(blocking=False):
                LOGGER.info("Background refresh limit reached, skipping key=%s", key)
                return None
            self._refreshing.add(key)

        thread = threading.Thread(
            target=self._run_background_refresh,
            args=(topic_filter, key),
            name=f"past-paper-refresh-{key}",
            daemon=True,
        )
        try:
            thread.start()
        except RuntimeError:
            self._finish_background_refresh(key)
            LOGGER.exception("Could not start background refresh for key=%s", key)
            return None

        LOGGER.info("Background refresh started for key=%s", key)
        return thread

    def _run_background_refresh(self, topic_filter: str, key: str) -> None:
        try:
            self.refresh(topic_filter)
        finally:
            self._finish_background_refresh(key)

    def _finish_background_refresh(self, key: str) -> None:
        with self._refreshing_lock:
            self._refreshing.discard(key)
            self._refresh_slots.release()

    def _search(self, query: str, topic_filter: str) -> list[QuestionRecord]:
        entry = self.cache.get(topic_filter)

        if entry is not None and not self.cache.is_fresh(entry):
            LOGGER.info("Cache entry stale for key=%s, serving it and refreshing", entry.key)
            self.refresh_in_background(topic_filter)
        elif entry is None and self.refresh_on_miss:
            if topic_key(topic_filter) in REFRESHABLE_KEYS:
                self.refresh_in_background(topic_filter)
            else:
                LOGGER.debug("No refresh on miss for unknown key=%s", topic_key(topic_filter))

        if entry is not None and entry.payload:
            pool: Sequence[QuestionRecord] = entry.payload
            origin = "cache"
        else:
            pool = self.backup
            origin = "backup"

        terms = search_terms(query)
        results = [
            record
            for record in pool
            if topic_matches(record, topic_filter) and query_matches(record, query, terms)
        ]
        LOGGER.info(
            "Search: origin=%s pool=%s matched=%s returned=%s",
            origin,
            len(pool),
            len(results),
            min(len(results), MAX_RESULTS),
        )
        return results[:MAX_RESULTS]
