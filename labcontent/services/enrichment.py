"""
DOI lookup (title search, or author + journal for Japanese journal papers) and abstract retrieval
"""
import re
from typing import List, Dict, Any, Optional, Tuple

from loguru import logger

from ..config import settings
from ..models.schemas import AbstractResult, DoiMatch, Publication
from ..scoring_config import (
    ABSTRACT_PROVIDER_ORDER,
    DOI_MATCH_CONFIG,
    JAPANESE_JOURNAL_NAMES,
    JOURNAL_MATCH_CONFIG,
)
from ..utils.api_clients import (
    CrossRefClient,
    OpenAlexClient,
    PubMedClient,
    RequestThrottle,
    SemanticScholarClient,
    make_http_client,
)
from ..utils.content_store import ContentStore
from ..utils.lookup_cache import LookupCache
from ..utils.text_normalizer import text_normalizer


CROSSREF_TYPE_MAP = {
    "proceedings-article": "conference",
    "book-chapter": "book-chapter",
    "book": "book",
}

# CrossRef work fields kept when search results are cached
CACHED_WORK_FIELDS = ("DOI", "title", "author", "published", "published-print", "published-online", "issued")


def crossref_authors(work: Dict[str, Any]) -> List[str]:
    authors = []
    for author in work.get("author", []) or []:
        if author.get("given") and author.get("family"):
            authors.append(f"{author['given']} {author['family']}")
        elif author.get("name"):
            authors.append(author["name"])
        elif author.get("family"):
            authors.append(author["family"])
    return authors


def crossref_year(work: Dict[str, Any]) -> Optional[int]:
    for date_field in ("published-print", "published-online", "published", "issued"):
        date_parts = (work.get(date_field) or {}).get("date-parts") or []
        if date_parts and date_parts[0] and date_parts[0][0]:
            return int(date_parts[0][0])
    return None


def crossref_title(work: Dict[str, Any]) -> str:
    title = work.get("title")
    if isinstance(title, list):
        return title[0] if title else ""
    return title or ""


def crossref_work_to_publication(work: Dict[str, Any], fallback: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Map a CrossRef `message` onto record fields; `fallback` fills what CrossRef omits"""
    fallback = fallback or {}

    container = work.get("container-title") or []
    if isinstance(container, list):
        container = container[0] if container else None

    fields = {
        "type": CROSSREF_TYPE_MAP.get(work.get("type"), "journal"),
        "title": crossref_title(work) or fallback.get("title", ""),
        "authors": crossref_authors(work) or fallback.get("authors", []),
        "year": crossref_year(work) or fallback.get("year"),
        "journal": container,
        "volume": work.get("volume"),
        "issue": work.get("issue"),
        "pages": work.get("page"),
        "doi": text_normalizer.normalize_doi(work.get("DOI")) or None,
        "url": work.get("URL"),
        "publisher": work.get("publisher"),
    }
    return {key: value for key, value in fields.items() if value not in (None, "", [])}


def authors_overlap(local_authors: List[str], candidate_authors: List[str]) -> bool:
    """At least one surname appears on both sides (containment, case-insensitive)"""
    local_surnames = [text_normalizer.surname(a).lower() for a in local_authors or []]
    candidate_surnames = [text_normalizer.surname(a).lower() for a in candidate_authors or []]

    for local in local_surnames:
        if not local:
            continue
        for candidate in candidate_surnames:
            if candidate and (local in candidate or candidate in local):
                return True
    return False


def _name_key(name: str) -> str:
    return re.sub(r"[^\w]", "", (name or "").lower())


def author_share(local_authors: List[str], work: Dict[str, Any]) -> float:
    """Local family names found among the work's authors, over the longer author list"""
    local = [key for key in (_name_key(text_normalizer.family_name(a)) for a in local_authors or []) if key]
    families = [key for key in (_name_key(a.get("family", "")) for a in work.get("author", []) or []) if key]
    if not local or not families:
        return 0.0

    matched = sum(1 for name in local if any(name in family or family in name for family in families))
    return matched / max(len(local), len(families))


def journal_search_terms(journal: Optional[str]) -> str:
    """English container-title query for a Japanese journal name"""
    for japanese, english in JAPANESE_JOURNAL_NAMES.items():
        if japanese in (journal or ""):
            return english
    return JOURNAL_MATCH_CONFIG["default_terms"]


def _slim_work(work: Dict[str, Any]) -> Dict[str, Any]:
    return {field: work[field] for field in CACHED_WORK_FIELDS if field in work}


class DoiFinder:
    """CrossRef DOI lookup.

    `find_doi` searches by title and accepts the best candidate when its word overlap
    clears `threshold` and a surname is shared. `find_doi_by_author_journal` searches by
    first-author family name inside a journal and accepts the candidate with the largest
    share of matching authors, if it clears `author_threshold`.

    Cached entries hold what CrossRef answered, not whether it was accepted, so a cache
    filled at one threshold can be reused at another. Failed requests are never cached.
    """

    def __init__(
        self,
        crossref: Optional[CrossRefClient] = None,
        threshold: float = DOI_MATCH_CONFIG["similarity_threshold"],
        rows: int = DOI_MATCH_CONFIG["search_rows"],
        year_window: int = DOI_MATCH_CONFIG["year_window"],
        author_threshold: float = JOURNAL_MATCH_CONFIG["author_share_threshold"],
    ):
        self.crossref = crossref or CrossRefClient(throttle=RequestThrottle(settings.search_delay))
        self.threshold = threshold
        self.rows = rows
        self.year_window = year_window
        self.author_threshold = author_threshold

    def _query_title(self, title: str) -> str:
        cleaned = title.replace("「", "").replace("」", "").replace('"', "")
        return cleaned[: DOI_MATCH_CONFIG["max_query_length"]]

    def find_doi(self, publication: Publication, cache: Optional[LookupCache] = None) -> Tuple[Optional[DoiMatch], LookupCache]:
        cache = cache if cache is not None else LookupCache()

        if not publication.title:
            return None, cache

        key = LookupCache.make_key(f"title:{publication.year or ''}", publication.title)
        if key in cache:
            cached = cache.get(key)
            best = DoiMatch(**cached) if cached else None
            return (best if self.accepts(best) else None), cache

        candidates = self.crossref.search_by_title(
            self._query_title(publication.title),
            year=publication.year,
            rows=self.rows,
            year_window=self.year_window,
        )
        if self.crossref.last_error:
            logger.warning(f"CrossRef search failed ({self.crossref.last_error}); will retry next run")
            return None, cache

        best = self.best_candidate(publication, candidates)
        if best:
            cache.set(key, best.model_dump())
        else:
            cache.set_error(key, "no candidates")

        return (best if self.accepts(best) else None), cache

    def best_candidate(self, publication: Publication, candidates: List[Dict[str, Any]]) -> Optional[DoiMatch]:
        """Highest title overlap, with its author check, whether or not it would be accepted"""
        best = None
        best_score = 0.0

        for item in candidates:
            if not item.get("DOI"):
                continue
            score = text_normalizer.word_overlap(publication.title, crossref_title(item))
            if score > best_score:
                best, best_score = item, score

        if best is None:
            return None

        return DoiMatch(
            doi=text_normalizer.normalize_doi(best["DOI"]) or best["DOI"],
            title=crossref_title(best),
            score=round(best_score, 4),
            author_match=authors_overlap(publication.authors, crossref_authors(best)),
        )

    def accepts(self, match: Optional[DoiMatch]) -> bool:
        if match is None:
            return False
        if match.score < self.threshold:
            logger.debug(f"Rejected {match.doi}: similarity {match.score:.2f} < {self.threshold}")
            return False
        if not match.author_match:
            logger.debug(f"Rejected {match.doi}: no shared author surname")
            return False
        return True

    def find_doi_by_author_journal(
        self,
        publication: Publication,
        cache: Optional[LookupCache] = None,
    ) -> Tuple[Optional[DoiMatch], LookupCache]:
        cache = cache if cache is not None else LookupCache()

        if not publication.authors:
            return None, cache

        family = text_normalizer.family_name(publication.authors[0])
        terms = journal_search_terms(publication.journal)
        logger.debug(f"Searching: author={family!r} journal={terms!r} year={publication.year}")

        key = LookupCache.make_key(f"journal:{publication.year or ''}", f"{family} {terms}")
        if key in cache:
            works = (cache.get(key) or {}).get("items", [])
        else:
            works = self.crossref.search_by_author_journal(
                family,
                terms,
                year=publication.year,
                rows=JOURNAL_MATCH_CONFIG["search_rows"],
                year_window=self.year_window,
            )
            if self.crossref.last_error:
                logger.warning(f"CrossRef search failed ({self.crossref.last_error}); will retry next run")
                return None, cache
            works = [_slim_work(work) for work in works]
            cache.set(key, {"items": works})

        return self.select_by_authors(publication, works), cache

    def select_by_authors(self, publication: Publication, works: List[Dict[str, Any]]) -> Optional[DoiMatch]:
        """Candidate in the year window with the largest author share, if it clears `author_threshold`"""
        best = None
        best_score = 0.0

        for work in works:
            if not work.get("DOI"):
                continue
            year = crossref_year(work)
            if publication.year and year and abs(year - publication.year) > self.year_window:
                continue
            score = author_share(publication.authors, work)
            if score > best_score:
                best, best_score = work, score

        if best is None:
            return None

        if best_score < self.author_threshold:
            logger.info(f"  Low confidence: {crossref_title(best)[:50]} (authors {best_score:.0%})")
            return None

        return DoiMatch(
            doi=text_normalizer.normalize_doi(best["DOI"]) or best["DOI"],
            title=crossref_title(best),
            score=round(best_score, 4),
            author_match=True,
        )


def select_doi_candidates(store: ContentStore, limit: Optional[int] = None) -> List[Tuple[Any, Publication]]:
    """Records without a DOI that CrossRef can plausibly resolve, newest first"""
    candidates = []
    for path, publication in store.iter_publications():
        if publication.doi or not publication.title:
            continue
        venue = publication.journal or publication.conference
        if text_normalizer.is_japanese_venue(publication.title, venue, publication.tags):
            continue
        candidates.append((path, publication))

    candidates.sort(key=lambda pair: pair[1].year or 0, reverse=True)
    if limit:
        candidates = candidates[:limit]
    return candidates


def select_journal_doi_candidates(store: ContentStore, limit: Optional[int] = None) -> List[Tuple[Any, Publication]]:
    """Japanese-venue journal papers without a DOI; the title search skips these"""
    candidates = []
    for path, publication in store.iter_publications():
        if publication.doi or publication.type != "journal" or not publication.authors:
            continue
        if not text_normalizer.is_japanese_venue(publication.title, publication.journal, publication.tags):
            continue
        candidates.append((path, publication))

    candidates.sort(key=lambda pair: pair[1].year or 0, reverse=True)
    if limit:
        candidates = candidates[:limit]
    return candidates


DOI_STRATEGIES = {
    "title": (select_doi_candidates, DoiFinder.find_doi),
    "journal": (select_journal_doi_candidates, DoiFinder.find_doi_by_author_journal),
}


def enrich_dois(
    store: ContentStore,
    finder: Optional[DoiFinder] = None,
    cache: Optional[LookupCache] = None,
    dry_run: bool = False,
    limit: Optional[int] = None,
    strategy: str = "title",
) -> Tuple[Dict[str, int], LookupCache]:
    if strategy not in DOI_STRATEGIES:
        raise ValueError(f"Unknown DOI strategy: {strategy}. Valid: {', '.join(DOI_STRATEGIES)}")

    finder = finder or DoiFinder()
    cache = cache if cache is not None else LookupCache()
    stats = {"checked": 0, "found": 0, "not_found": 0}
    select, lookup = DOI_STRATEGIES[strategy]

    candidates = select(store, limit)
    logger.info(f"🔎 {len(candidates)} records without DOI to look up ({strategy} search)")

    for index, (path, publication) in enumerate(candidates, 1):
        stats["checked"] += 1
        logger.info(f"[{index}/{len(candidates)}] {(publication.title or publication.id)[:60]}")

        match, cache = lookup(finder, publication, cache)
        if not match:
            stats["not_found"] += 1
            continue

        stats["found"] += 1
        logger.info(f"  ✅ {match.doi} (score {match.score:.2f})")
        if not dry_run:
            publication.doi = match.doi
            store.write_publication(path, publication)

    return stats, cache


class AbstractFetcher:
    """Ordered provider chain; the first non-empty abstract wins"""

    def __init__(self, providers: Optional[Dict[str, Any]] = None, order: Optional[List[str]] = None):
        if providers is None:
            client = make_http_client()
            throttle = RequestThrottle(settings.abstract_delay)
            providers = {
                "openalex": OpenAlexClient(client, throttle),
                "semantic_scholar": SemanticScholarClient(client, throttle),
                "crossref": CrossRefClient(client, throttle),
                "pubmed": PubMedClient(client, throttle),
            }
        self.providers = providers
        self.order = order or [name for name in ABSTRACT_PROVIDER_ORDER if name in providers]

    def fetch(self, doi: str, cache: Optional[LookupCache] = None) -> Tuple[Optional[AbstractResult], LookupCache]:
        cache = cache if cache is not None else LookupCache()
        doi = text_normalizer.normalize_doi(doi) or doi

        key = LookupCache.make_key("abstract", doi)
        if key in cache:
            cached = cache.get(key)
            return (AbstractResult(**cached) if cached else None), cache

        failed = []
        for name in self.order:
            provider = self.providers[name]
            text = provider.get_abstract(doi)
            if text and text.strip():
                result = AbstractResult(source=name, text=text.strip())
                cache.set(key, result.model_dump())
                return result, cache
            if provider.last_error:
                failed.append(name)
            logger.debug(f"No abstract from {name} for {doi}")

        if failed:
            logger.warning(f"No abstract for {doi}; {', '.join(failed)} failed, will retry next run")
        else:
            cache.set_error(key, "no abstract")
        return None, cache


def enrich_abstracts(
    store: ContentStore,
    fetcher: Optional[AbstractFetcher] = None,
    cache: Optional[LookupCache] = None,
    dry_run: bool = False,
    limit: Optional[int] = None,
) -> Tuple[Dict[str, int], LookupCache]:
    fetcher = fetcher or AbstractFetcher()
    cache = cache if cache is not None else LookupCache()
    stats = {"checked": 0, "found": 0, "not_found": 0}
    by_source: Dict[str, int] = {}

    targets = [(path, pub) for path, pub in store.iter_publications() if pub.doi and not pub.abstract]
    if limit:
        targets = targets[:limit]
    logger.info(f"📄 {len(targets)} records with DOI but no abstract")

    for index, (path, publication) in enumerate(targets, 1):
        stats["checked"] += 1
        result, cache = fetcher.fetch(publication.doi, cache)
        if not result:
            logger.info(f"[{index}/{len(targets)}] {publication.doi} ✗")
            stats["not_found"] += 1
            continue

        stats["found"] += 1
        by_source[result.source] = by_source.get(result.source, 0) + 1
        logger.info(f"[{index}/{len(targets)}] {publication.doi} ✓ {result.source} ({len(result.text)} chars)")
        if not dry_run:
            publication.abstract = result.text
            store.write_publication(path, publication)

    for source, count in by_source.items():
        stats[f"from_{source}"] = count
    return stats, cache
