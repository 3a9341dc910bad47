"""
Batch ingestion: scraped citation batches -> parsed batch JSON -> YAML records
"""
import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Dict, Any, Optional, Set

from loguru import logger

from ..config import settings
from ..models.schemas import CitationBatch, ParseProgress, Publication
from ..scoring_config import YEAR_RANGE
from ..utils.content_store import ContentStore, allocate_id, generate_id
from ..utils.lookup_cache import LookupCache
from ..utils.text_normalizer import JAPANESE_CHARS, text_normalizer
from .citation_parser import SmartCitationParser


BATCH_FILE = re.compile(r"^batch-(\d+)\.json$")
PARSED_BATCH_FILE = re.compile(r"^batch-(\d+)-parsed\.json$")

CATEGORY_TYPES = {
    "original_ja": "journal",
    "original_en": "journal",
    "conference": "conference",
    "review": "review",
    "book": "book",
    "oral": "presentation",
    "seminars": "presentation",
    "thesis": "thesis",
    "poster": "poster",
    "report": "report",
    "patent": "patent",
    "award": "award",
    "grant": "grant",
    "media": "media",
}


def _numbered_files(directory: Path, pattern) -> List[Path]:
    if not directory.exists():
        return []
    files = [p for p in directory.iterdir() if pattern.match(p.name)]
    return sorted(files, key=lambda p: int(pattern.match(p.name).group(1)))


def _read_json(path: Path) -> Any:
    with path.open(encoding="utf-8") as f:
        return json.load(f)


def _write_json(path: Path, data: Any):
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)


class BatchParser:
    """Parses every `batch-N.json`, skipping batches already listed in `progress.json`"""

    def __init__(
        self,
        parser: Optional[SmartCitationParser] = None,
        batches_dir: Optional[Path] = None,
        parsed_dir: Optional[Path] = None,
    ):
        self.parser = parser or SmartCitationParser()
        self.batches_dir = Path(batches_dir or settings.batches_dir)
        self.parsed_dir = Path(parsed_dir or settings.parsed_dir)

    @property
    def progress_path(self) -> Path:
        return self.parsed_dir / "progress.json"

    @property
    def cache_path(self) -> Path:
        return self.parsed_dir / "crossref-cache.json"

    def load_progress(self) -> ParseProgress:
        if self.progress_path.exists():
            return ParseProgress.model_validate(_read_json(self.progress_path))
        return ParseProgress()

    def save_progress(self, progress: ParseProgress):
        _write_json(self.progress_path, progress.model_dump(by_alias=True))

    def run(self, limit: Optional[int] = None) -> ParseProgress:
        self.parsed_dir.mkdir(parents=True, exist_ok=True)
        progress = self.load_progress()
        cache = LookupCache.load(self.cache_path)

        batch_files = _numbered_files(self.batches_dir, BATCH_FILE)
        remaining = [p for p in batch_files if p.name not in progress.completed_batches]
        logger.info(f"📦 {len(batch_files)} batches, {len(remaining)} remaining")

        if limit:
            remaining = remaining[:limit]

        for batch_path in remaining:
            cache = self.parse_batch(batch_path, progress, cache)
            progress.completed_batches.append(batch_path.name)
            self.save_progress(progress)
            cache.save(self.cache_path)

        stats = progress.stats
        logger.info(
            f"✅ Parsed {stats['total']} citations: regex {stats.get('fromRegex', 0)}, "
            f"CrossRef {stats.get('fromCrossRef', 0)}, Ollama {stats.get('fromOllama', 0)}, "
            f"valid {stats['valid']}, invalid {stats['invalid']}"
        )
        return progress

    def parse_batch(self, batch_path: Path, progress: ParseProgress, cache: LookupCache) -> LookupCache:
        batch_id = int(BATCH_FILE.match(batch_path.name).group(1))
        batch = CitationBatch.model_validate(_read_json(batch_path))
        logger.info(f"[{batch_path.name}] {batch.category}, {len(batch.items)} items")

        source_counters = {"regex": "fromRegex", "crossref": "fromCrossRef", "ollama": "fromOllama"}
        results = []

        for index, item in enumerate(batch.items):
            raw = item if isinstance(item, str) else (item or {}).get("raw", "")
            citation, cache = self.parser.parse(raw, batch.category, cache)

            citation.batch_index = index
            citation.id = f"{generate_id(citation.year, citation.authors, citation.title, index)}-{progress.stats['total']}"

            stats = progress.stats
            stats["total"] = stats.get("total", 0) + 1
            counter = source_counters.get(citation.source)
            if counter:
                stats[counter] = stats.get(counter, 0) + 1
            if citation.valid:
                stats["valid"] = stats.get("valid", 0) + 1
            else:
                stats["invalid"] = stats.get("invalid", 0) + 1

            results.append(citation.model_dump(by_alias=True, exclude_none=True))

        output_path = self.parsed_dir / f"batch-{batch_id}-parsed.json"
        _write_json(output_path, {
            "batchId": batch_id,
            "category": batch.category,
            "categoryTitle": batch.category_title,
            "parsedAt": datetime.now(timezone.utc).isoformat(),
            "items": results,
        })
        logger.info(f"  Saved: {output_path}")
        return cache


def map_category_to_type(category: str, item_type: Optional[str] = None) -> str:
    """The listing category is more reliable than a type guessed during parsing"""
    mapped = CATEGORY_TYPES.get((category or "").lower())
    if mapped:
        return mapped
    if item_type and item_type.lower() == "arxiv":
        return "preprint"
    return item_type or "journal"


def normalize_parsed(item: Dict[str, Any], category: str) -> Dict[str, Any]:
    """Clean one parsed citation into record fields"""
    data = {
        key: value for key, value in item.items()
        if not key.startswith("_") and key != "raw" and value not in (None, "", "None", [])
    }

    if data.get("title"):
        data["title"] = str(data["title"]).strip().strip("「」\"“”『』").strip()

    if data.get("pages"):
        data["pages"] = re.sub(r"^pp?\.\s*", "", str(data["pages"])).strip()

    if "doi" in data:
        doi = text_normalizer.normalize_doi(str(data["doi"]))
        if doi:
            data["doi"] = doi
        else:
            data.pop("doi")

    if data.get("awards"):
        awards = [str(a).strip() for a in data["awards"] if not str(a).strip().isdigit()]
        data["awards"] = [a for a in awards if a]

    data["type"] = map_category_to_type(category, data.get("type"))
    return data


def language_tags(title: str) -> List[str]:
    return ["japanese"] if JAPANESE_CHARS.search(title or "") else ["english"]


def convert_to_records(
    parsed_dir: Optional[Path] = None,
    store: Optional[ContentStore] = None,
    dry_run: bool = False,
) -> Dict[str, int]:
    """Write one YAML record per usable parsed citation"""
    parsed_dir = Path(parsed_dir or settings.parsed_dir)
    store = store or ContentStore()
    stats = {"created": 0, "skipped_year": 0, "skipped_invalid": 0}

    used_ids: Set[str] = {path.stem for path in store.publication_files()}
    if used_ids:
        logger.warning(
            f"⚠️  {len(used_ids)} records already in {store.publications_dir}; "
            f"converting again adds suffixed copies of records that already exist"
        )
    low, high = YEAR_RANGE

    for batch_path in _numbered_files(parsed_dir, PARSED_BATCH_FILE):
        batch = _read_json(batch_path)
        category = batch.get("category", "")
        items = batch.get("items", [])
        logger.info(f"Processing {batch_path.name} ({category}, {len(items)} items)")

        for item in items:
            if item.get("_valid") is False or not item.get("title") or not item.get("authors"):
                stats["skipped_invalid"] += 1
                continue

            year = item.get("year")
            if not isinstance(year, int) or not low <= year <= high:
                stats["skipped_year"] += 1
                continue

            data = normalize_parsed(item, category)
            base_id = generate_id(year, data.get("authors", []), data["title"], stats["created"])
            data["id"] = allocate_id(base_id, used_ids)
            data["tags"] = sorted(set(data.get("tags", [])) | set(language_tags(data["title"])))

            publication = Publication.model_validate(data)
            if not dry_run:
                store.write_publication(store.path_for(publication.id), publication)
            stats["created"] += 1

    logger.info(
        f"✓ Created {stats['created']} records, skipped {stats['skipped_year']} (year) "
        f"and {stats['skipped_invalid']} (invalid)"
    )
    return stats
