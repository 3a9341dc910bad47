"""
Legacy site check: each section of the old publication page against the records of the
same type and language tag. Read-only.
"""
import re
from pathlib import Path
from typing import List, Dict, Iterable, Optional, Tuple

from loguru import logger

from ..exceptions import LabContentError
from ..models.schemas import CitationBatch, LegacyEntry, Publication, SectionReport
from ..scoring_config import VERIFY_SECTIONS
from ..utils.text_normalizer import BRACKETED_TITLE, text_normalizer
from .ingestion import BATCH_FILE, _numbered_files, _read_json, language_tags


LEGACY_NUMBER = re.compile(r"^\s*\((\d+)\)\s*")
QUOTED_TITLE = re.compile(r"[\"“]([^\"”]+)[\"”]")


def legacy_title(raw: str) -> Optional[str]:
    """「bracketed」 or "quoted" title of a citation line"""
    match = BRACKETED_TITLE.search(raw) or QUOTED_TITLE.search(raw)
    return match.group(1).strip() if match else None


def load_legacy_sections(batches_dir: Path) -> Dict[str, List[LegacyEntry]]:
    """Scraped entries by listing category, from the `batch-N.json` files"""
    batch_files = _numbered_files(Path(batches_dir), BATCH_FILE)
    if not batch_files:
        raise LabContentError(f"No scraped batches in {batches_dir}; run the scraper first")

    sections: Dict[str, List[LegacyEntry]] = {}
    for path in batch_files:
        batch = CitationBatch.model_validate(_read_json(path))

        entries = sections.setdefault(batch.category, [])
        for item in batch.items:
            raw = item if isinstance(item, str) else (item or {}).get("raw", "")
            if not raw or not raw.strip():
                continue
            number = LEGACY_NUMBER.match(raw)
            entries.append(LegacyEntry(
                number=int(number.group(1)) if number else len(entries) + 1,
                raw=LEGACY_NUMBER.sub("", raw).strip(),
                title=legacy_title(raw),
            ))

    logger.info(f"Legacy page: {sum(len(e) for e in sections.values())} entries in {len(sections)} categories")
    return sections


def _label(entry: LegacyEntry) -> str:
    return f"({entry.number}) {entry.title or entry.raw[:50]}"


def verify_section(
    section: str,
    records: Iterable[Tuple[Path, Publication]],
    legacy: Dict[str, List[LegacyEntry]],
) -> SectionReport:
    if section not in VERIFY_SECTIONS:
        raise ValueError(f"Unknown section: {section}. Valid: {', '.join(VERIFY_SECTIONS)}")

    config = VERIFY_SECTIONS[section]
    tag = config.get("tag")

    entries = [entry for category in config["categories"] for entry in legacy.get(category, [])]
    if tag:
        entries = [entry for entry in entries if tag in language_tags(entry.title or entry.raw)]

    remaining = [
        publication for _, publication in records
        if publication.type == config["type"] and (not tag or tag in publication.tags)
    ]
    report = SectionReport(
        section=section,
        header=config["header"],
        legacy_count=len(entries),
        record_count=len(remaining),
    )

    for entry in entries:
        found = next(
            (pub for pub in remaining if text_normalizer.titles_match(entry.title or entry.raw, pub.title)),
            None,
        )
        if found is None:
            report.missing.append(_label(entry))
            continue
        report.matched.append(_label(entry))
        remaining.remove(found)

    report.extra = [(pub.title or pub.id)[:50] for pub in remaining]
    return report


def verify_sections(
    sections: List[str],
    records: Iterable[Tuple[Path, Publication]],
    legacy: Dict[str, List[LegacyEntry]],
) -> List[SectionReport]:
    records = list(records)
    return [verify_section(section, records, legacy) for section in sections]


def render_section_report(report: SectionReport, limit: int = 10) -> List[str]:
    lines = [
        f"Legacy entries: {report.legacy_count}",
        f"Records: {report.record_count}",
        f"Matched: {len(report.matched)}",
        f"Missing from records: {len(report.missing)}",
        f"Extra in records: {len(report.extra)}",
    ]

    if report.missing:
        lines.append(f"MISSING (first {limit}):")
        lines.extend(f"  - {label}" for label in report.missing[:limit])

    if report.extra:
        lines.append(f"EXTRA (first {limit}):")
        lines.extend(f"  + {label}" for label in report.extra[:limit])

    return lines


def render_summary(reports: List[SectionReport]) -> List[str]:
    lines = []
    for report in reports:
        status = "✓" if not report.missing else "✗"
        lines.append(
            f"{status} {report.section}: {report.legacy_count} legacy, "
            f"{len(report.matched)} matched, {len(report.missing)} missing"
        )
    return lines
