"""
Read-only duplicate detection for operator review: fuzzy title collisions and shared DOIs
"""
from typing import List, Dict, Iterable, Tuple
from pathlib import Path

from ..models.schemas import Publication
from ..scoring_config import TITLE_MATCH_CONFIG
from ..utils.text_normalizer import text_normalizer


def find_title_collisions(
    records: Iterable[Tuple[Path, Publication]],
    prefix: int = TITLE_MATCH_CONFIG["compare_prefix"],
) -> List[Tuple[Publication, Publication]]:
    """Pairs whose title key prefixes contain one another. Pairwise, so not transitive."""
    records = list(records)
    pairs = []

    for i, (_, first) in enumerate(records):
        for _, second in records[i + 1:]:
            if text_normalizer.titles_match(first.title, second.title, prefix=prefix):
                pairs.append((first, second))

    return pairs


def find_doi_collisions(records: Iterable[Tuple[Path, Publication]]) -> Dict[str, List[Publication]]:
    by_doi: Dict[str, List[Publication]] = {}
    for _, publication in records:
        doi = text_normalizer.normalize_doi(publication.doi)
        if doi:
            by_doi.setdefault(doi, []).append(publication)

    return {doi: pubs for doi, pubs in by_doi.items() if len(pubs) > 1}


def render_report(
    title_pairs: List[Tuple[Publication, Publication]],
    doi_groups: Dict[str, List[Publication]],
) -> List[str]:
    lines = [f"Potential duplicate titles: {len(title_pairs)}"]
    for first, second in title_pairs:
        score = text_normalizer.jaccard(first.title, second.title)
        lines.append(f"  [{score:.2f}] {first.id} ({first.year}) <-> {second.id} ({second.year})")
        lines.append(f"      {first.title[:70]}")
        lines.append(f"      {second.title[:70]}")

    lines.append(f"Shared DOIs: {len(doi_groups)}")
    for doi, publications in sorted(doi_groups.items()):
        lines.append(f"  {doi}: {', '.join(p.id for p in publications)}")

    return lines
