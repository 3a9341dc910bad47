"""
Duplicate merge: records whose normalized title keys are equal collapse into
the most complete one, enriched with whatever the others contribute
"""
from typing import List, Dict, Iterable, Optional, Tuple
from pathlib import Path

from loguru import logger

from ..models.schemas import DuplicateGroup, MergeOutcome, Publication, RecordFile
from ..scoring_config import GENERIC_AWARD_TYPE
from ..utils.author_matching import AuthorMatcher, get_author_matcher
from ..utils.content_store import ContentStore
from ..utils.scoring import completeness_score
from ..utils.text_normalizer import TextNormalizer, text_normalizer


def group_duplicates(records: Iterable[Tuple[Path, Publication]], key_length: Optional[int] = None) -> List[DuplicateGroup]:
    """Groups of two or more records sharing a title key, in first-seen order"""
    normalizer = TextNormalizer(key_length) if key_length else text_normalizer
    by_key: Dict[str, List[RecordFile]] = {}

    for path, publication in records:
        key = normalizer.normalize_title_key(publication.title)
        if not key:
            continue
        by_key.setdefault(key, []).append(RecordFile(path=path, publication=publication))

    return [DuplicateGroup(key=key, files=files) for key, files in by_key.items() if len(files) > 1]


def rank_group(group: DuplicateGroup) -> List[RecordFile]:
    """Most complete first; `sorted` is stable so ties keep scan order"""
    return sorted(group.files, key=lambda f: completeness_score(f.publication), reverse=True)


def merge_group(group: DuplicateGroup, matcher: Optional[AuthorMatcher] = None) -> Publication:
    matcher = matcher or get_author_matcher()
    ranked = rank_group(group)

    merged = ranked[0].publication.model_copy(deep=True)

    merged.authors = matcher.merge(
        merged.authors,
        (author for record in ranked for author in record.publication.authors),
    )

    awards: List[str] = []
    for record in ranked:
        for award in record.publication.awards:
            if award not in awards:
                awards.append(award)
    merged.awards = awards

    for field in ("doi", "pages"):
        if not getattr(merged, field):
            for record in ranked:
                value = getattr(record.publication, field)
                if value:
                    setattr(merged, field, value)
                    break

    if merged.type == GENERIC_AWARD_TYPE and (merged.conference or merged.journal):
        merged.type = "presentation" if merged.conference else "journal"

    return merged


def deduplicate(
    store: ContentStore,
    dry_run: bool = False,
    matcher: Optional[AuthorMatcher] = None,
    key_length: Optional[int] = None,
) -> List[MergeOutcome]:
    """Merge every duplicate group; the top-scoring file is rewritten and the rest deleted"""
    matcher = matcher or get_author_matcher()
    groups = group_duplicates(store.iter_publications(), key_length)
    logger.info(f"Found {len(groups)} titles with duplicates")

    outcomes = []
    for group in groups:
        ranked = rank_group(group)
        keep = ranked[0]
        merged = merge_group(group, matcher)

        outcome = MergeOutcome(
            key=group.key,
            kept=keep.path,
            deleted=[record.path for record in ranked[1:]],
            merged=merged,
            original_score=completeness_score(keep.publication),
            merged_score=completeness_score(merged),
            added_authors=[a for a in merged.authors if a not in keep.publication.authors],
            added_awards=[a for a in merged.awards if a not in keep.publication.awards],
        )
        outcomes.append(outcome)

        logger.info(f"Title: {group.key}")
        logger.info(f"  Keep: {keep.path.name} (score: {outcome.original_score})")
        logger.info(f"  Delete: {len(outcome.deleted)} files")
        if outcome.merged_score > outcome.original_score:
            logger.info(f"  Merged: score {outcome.original_score} -> {outcome.merged_score}")
        if outcome.added_authors:
            logger.info(f"    + Added authors: {', '.join(outcome.added_authors)}")
        if outcome.added_awards:
            logger.info(f"    + Added awards: {', '.join(outcome.added_awards)}")

        if not dry_run:
            store.write_publication(keep.path, merged)
            for path in outcome.deleted:
                store.delete(path)

    return outcomes
