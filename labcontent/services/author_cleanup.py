"""
Author list cleanup: typo fixes, role annotations, entries that are not people
"""
import re
from typing import List, Dict, Any

from loguru import logger

from ..scoring_config import (
    AUTHOR_ROLE_SUFFIXES,
    AUTHOR_TYPO_FIXES,
    NOT_AUTHOR_PATTERNS,
    NOT_AUTHOR_PATTERNS_IGNORECASE,
)
from ..utils.content_store import ContentStore


ROLE_SUFFIX = re.compile(r"\s*[(（](?:%s)[)）]$" % "|".join(AUTHOR_ROLE_SUFFIXES))
NOT_AUTHOR = [re.compile(p) for p in NOT_AUTHOR_PATTERNS] + [
    re.compile(p, re.IGNORECASE) for p in NOT_AUTHOR_PATTERNS_IGNORECASE
]
HAS_LETTER = re.compile(r"[a-zA-Z぀-鿿]")


def is_valid_author(name: str) -> bool:
    if len(name) < 2:
        return False
    if any(pattern.search(name) for pattern in NOT_AUTHOR):
        return False
    return bool(HAS_LETTER.search(name))


def clean_author_name(name: str) -> List[str]:
    """Zero names (remove), one (keep or fix) or several (split on " and ")"""
    if not is_valid_author(name):
        return []

    cleaned = AUTHOR_TYPO_FIXES.get(name, name)
    cleaned = ROLE_SUFFIX.sub("", cleaned)

    # Only split when every part is long enough to be a name, not an initial
    parts = cleaned.split(" and ")
    if len(parts) > 1 and all(len(p.strip()) > 3 for p in parts):
        return [p.strip() for p in parts if is_valid_author(p.strip())]

    cleaned = cleaned.strip()
    return [cleaned] if is_valid_author(cleaned) else []


def cleanup_author_list(authors: List[Any]) -> Dict[str, Any]:
    new_authors = []
    changes = []

    for author in authors:
        if not isinstance(author, str):
            changes.append(f"REMOVED (non-string): {author!r}")
            continue

        cleaned = clean_author_name(author)
        if not cleaned:
            changes.append(f'REMOVED: "{author}"')
        elif cleaned == [author]:
            new_authors.append(author)
        elif len(cleaned) == 1:
            changes.append(f'FIXED: "{author}" → "{cleaned[0]}"')
            new_authors.append(cleaned[0])
        else:
            changes.append(f'SPLIT: "{author}" → [{", ".join(cleaned)}]')
            new_authors.extend(cleaned)

    return {"authors": new_authors, "changes": changes}


def cleanup_authors(store: ContentStore, dry_run: bool = False) -> Dict[str, int]:
    stats = {"files_modified": 0, "fixed": 0, "split": 0, "removed": 0}

    for path, publication in store.iter_publications():
        result = cleanup_author_list(publication.authors)
        if not result["changes"]:
            continue

        logger.info(f"{path.name}:")
        for change in result["changes"]:
            logger.info(f"  {change}")
            if change.startswith("FIXED"):
                stats["fixed"] += 1
            elif change.startswith("SPLIT"):
                stats["split"] += 1
            else:
                stats["removed"] += 1

        stats["files_modified"] += 1
        if not dry_run:
            publication.authors = result["authors"]
            store.write_publication(path, publication)

    return stats
