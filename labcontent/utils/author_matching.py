"""
Author name equality policies used when merging author lists
"""
import re
from typing import Iterable, List

from .text_normalizer import text_normalizer


class AuthorMatcher:
    """Decides whether two display names refer to the same author"""

    name = "base"

    def same_author(self, name1: str, name2: str) -> bool:
        raise NotImplementedError

    def contains(self, names: Iterable[str], candidate: str) -> bool:
        return any(self.same_author(existing, candidate) for existing in names)

    def merge(self, primary: List[str], others: Iterable[str]) -> List[str]:
        """Primary order first, then every name the primary list does not cover; blank names are dropped"""
        merged = [name for name in primary if name and name.strip()]
        for name in others:
            if not name or not name.strip():
                continue
            if not self.contains(merged, name):
                merged.append(name)
        return merged


class ExactAuthorMatcher(AuthorMatcher):
    name = "exact"

    def same_author(self, name1: str, name2: str) -> bool:
        return name1 == name2


class SubstringAuthorMatcher(AuthorMatcher):
    """Case-sensitive exact-or-substring match, as the legacy dedup script did"""

    name = "substring"

    def same_author(self, name1: str, name2: str) -> bool:
        if not name1 or not name2:
            return name1 == name2
        return name1 == name2 or name1 in name2 or name2 in name1


class SurnameAuthorMatcher(AuthorMatcher):
    """Diacritic- and order-insensitive comparison on surname plus first initial"""

    name = "surname"

    def _key(self, name: str):
        folded = text_normalizer.strip_diacritics(name).casefold().strip()

        if text_normalizer.is_japanese(folded):
            return re.sub(r"\s+", "", folded), ""

        if "," in folded:
            family, _, given = folded.partition(",")
        else:
            parts = folded.split()
            family = parts[-1] if parts else ""
            given = " ".join(parts[:-1])

        family = re.sub(r"[^\w-]", "", family)
        given = re.sub(r"[^\w\s]", " ", given).strip()
        return family, given[:1]

    def same_author(self, name1: str, name2: str) -> bool:
        family1, initial1 = self._key(name1)
        family2, initial2 = self._key(name2)

        if not family1 or family1 != family2:
            return False

        # A missing given name is compatible with any initial
        return not initial1 or not initial2 or initial1 == initial2


AUTHOR_MATCHERS = {
    matcher.name: matcher
    for matcher in (ExactAuthorMatcher, SubstringAuthorMatcher, SurnameAuthorMatcher)
}


def get_author_matcher(name: str = "substring") -> AuthorMatcher:
    try:
        return AUTHOR_MATCHERS[name]()
    except KeyError:
        raise ValueError(f"Unknown author matching policy: {name}. Valid: {', '.join(AUTHOR_MATCHERS)}")
