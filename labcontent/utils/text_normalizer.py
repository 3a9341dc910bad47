"""
Text normalization for title identity keys, title similarity and names
"""
import re
import unicodedata
from typing import List, Optional, Set

from ..config import settings
from ..scoring_config import (
    DOI_MATCH_CONFIG,
    JAPANESE_RATIO_THRESHOLD,
    JAPANESE_VENUE_PATTERNS,
    TITLE_MATCH_CONFIG,
)


JAPANESE_CHARS = re.compile(r"[぀-ゟ゠-ヿ一-龯]")
BRACKETED_TITLE = re.compile(r"「([^」]+)」")
# Whitespace plus the quote/bracket characters stripped from identity keys
KEY_STRIP_CHARS = re.compile(r"[\s「」『』\"'“”‘’（）()【】\[\]・]")
DOI_URL_PREFIX = re.compile(r"^(?:https?://)?(?:dx\.)?doi\.org/", re.IGNORECASE)
KEY_FOLD_PASSES = 8


class TextNormalizer:
    """Normalization helpers used for identity resolution and matching"""

    def __init__(self, key_length: Optional[int] = None):
        self.key_length = key_length or settings.title_key_length

    def _fold_key(self, text: str, length: int) -> str:
        folded = unicodedata.normalize("NFKC", unicodedata.normalize("NFKC", text).lower())
        return KEY_STRIP_CHARS.sub("", folded)[:length]

    def normalize_title_key(self, title: str, length: Optional[int] = None) -> str:
        """Lossy identity key: bracketed part if any, lowercased, quotes and spaces removed, truncated

        Idempotent: the key of a key is the key itself.
        """
        if not title:
            return ""

        length = length or self.key_length
        bracketed = BRACKETED_TITLE.search(unicodedata.normalize("NFKC", title))
        key = bracketed.group(1) if bracketed else title

        # Lowercasing can emit combining marks that NFKC then reorders; fold until stable
        for _ in range(KEY_FOLD_PASSES):
            folded = self._fold_key(key, length)
            if folded == key:
                break
            key = folded
        return key

    def titles_match(
        self,
        title1: str,
        title2: str,
        prefix: int = TITLE_MATCH_CONFIG["compare_prefix"],
        min_length: int = TITLE_MATCH_CONFIG["min_key_length"],
    ) -> bool:
        """Prefix-substring heuristic; not transitive"""
        key1 = self.normalize_title_key(title1)
        key2 = self.normalize_title_key(title2)

        if len(key1) < min_length or len(key2) < min_length:
            return False

        return key1[:prefix] in key2 or key2[:prefix] in key1

    def significant_words(self, text: str, min_length: int = DOI_MATCH_CONFIG["min_word_length"]) -> Set[str]:
        cleaned = re.sub(r"[^\w\s]", " ", (text or "").lower())
        return {word for word in cleaned.split() if len(word) >= min_length}

    def word_overlap(self, query: str, candidate: str) -> float:
        """Share of the query's significant words found in the candidate"""
        query_words = self.significant_words(query)
        candidate_words = self.significant_words(candidate)

        if not query_words:
            return 0.0

        return len(query_words & candidate_words) / len(query_words)

    def jaccard(self, text1: str, text2: str) -> float:
        words1 = self.significant_words(text1)
        words2 = self.significant_words(text2)

        if not words1 or not words2:
            return 0.0

        return len(words1 & words2) / len(words1 | words2)

    def strip_diacritics(self, text: str) -> str:
        decomposed = unicodedata.normalize("NFKD", text or "")
        return "".join(ch for ch in decomposed if not unicodedata.combining(ch))

    def surname(self, name: str) -> str:
        """Best-effort family name: text before a comma, else the last token"""
        if not name:
            return ""

        name = name.strip()
        if "," in name:
            return name.split(",")[0].strip()

        parts = name.split()
        return parts[-1] if parts else ""

    def family_name(self, name: str) -> str:
        """Family name for author matching: first token of a Japanese name, else `surname`"""
        if self.is_japanese(name):
            parts = re.split(r"[,\s]+", name.strip())
            return parts[0] if parts else ""
        return self.surname(name)

    def is_japanese(self, text: str) -> bool:
        if not text:
            return False
        return len(JAPANESE_CHARS.findall(text)) / len(text) > JAPANESE_RATIO_THRESHOLD

    def detect_language(self, text: str) -> str:
        return "ja" if JAPANESE_CHARS.search(text or "") else "en"

    def is_japanese_venue(self, title: str, venue: Optional[str], tags: List[str]) -> bool:
        """Japanese-titled or Japanese-venue records, which CrossRef rarely indexes"""
        if self.is_japanese(title):
            return True

        venue = (venue or "").lower()
        if any(pattern in venue for pattern in JAPANESE_VENUE_PATTERNS):
            return True

        return "japanese" in (tags or [])

    def normalize_doi(self, doi: Optional[str]) -> str:
        """Strip resolver prefixes; empty string unless it looks like a DOI"""
        if not doi:
            return ""

        doi = DOI_URL_PREFIX.sub("", doi.strip())
        if not doi.startswith("10."):
            return ""

        return doi.lower()


text_normalizer = TextNormalizer()
