"""
Regex parsers for the citation formats used on each listing page.
Each returns a field dict, or None when the citation does not fit the pattern.
"""
import re
from typing import Dict, Any, List, Optional


OPEN_QUOTE = "\"“"
CLOSE_QUOTE = "\"”"

JA_AUTHORS = re.compile(r"^\(\d+\)\s*([^:：]+)[:：]\s*「")
JA_TITLE = re.compile(r"「([^」]+)」")
JA_JOURNAL = re.compile(r"」[,，]\s*([^0-9]+?)\s*(\d+)\s*\((\d+)\)")

EN_AUTHORS = re.compile(rf"^\(\d+\)\s*([^:]+):\s*[{OPEN_QUOTE}]")
EN_TITLE = re.compile(rf"[{OPEN_QUOTE}]([^\"“”]+)[{CLOSE_QUOTE}]")
EN_JOURNAL = re.compile(rf"[{CLOSE_QUOTE}]\s+([A-Za-z][^0-9]+?)\s+(\d+)\s*\((\d+)\)")

DOI_IN_TEXT = re.compile(r"doi[:\s]*([0-9.]+/[^\s)]+)", re.IGNORECASE)
BRACKETED = re.compile(r"\[([^\]]+)\]")


def _split_ja_authors(text: str) -> List[str]:
    return [a.strip() for a in re.split(r"[,，、]", text) if a.strip()]


def _split_en_authors(text: str) -> List[str]:
    authors = [a.strip() for a in re.split(r",\s*(?:and\s+)?", text)]
    return [a for a in authors if a and not a[0].isdigit()]


def _doi(raw: str) -> Optional[str]:
    match = DOI_IN_TEXT.search(raw)
    return match.group(1) if match else None


def _year(pattern: str, raw: str, flags: int = 0) -> Optional[int]:
    match = re.search(pattern, raw, flags)
    return int(match.group(1)) if match else None


def parse_original_ja(raw: str) -> Optional[Dict[str, Any]]:
    # (1) 著者1, 著者2:「タイトル」, 雑誌名 Vol(Issue): pp.pages, year (doi: xxx)
    authors_match = JA_AUTHORS.search(raw)
    title_match = JA_TITLE.search(raw)
    if not authors_match or not title_match:
        return None

    journal_match = JA_JOURNAL.search(raw)
    pages_match = re.search(r"pp?\.\s*([0-9]+-[0-9]+)", raw)

    return {
        "authors": _split_ja_authors(authors_match.group(1)),
        "title": title_match.group(1),
        "year": _year(r"[,，]\s*((?:19|20)\d{2})\s*(?:\(|$|doi)", raw),
        "journal": journal_match.group(1).strip() if journal_match else None,
        "volume": journal_match.group(2) if journal_match else None,
        "issue": journal_match.group(3) if journal_match else None,
        "pages": pages_match.group(1) if pages_match else None,
        "doi": _doi(raw),
        "type": "journal",
    }


def parse_original_en(raw: str) -> Optional[Dict[str, Any]]:
    # (1) Authors: "Title." Journal Vol(Issue): pp. pages, year (doi: xxx)
    authors_match = EN_AUTHORS.search(raw)
    title_match = EN_TITLE.search(raw)
    if not authors_match or not title_match:
        return None

    journal_match = EN_JOURNAL.search(raw)
    pages_match = re.search(r"pp?\.?\s*([0-9]+-[0-9]+)", raw)

    return {
        "authors": _split_en_authors(authors_match.group(1)),
        "title": re.sub(r"\.$", "", title_match.group(1)),
        "year": _year(r"[,:\s]\s*((?:19|20)\d{2})\s*(?:\(|$|doi)", raw, re.IGNORECASE),
        "journal": journal_match.group(1).strip() if journal_match else None,
        "volume": journal_match.group(2) if journal_match else None,
        "issue": journal_match.group(3) if journal_match else None,
        "pages": pages_match.group(1) if pages_match else None,
        "doi": _doi(raw),
        "type": "journal",
    }


def parse_conference(raw: str) -> Optional[Dict[str, Any]]:
    # (1) Authors: "Title." Proceedings of Conference: pp.pages, year (Location, date) [Award]
    authors_match = EN_AUTHORS.search(raw)
    title_match = EN_TITLE.search(raw)
    if not authors_match or not title_match:
        return None

    conference_match = re.search(rf"[{CLOSE_QUOTE}]\s+(Proceedings[^:]+)", raw, re.IGNORECASE)
    pages_match = re.search(r"pp?\.?\s*([0-9]+-[0-9]+|[0-9]+)", raw)
    location_match = re.search(r"\(([^,，]+)[,，]\s*(?:19|20)\d{2}", raw)
    award_match = BRACKETED.search(raw)

    return {
        "authors": _split_en_authors(authors_match.group(1)),
        "title": re.sub(r"\.$", "", title_match.group(1)),
        "year": _year(r"[,\s]((?:19|20)\d{2})年?\d*月?\d*日?\)", raw),
        "conference": conference_match.group(1).strip() if conference_match else None,
        "pages": pages_match.group(1) if pages_match else None,
        "location": location_match.group(1).strip() if location_match else None,
        "awards": [award_match.group(1)] if award_match else [],
        "type": "conference",
    }


def parse_review(raw: str) -> Optional[Dict[str, Any]]:
    """Same layout as Japanese originals, possibly tagged [招待論文]"""
    result = parse_original_ja(raw)
    if result:
        result["type"] = "review"
        invited = re.search(r"\[(招待論文|invited)\]", raw, re.IGNORECASE)
        if invited:
            result["awards"] = [invited.group(1)]
    return result


def parse_book(raw: str) -> Optional[Dict[str, Any]]:
    # (1) Authors: 「Title」，Publisher, City, year (ISBN)
    authors_match = JA_AUTHORS.search(raw)
    title_match = JA_TITLE.search(raw)
    if not authors_match or not title_match:
        return None

    publisher_match = re.search(r"」[，,]\s*([^，,]+?)[，,]\s*(?:東京|大阪|京都)", raw)

    return {
        "authors": _split_ja_authors(authors_match.group(1)),
        "title": title_match.group(1),
        "year": _year(r"((?:19|20)\d{2})年?\s*(?:\(|$)", raw),
        "publisher": publisher_match.group(1) if publisher_match else None,
        "type": "book",
    }


def parse_oral(raw: str) -> Optional[Dict[str, Any]]:
    # (1) Authors：「Title」，Event (Location，date) [Keynote]
    authors_match = re.search(rf"^\(\d+\)\s*([^:：「{OPEN_QUOTE}]+)[:：]\s*[「{OPEN_QUOTE}]", raw)
    title_match = re.search(rf"[「{OPEN_QUOTE}]([^」\"“”]+)[」{CLOSE_QUOTE}]", raw)
    if not authors_match or not title_match:
        return None

    authors = [a.strip() for a in re.split(r"[,，、]\s*(?:and\s+)?", authors_match.group(1)) if a.strip()]
    event_match = re.search(rf"[」{CLOSE_QUOTE}][，,.\s]+([^(（]+)", raw)
    location_match = re.search(r"\(([^，,\d]+)[，,]", raw)
    keynote_match = BRACKETED.search(raw)

    return {
        "authors": authors,
        "title": re.sub(r"\.$", "", title_match.group(1)),
        "year": _year(r"((?:19|20)\d{2})年?\d*月?\d*日?[,\s]*\)", raw),
        "conference": event_match.group(1).strip() if event_match else None,
        "location": location_match.group(1).strip() if location_match else None,
        "awards": [keynote_match.group(1)] if keynote_match else [],
        "type": "presentation",
    }


CATEGORY_PARSERS = {
    "original_ja": parse_original_ja,
    "original_en": parse_original_en,
    "conference": parse_conference,
    "review": parse_review,
    "book": parse_book,
    "oral": parse_oral,
    "seminars": parse_oral,
}


def parse_by_category(raw: str, category: str) -> Optional[Dict[str, Any]]:
    parser = CATEGORY_PARSERS.get(category)
    if parser is None:
        return None
    return parser(raw)


def is_usable(result: Optional[Dict[str, Any]]) -> bool:
    """A regex result is kept only with at least one author and a title"""
    return bool(result and result.get("authors") and result.get("title"))
