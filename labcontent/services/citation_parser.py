"""
Citation parsing: category regex first, CrossRef by DOI second, local LLM last.
Parsing never raises; problems are recorded on the record as `_errors`.
"""
import json
import re
from typing import List, Dict, Any, Optional, Tuple

import ollama
from loguru import logger

from ..config import settings
from ..models.schemas import PUBLICATION_TYPES, ParsedCitation
from ..scoring_config import VALIDATION_YEAR_RANGE
from ..utils.api_clients import CrossRefClient, RequestThrottle
from ..utils.category_parsers import is_usable, parse_by_category
from ..utils.lookup_cache import LookupCache
from ..utils.text_normalizer import text_normalizer
from .enrichment import crossref_work_to_publication


DOI_PATTERNS = [
    re.compile(r"doi\s*[:：]\s*(10\.[0-9]+/[^\s)\]\"',]+)", re.IGNORECASE),
    re.compile(r"https?://doi\.org/(10\.[0-9]+/[^\s)\]\"',]+)", re.IGNORECASE),
    re.compile(r"\((10\.[0-9]{4,}/[^\s)\]\"',]+)\)"),
]
ARXIV_PATTERN = re.compile(r"arxiv[:\s]*(\d{4}\.\d{4,5})", re.IGNORECASE)
AWARD_PATTERN = re.compile(r"\[([^\]]+)\]")


def extract_doi(text: str) -> Optional[str]:
    for pattern in DOI_PATTERNS:
        match = pattern.search(text)
        if match:
            return re.sub(r"[.,;:\]）)]+$", "", match.group(1).strip())
    return None


def extract_arxiv(text: str) -> Optional[str]:
    match = ARXIV_PATTERN.search(text)
    return match.group(1) if match else None


def extract_awards(text: str) -> List[str]:
    """Bracketed annotations, minus footnote numbers"""
    return [a for a in AWARD_PATTERN.findall(text) if not a.isdigit() and len(a) > 1]


def extract_year(text: str) -> Optional[int]:
    match = re.search(r"[,，\s](\d{4})[年\s,，)）]", text)
    return int(match.group(1)) if match else None


def extract_title_from_raw(text: str) -> str:
    quoted = re.search(r"[「\"]([^」\"]+)[」\"]", text)
    if quoted:
        return quoted.group(1)

    after_colon = re.search(r"[:：]\s*[「\"]?([^」\"，,]+)", text)
    if after_colon:
        return after_colon.group(1).strip()

    return ""


def extract_authors_from_raw(text: str) -> List[str]:
    before_colon = re.search(r"^\s*\(\d+\)\s*(.+?)[:：]\s*[「\"]", text)
    if before_colon:
        names = re.split(r",|，|、|\band\b", before_colon.group(1))
        return [n.strip() for n in names if 1 < len(n.strip()) < 30]

    japanese = re.search(r"^\s*\(\d+\)\s*([^:：「\"]+)", text)
    if japanese:
        names = re.split(r"[,，、]+", japanese.group(1))
        return [n.strip() for n in names if 1 < len(n.strip()) < 20 and not n.strip()[0].isdigit()]

    return []


def validate_citation(data: Dict[str, Any]) -> List[str]:
    """Schema problems for a parsed citation; empty when valid"""
    errors = []

    title = data.get("title")
    if not title or not str(title).strip():
        errors.append("Missing or empty title")

    authors = data.get("authors")
    if not authors or not isinstance(authors, list):
        errors.append("Missing or empty authors")
    else:
        for author in authors:
            if not isinstance(author, str) or not author.strip():
                errors.append(f"Invalid author entry: {author}")

    publication_type = data.get("type")
    if not publication_type:
        errors.append("Missing type")
    elif publication_type not in PUBLICATION_TYPES:
        errors.append(f"Invalid type: {publication_type}")

    year = data.get("year")
    if year is not None:
        low, high = VALIDATION_YEAR_RANGE
        if not isinstance(year, int) or isinstance(year, bool) or not low <= year <= high:
            errors.append(f"Invalid year: {year}")

    doi = data.get("doi")
    if doi and not re.match(r"^10\.\d{4,}", str(doi)):
        errors.append(f"Invalid DOI format: {doi}")

    return errors


class OllamaCitationParser:
    """Citation parser backed by a local Ollama model"""

    def __init__(self, client=None, model_name: Optional[str] = None):
        self.client = client or ollama.Client(host=settings.ollama_host)
        self.model_name = model_name or settings.parse_model

    def _create_parsing_prompt(self, citation: str) -> str:
        return f"""Parse this academic citation. Extract the fields and return ONLY valid JSON.

EXAMPLE INPUT:
"(1) Taro Yamada, Jane Doe: "Cortical responses to tone sequences." Journal of Neuroscience 45(3): pp. 123-145, 2020"

EXAMPLE OUTPUT:
{{"authors":["Taro Yamada","Jane Doe"],"title":"Cortical responses to tone sequences","journal":"Journal of Neuroscience","volume":"45","issue":"3","pages":"123-145","year":2020,"type":"journal"}}

NOW PARSE THIS:
{citation}

RULES:
- authors: ALL author names as an array (Japanese names are fine)
- title: the paper title ONLY
- year: 4-digit number
- type: one of journal/conference/book/review/presentation

Return ONLY the JSON object, nothing else:"""

    def _regex_fallback(self, citation: str) -> Dict[str, Any]:
        return {
            "title": extract_title_from_raw(citation),
            "authors": extract_authors_from_raw(citation),
            "year": extract_year(citation),
            "type": "journal",
        }

    def _parse_model_response(self, model_output: str) -> Optional[Dict[str, Any]]:
        """First JSON object in the output, after any `</think>` block"""
        if "</think>" in model_output:
            model_output = model_output.split("</think>")[-1]

        match = re.search(r"\{[\s\S]*\}", model_output)
        if not match:
            return None

        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            logger.debug(f"LLM returned malformed JSON: {e}")
            return None

        return parsed if isinstance(parsed, dict) else None

    def parse(self, citation: str) -> Dict[str, Any]:
        try:
            response = self.client.generate(
                model=self.model_name,
                prompt=self._create_parsing_prompt(citation),
                stream=False,
                options={"temperature": 0.1},
            )
            model_output = response["response"] or ""
        except Exception as e:
            logger.error(f"❌ Ollama error: {e}")
            return self._regex_fallback(citation)

        parsed = self._parse_model_response(model_output)
        if parsed is None:
            return self._regex_fallback(citation)

        authors = parsed.get("authors") if isinstance(parsed.get("authors"), list) else []
        if not authors:
            authors = extract_authors_from_raw(citation)

        # Guard against the model echoing the whole citation back as the title
        title = str(parsed.get("title") or "")
        if len(title) > 150 or "Proceedings" in title or re.match(r"^\(\d+\)", title):
            title = extract_title_from_raw(citation) or title

        year = parsed.get("year")
        if not isinstance(year, int) or isinstance(year, bool):
            year = extract_year(citation)

        result = {
            "title": title,
            "authors": [str(a) for a in authors],
            "year": year,
            "journal": parsed.get("journal"),
            "conference": parsed.get("conference"),
            "volume": str(parsed["volume"]) if parsed.get("volume") is not None else None,
            "issue": str(parsed["issue"]) if parsed.get("issue") is not None else None,
            "pages": str(parsed["pages"]) if parsed.get("pages") is not None else None,
            "doi": parsed.get("doi"),
            "type": parsed.get("type") or "journal",
        }
        return result


class SmartCitationParser:
    """Regex → CrossRef (when the text carries a DOI) → LLM → minimal record"""

    def __init__(self, crossref: Optional[CrossRefClient] = None, llm_parser: Optional[OllamaCitationParser] = None):
        self.crossref = crossref or CrossRefClient(throttle=RequestThrottle(settings.crossref_metadata_delay))
        self._llm_parser = llm_parser

    @property
    def llm_parser(self) -> OllamaCitationParser:
        if self._llm_parser is None:
            self._llm_parser = OllamaCitationParser()
        return self._llm_parser

    def _fetch_crossref(self, doi: str, cache: LookupCache) -> Optional[Dict[str, Any]]:
        key = LookupCache.make_key("doi", doi)
        if key in cache:
            return cache.get(key)

        work = self.crossref.get_work(doi)
        if work is not None:
            cache.set(key, work)
        elif self.crossref.last_error:
            logger.debug(f"CrossRef lookup for {doi} failed ({self.crossref.last_error}), not cached")
        else:
            cache.set_error(key, "not found")
        return work

    def parse(self, raw: str, category: str, cache: Optional[LookupCache] = None) -> Tuple[ParsedCitation, LookupCache]:
        cache = cache if cache is not None else LookupCache()
        doi = extract_doi(raw)
        arxiv = extract_arxiv(raw)

        fields = None
        source = None

        regex_result = parse_by_category(raw, category)
        if is_usable(regex_result):
            fields = regex_result
            if not fields.get("doi"):
                fields["doi"] = doi
            source = "regex"

        if fields is None and doi:
            work = self._fetch_crossref(doi, cache)
            if work:
                fields = crossref_work_to_publication(work)
                source = "crossref"

        if fields is None:
            fields = self.llm_parser.parse(raw)
            source = "ollama"

        if not fields:
            fields = {"title": raw[:200], "authors": [], "year": None, "type": "journal"}
            source = "failed"

        fields = {key: value for key, value in fields.items() if value is not None}
        fields["language"] = text_normalizer.detect_language(raw)
        fields["category"] = category
        fields["awards"] = extract_awards(raw)
        if arxiv:
            fields["arxiv"] = arxiv
        if doi and not fields.get("doi"):
            fields["doi"] = doi

        errors = validate_citation(fields)
        if errors:
            logger.debug(f"Flagged citation ({source}): {'; '.join(errors)}")

        citation = ParsedCitation.model_validate({
            **_typed_fields(fields),
            "_raw": raw,
            "_source": source,
            "_valid": not errors,
            "_errors": errors,
        })
        return citation, cache


TEXT_FIELDS = ("title", "journal", "conference", "volume", "issue", "pages", "doi", "url", "publisher", "location", "date", "type")


def _typed_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Coerce loosely-typed parser output so a flagged record can still be built"""
    data = dict(fields)

    for name in TEXT_FIELDS:
        value = data.get(name)
        if value is None:
            continue
        if isinstance(value, list):
            value = value[0] if value else None
        data[name] = str(value) if value is not None else None

    year = data.get("year")
    if year is not None and (not isinstance(year, int) or isinstance(year, bool)):
        data["year"] = int(year) if str(year).isdigit() else None

    for name in ("authors", "awards"):
        values = data.get(name) or []
        if not isinstance(values, list):
            values = [values]
        data[name] = [str(v).strip() for v in values if isinstance(v, (str, int)) and str(v).strip()]

    data["title"] = data.get("title") or ""
    return data
