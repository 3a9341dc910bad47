import re
import time
import xml.etree.ElementTree as ET
from typing import List, Dict, Any, Optional

import httpx
from loguru import logger

from ..config import settings


def make_http_client(timeout: Optional[float] = None) -> httpx.Client:
    """Shared client for one pipeline run"""
    return httpx.Client(
        timeout=timeout or settings.api_timeout,
        headers={"User-Agent": settings.user_agent, "Accept": "application/json"},
        follow_redirects=True,
    )


class RequestThrottle:
    """Fixed minimum delay between consecutive outgoing requests"""

    def __init__(self, delay: float, sleep=time.sleep, clock=time.monotonic):
        self.delay = delay
        self._sleep = sleep
        self._clock = clock
        self._last_request = None

    def wait(self):
        if self._last_request is not None and self.delay > 0:
            remaining = self.delay - (self._clock() - self._last_request)
            if remaining > 0:
                self._sleep(remaining)
        self._last_request = self._clock()


class BaseAPIClient:
    api_name = "API"

    def __init__(self, base_url: str, client: Optional[httpx.Client] = None, throttle: Optional[RequestThrottle] = None):
        self.base_url = base_url.rstrip("/")
        self.client = client or make_http_client()
        self.throttle = throttle or RequestThrottle(0)
        # Set when the last request failed (transport error, 5xx, bad JSON); a 404 is an answer
        self.last_error: Optional[str] = None

    def _get(self, url: str, params: Optional[Dict[str, Any]] = None, headers: Optional[Dict[str, str]] = None) -> Optional[httpx.Response]:
        self.last_error = None
        self.throttle.wait()
        try:
            response = self.client.get(url, params=params, headers=headers)
        except httpx.HTTPError as e:
            logger.warning(f"{self.api_name}: request failed - {e}")
            self.last_error = str(e) or type(e).__name__
            return None

        if response.status_code == 404:
            logger.debug(f"{self.api_name}: not found {url}")
            return None

        if response.status_code != 200:
            logger.warning(f"{self.api_name}: HTTP {response.status_code} for {url}")
            self.last_error = f"HTTP {response.status_code}"
            return None

        return response

    def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None, headers: Optional[Dict[str, str]] = None) -> Optional[Dict[str, Any]]:
        response = self._get(url, params=params, headers=headers)
        if response is None:
            return None

        try:
            return response.json()
        except ValueError as e:
            logger.warning(f"{self.api_name}: malformed JSON - {e}")
            self.last_error = "malformed JSON"
            return None


class CrossRefClient(BaseAPIClient):
    api_name = "CrossRef"

    def __init__(self, client: Optional[httpx.Client] = None, throttle: Optional[RequestThrottle] = None):
        super().__init__(settings.crossref_base_url, client, throttle)

    def search_by_title(self, title: str, year: Optional[int] = None, rows: int = 3, year_window: int = 1) -> List[Dict[str, Any]]:
        """Ranked candidate works for a free-text title, optionally within a publication-year window"""
        params = {"query.title": title, "rows": rows}
        if year:
            params["filter"] = f"from-pub-date:{year - year_window},until-pub-date:{year + year_window}"

        data = self._get_json(f"{self.base_url}/works", params=params)
        if not data:
            return []

        return data.get("message", {}).get("items", []) or []

    def search_by_author_journal(
        self,
        author: str,
        journal: str,
        year: Optional[int] = None,
        rows: int = 10,
        year_window: int = 1,
    ) -> List[Dict[str, Any]]:
        """Works by an author surname in a container title, for records whose own title CrossRef cannot match"""
        params = {"query.author": author, "query.container-title": journal, "rows": rows}
        if year:
            params["filter"] = f"from-pub-date:{year - year_window},until-pub-date:{year + year_window}"

        data = self._get_json(f"{self.base_url}/works", params=params)
        if not data:
            return []

        return data.get("message", {}).get("items", []) or []

    def get_work(self, doi: str) -> Optional[Dict[str, Any]]:
        """CrossRef `message` for a DOI"""
        data = self._get_json(f"{self.base_url}/works/{doi}")
        if not data or "message" not in data:
            return None
        return data["message"]

    def get_abstract(self, doi: str) -> Optional[str]:
        work = self.get_work(doi)
        if not work or not work.get("abstract"):
            return None
        return strip_markup(work["abstract"])


class OpenAlexClient(BaseAPIClient):
    api_name = "OpenAlex"

    def __init__(self, client: Optional[httpx.Client] = None, throttle: Optional[RequestThrottle] = None):
        super().__init__(settings.openalex_base_url, client, throttle)

    def get_abstract(self, doi: str) -> Optional[str]:
        data = self._get_json(f"{self.base_url}/works/doi:{doi}")
        if not data or not data.get("abstract_inverted_index"):
            return None
        return self._convert_abstract_index_to_text(data["abstract_inverted_index"])

    def _convert_abstract_index_to_text(self, abstract_index: Dict[str, List[int]]) -> str:
        """Convert OpenAlex abstract_inverted_index to readable text"""
        word_positions = []
        for word, positions in abstract_index.items():
            for pos in positions:
                word_positions.append((pos, word))

        word_positions.sort(key=lambda x: x[0])

        return " ".join([word for _, word in word_positions])


class SemanticScholarClient(BaseAPIClient):
    api_name = "SemanticScholar"

    def __init__(self, client: Optional[httpx.Client] = None, throttle: Optional[RequestThrottle] = None):
        super().__init__(settings.semantic_scholar_base_url, client, throttle)
        self.headers = {}
        if settings.semantic_scholar_api_key:
            self.headers["x-api-key"] = settings.semantic_scholar_api_key

    def get_abstract(self, doi: str) -> Optional[str]:
        data = self._get_json(
            f"{self.base_url}/paper/DOI:{doi}",
            params={"fields": "abstract"},
            headers=self.headers,
        )
        if not data:
            return None
        return data.get("abstract") or None


class PubMedClient(BaseAPIClient):
    """PubMed E-utilities: DOI -> PMID lookup, then abstract fetch"""

    api_name = "PubMed"

    def __init__(self, client: Optional[httpx.Client] = None, throttle: Optional[RequestThrottle] = None):
        super().__init__(settings.pubmed_base_url, client, throttle)

    def find_pmid(self, doi: str) -> Optional[str]:
        data = self._get_json(
            f"{self.base_url}/esearch.fcgi",
            params={"db": "pubmed", "term": f"{doi}[doi]", "retmode": "json"},
        )
        if not data:
            return None

        pmids = data.get("esearchresult", {}).get("idlist", [])
        return pmids[0] if pmids else None

    def get_abstract(self, doi: str) -> Optional[str]:
        pmid = self.find_pmid(doi)
        if not pmid:
            return None

        response = self._get(
            f"{self.base_url}/efetch.fcgi",
            params={"db": "pubmed", "id": pmid, "rettype": "abstract", "retmode": "xml"},
        )
        if response is None:
            return None

        return self._parse_abstract_xml(response.text)

    def _parse_abstract_xml(self, xml_content: str) -> Optional[str]:
        try:
            root = ET.fromstring(xml_content)
        except ET.ParseError as e:
            logger.debug(f"Error parsing PubMed XML: {e}")
            return None

        sections = []
        for element in root.findall(".//Abstract/AbstractText"):
            text = "".join(element.itertext()).strip()
            if not text:
                continue
            label = element.get("Label")
            sections.append(f"{label}: {text}" if label else text)

        if not sections:
            return None
        return re.sub(r"\s+", " ", " ".join(sections)).strip()


def strip_markup(text: str) -> str:
    """Remove JATS/HTML tags and collapse whitespace"""
    return re.sub(r"\s+", " ", re.sub(r"<[^>]+>", "", text)).strip()
