import pytest

from labcontent.services.citation_parser import (
    OllamaCitationParser,
    SmartCitationParser,
    extract_arxiv,
    extract_awards,
    extract_doi,
    validate_citation,
)
from labcontent.utils.api_clients import CrossRefClient, RequestThrottle
from labcontent.utils.category_parsers import is_usable, parse_by_category
from labcontent.utils.lookup_cache import LookupCache
from tests.helpers import FakeOllama, json_response, mock_client


EN_CITATION = '(1) Jane Doe, John Roe: "Cortical responses to tones." Journal of Neuroscience 45(3): pp. 123-145, 2020'
JA_CITATION = "(1) 高橋宏知，白松知世：「聴覚皮質の研究」，日本音響学会誌 76(3): pp.120-125, 2020"
CONFERENCE_CITATION = (
    '(2) A. Smith, B. Lee: "Spiking networks." Proceedings of IEEE EMBC: pp. 10-13, 2019 '
    "(Berlin, 2019年7月23日) [Best Paper Award]"
)
ORAL_CITATION = "(3) 高橋宏知：「脳とAI」，日本神経科学大会 (東京，2021年5月) [招待講演]"
BOOK_CITATION = "(4) 高橋宏知：「メカ屋のための脳科学入門」，日刊工業新聞社，東京，2016 (ISBN 978-4-526-07464-0)"

CROSSREF_WORK = {
    "title": ["A Title"],
    "author": [{"given": "A", "family": "Smith"}],
    "published-print": {"date-parts": [[2019]]},
    "container-title": ["J Neuro"],
    "type": "journal-article",
    "DOI": "10.1234/ABCD.5678",
}


def no_network(request):
    raise AssertionError(f"unexpected request {request.url}")


def smart_parser(handler=no_network, ollama=None):
    return SmartCitationParser(
        crossref=CrossRefClient(mock_client(handler), RequestThrottle(0)),
        llm_parser=OllamaCitationParser(client=ollama or FakeOllama(fail=True)),
    )


def test_original_en_regex():
    result = parse_by_category(EN_CITATION, "original_en")

    assert result["authors"] == ["Jane Doe", "John Roe"]
    assert result["title"] == "Cortical responses to tones"
    assert result["journal"] == "Journal of Neuroscience"
    assert (result["volume"], result["issue"], result["pages"]) == ("45", "3", "123-145")
    assert result["year"] == 2020


def test_original_ja_regex():
    result = parse_by_category(JA_CITATION, "original_ja")

    assert result["authors"] == ["高橋宏知", "白松知世"]
    assert result["title"] == "聴覚皮質の研究"
    assert result["journal"] == "日本音響学会誌"
    assert result["pages"] == "120-125"
    assert result["year"] == 2020


def test_conference_regex():
    result = parse_by_category(CONFERENCE_CITATION, "conference")

    assert result["conference"] == "Proceedings of IEEE EMBC"
    assert result["location"] == "Berlin"
    assert result["year"] == 2019
    assert result["awards"] == ["Best Paper Award"]
    assert result["type"] == "conference"


def test_oral_regex():
    result = parse_by_category(ORAL_CITATION, "oral")

    assert result["authors"] == ["高橋宏知"]
    assert result["title"] == "脳とAI"
    assert result["conference"] == "日本神経科学大会"
    assert result["location"] == "東京"
    assert result["year"] == 2021
    assert result["awards"] == ["招待講演"]


def test_book_regex():
    result = parse_by_category(BOOK_CITATION, "book")

    assert result["publisher"] == "日刊工業新聞社"
    assert result["year"] == 2016
    assert result["type"] == "book"


def test_review_is_japanese_layout_with_review_type():
    assert parse_by_category(JA_CITATION + " [招待論文]", "review")["awards"] == ["招待論文"]
    assert parse_by_category(JA_CITATION, "review")["type"] == "review"


def test_unknown_category_and_unusable_results():
    assert parse_by_category(EN_CITATION, "patent") is None
    assert parse_by_category("no structure at all", "original_en") is None
    assert not is_usable({"title": "T", "authors": []})
    assert is_usable({"title": "T", "authors": ["A"]})


def test_extractors():
    assert extract_doi("Some paper, doi: 10.1234/abc.5.") == "10.1234/abc.5"
    assert extract_doi("see https://doi.org/10.5555/xyz)") == "10.5555/xyz"
    assert extract_doi("no identifier") is None
    assert extract_arxiv("arXiv:2101.12345") == "2101.12345"
    assert extract_awards("Talk [Best Paper Award] [12]") == ["Best Paper Award"]


def test_validate_citation():
    assert validate_citation({"title": "T", "authors": ["A"], "type": "journal", "year": 2020}) == []

    errors = validate_citation({"title": " ", "authors": [], "type": "article", "year": 1800, "doi": "abc"})

    assert "Missing or empty title" in errors
    assert "Missing or empty authors" in errors
    assert "Invalid type: article" in errors
    assert "Invalid year: 1800" in errors
    assert "Invalid DOI format: abc" in errors


def test_llm_output_after_think_block_is_used():
    ollama = FakeOllama(
        response='<think>maybe {"x": 1}</think>{"authors": ["A B"], "title": "T", "year": 2021, "type": "journal", "volume": 12}'
    )

    result = OllamaCitationParser(client=ollama).parse("(1) A B: T")

    assert result["title"] == "T"
    assert result["authors"] == ["A B"]
    assert result["year"] == 2021
    assert result["volume"] == "12"


def test_llm_without_json_falls_back_to_regex():
    ollama = FakeOllama(response="I cannot parse this")

    result = OllamaCitationParser(client=ollama).parse("(1) 高橋宏知，白松知世：「聴覚皮質の研究」，日本音響学会誌 2020年")

    assert result["title"] == "聴覚皮質の研究"
    assert result["authors"] == ["高橋宏知", "白松知世"]
    assert result["year"] == 2020


def test_llm_echoing_the_citation_gets_title_from_raw():
    raw = '(1) Jane Doe: "Short title" Proceedings of Something'
    ollama = FakeOllama(response='{"authors": ["Jane Doe"], "title": "(1) Jane Doe: Short title Proceedings of Something"}')

    assert OllamaCitationParser(client=ollama).parse(raw)["title"] == "Short title"


def test_regex_path_skips_network_and_llm():
    ollama = FakeOllama(fail=True)

    citation, _ = smart_parser(ollama=ollama).parse(EN_CITATION, "original_en")

    assert citation.source == "regex"
    assert citation.valid
    assert citation.errors == []
    assert citation.type == "journal"
    assert citation.language == "en"
    assert citation.category == "original_en"
    assert citation.raw == EN_CITATION
    assert ollama.prompts == []


def test_doi_in_text_resolves_through_crossref_once():
    calls = []

    def handler(request):
        calls.append(request.url.path)
        return json_response({"message": CROSSREF_WORK})

    parser = smart_parser(handler)
    raw = "(1) Something unstructured doi: 10.1234/abcd.5678"

    citation, cache = parser.parse(raw, "unknown")
    again, cache = parser.parse(raw, "unknown", cache)

    assert citation.source == "crossref"
    assert citation.title == "A Title"
    assert citation.authors == ["A Smith"]
    assert citation.year == 2019
    assert citation.journal == "J Neuro"
    assert citation.doi == "10.1234/abcd.5678"
    assert citation.valid
    assert again.title == "A Title"
    assert len(calls) == 1
    assert LookupCache.make_key("doi", "10.1234/abcd.5678") in cache


def test_crossref_miss_falls_through_to_llm():
    ollama = FakeOllama(response='{"authors": ["A B"], "title": "From model", "year": 2020, "type": "journal"}')
    parser = smart_parser(lambda request: json_response({}, status_code=404), ollama)

    citation, _ = parser.parse("(1) Unstructured doi: 10.1234/missing", "unknown")

    assert citation.source == "ollama"
    assert citation.title == "From model"
    assert citation.doi == "10.1234/missing"


def test_unreachable_llm_still_yields_a_record():
    citation, _ = smart_parser().parse('(1) Jane Doe: "Some title." Somewhere', "unknown")

    assert citation.source == "ollama"
    assert citation.title == "Some title."
    assert citation.authors == ["Jane Doe"]


def test_bad_model_output_is_flagged_not_raised():
    ollama = FakeOllama(response='{"title": "", "authors": [], "type": "article", "year": "soon"}')

    citation, _ = smart_parser(ollama=ollama).parse("(1) garbage text", "unknown")

    assert not citation.valid
    assert "Missing or empty title" in citation.errors
    assert "Invalid type: article" in citation.errors
    assert citation.raw == "(1) garbage text"


@pytest.mark.parametrize("category", ["original_ja", "review"])
def test_japanese_citation_language(category):
    citation, _ = smart_parser().parse(JA_CITATION, category)

    assert citation.language == "ja"
    assert citation.source == "regex"


def test_crossref_outage_is_retried_on_the_next_run(tmp_path):
    responses = [json_response({}, status_code=503), json_response({"message": CROSSREF_WORK})]
    parser = smart_parser(lambda request: responses.pop(0), FakeOllama(fail=True))
    raw = "(1) Something unstructured doi: 10.1234/abcd.5678"

    first, cache = parser.parse(raw, "unknown")
    cache.save(tmp_path / "cache.json")
    second, _ = parser.parse(raw, "unknown", LookupCache.load(tmp_path / "cache.json"))

    assert first.source == "ollama"
    assert LookupCache.make_key("doi", "10.1234/abcd.5678") not in cache
    assert second.source == "crossref"
    assert second.title == "A Title"
    assert responses == []


def test_crossref_not_found_is_remembered():
    calls = []

    def handler(request):
        calls.append(request.url.path)
        return json_response({}, status_code=404)

    parser = smart_parser(handler, FakeOllama(fail=True))
    raw = "(1) Unstructured doi: 10.1234/missing"

    _, cache = parser.parse(raw, "unknown")
    parser.parse(raw, "unknown", cache)

    assert len(calls) == 1
