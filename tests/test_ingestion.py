import json

from loguru import logger

from labcontent.services.citation_parser import OllamaCitationParser, SmartCitationParser
from labcontent.services.ingestion import (
    BatchParser,
    convert_to_records,
    language_tags,
    map_category_to_type,
    normalize_parsed,
)
from labcontent.utils.api_clients import CrossRefClient, RequestThrottle
from tests.helpers import FakeOllama, mock_client


EN_CITATION = '(1) Jane Doe, John Roe: "Cortical responses to tones." Journal of Neuroscience 45(3): pp. 123-145, 2020'


def write_json(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")


def offline_parser():
    def no_network(request):
        raise AssertionError(f"unexpected request {request.url}")

    return SmartCitationParser(
        crossref=CrossRefClient(mock_client(no_network), RequestThrottle(0)),
        llm_parser=OllamaCitationParser(client=FakeOllama(fail=True)),
    )


def test_batch_parser_resumes_after_completed_batches(tmp_path):
    batches, parsed = tmp_path / "batches", tmp_path / "parsed"
    write_json(batches / "batch-0.json", {"batchId": 0, "category": "original_en", "items": [EN_CITATION]})
    write_json(batches / "batch-1.json", {
        "batchId": 1,
        "category": "original_en",
        "categoryTitle": "Original Papers (English)",
        "items": [{"raw": EN_CITATION}],
    })
    write_json(parsed / "progress.json", {"completedBatches": ["batch-0.json"]})

    progress = BatchParser(offline_parser(), batches, parsed).run()

    assert progress.completed_batches == ["batch-0.json", "batch-1.json"]
    assert progress.stats["total"] == 1
    assert progress.stats["fromRegex"] == 1
    assert progress.stats["valid"] == 1
    assert not (parsed / "batch-0-parsed.json").exists()
    assert (parsed / "crossref-cache.json").exists()

    output = json.loads((parsed / "batch-1-parsed.json").read_text(encoding="utf-8"))
    assert output["batchId"] == 1
    assert output["categoryTitle"] == "Original Papers (English)"
    item = output["items"][0]
    assert item["title"] == "Cortical responses to tones"
    assert item["_source"] == "regex"
    assert item["_valid"] is True
    assert item["_batchIndex"] == 0

    saved = json.loads((parsed / "progress.json").read_text(encoding="utf-8"))
    assert saved["completedBatches"] == ["batch-0.json", "batch-1.json"]


def test_batch_parser_limit(tmp_path):
    batches, parsed = tmp_path / "batches", tmp_path / "parsed"
    for batch_id in range(3):
        write_json(batches / f"batch-{batch_id}.json", {"category": "original_en", "items": [EN_CITATION]})

    progress = BatchParser(offline_parser(), batches, parsed).run(limit=2)

    assert progress.completed_batches == ["batch-0.json", "batch-1.json"]


def test_map_category_to_type():
    assert map_category_to_type("oral") == "presentation"
    assert map_category_to_type("ORIGINAL_EN", "conference") == "journal"
    assert map_category_to_type("unknown", "arxiv") == "preprint"
    assert map_category_to_type("unknown", "book") == "book"
    assert map_category_to_type("unknown") == "journal"


def test_normalize_parsed():
    item = {
        "title": "「Cortical responses」",
        "authors": ["Jane Doe"],
        "pages": "pp. 12-15",
        "doi": "https://doi.org/10.1/ABC",
        "awards": ["12", "Best Paper"],
        "journal": "None",
        "_raw": "raw text",
        "_valid": True,
    }

    data = normalize_parsed(item, "oral")

    assert data["title"] == "Cortical responses"
    assert data["pages"] == "12-15"
    assert data["doi"] == "10.1/abc"
    assert data["awards"] == ["Best Paper"]
    assert data["type"] == "presentation"
    assert "journal" not in data
    assert "_raw" not in data


def test_normalize_parsed_drops_invalid_doi():
    assert "doi" not in normalize_parsed({"title": "T", "doi": "n/a"}, "original_en")


def test_language_tags():
    assert language_tags("聴覚野の研究") == ["japanese"]
    assert language_tags("Auditory cortex") == ["english"]


def test_convert_to_records(tmp_path, store, make_record):
    make_record("2020-jane-cortical-responses-to", title="Existing")
    valid = {"title": "Cortical responses to tones", "authors": ["Jane Doe"], "year": 2020, "_valid": True}
    write_json(tmp_path / "parsed" / "batch-0-parsed.json", {
        "category": "original_en",
        "items": [
            valid,
            dict(valid, pages="pp. 1-2"),
            dict(valid, year=1985),
            dict(valid, year=None),
            dict(valid, _valid=False),
            dict(valid, authors=[]),
        ],
    })

    stats = convert_to_records(tmp_path / "parsed", store)

    assert stats == {"created": 2, "skipped_year": 2, "skipped_invalid": 2}
    assert [path.stem for path in store.publication_files()] == [
        "2020-jane-cortical-responses-to",
        "2020-jane-cortical-responses-to-1",
        "2020-jane-cortical-responses-to-2",
    ]

    first = store.read_publication(store.path_for("2020-jane-cortical-responses-to-1"))
    assert first.type == "journal"
    assert first.tags == ["english"]
    assert store.read_publication(store.path_for("2020-jane-cortical-responses-to")).title == "Existing"
    assert store.read_publication(store.path_for("2020-jane-cortical-responses-to-2")).pages == "1-2"


def test_converting_twice_warns_about_existing_records(tmp_path, store):
    item = {"title": "Cortical responses to tones", "authors": ["Jane Doe"], "year": 2020}
    write_json(tmp_path / "parsed" / "batch-0-parsed.json", {"category": "original_en", "items": [item]})
    messages = []
    handler_id = logger.add(messages.append, level="WARNING", format="{message}")
    try:
        convert_to_records(tmp_path / "parsed", store)
        assert messages == []

        convert_to_records(tmp_path / "parsed", store)
    finally:
        logger.remove(handler_id)

    assert len(messages) == 1
    assert "1 records already in" in messages[0]
    assert len(store.publication_files()) == 2


def test_convert_dry_run_writes_nothing(tmp_path, store):
    write_json(tmp_path / "parsed" / "batch-0-parsed.json", {
        "category": "oral",
        "items": [{"title": "脳とAI", "authors": ["高橋宏知"], "year": 2021}],
    })

    stats = convert_to_records(tmp_path / "parsed", store, dry_run=True)

    assert stats["created"] == 1
    assert store.publication_files() == []


def test_parse_then_convert(tmp_path, store):
    batches, parsed = tmp_path / "batches", tmp_path / "parsed"
    write_json(batches / "batch-0.json", {"category": "original_en", "items": [EN_CITATION]})

    BatchParser(offline_parser(), batches, parsed).run()
    stats = convert_to_records(parsed, store)

    assert stats["created"] == 1
    [(_, publication)] = store.load_publications()
    assert publication.id == "2020-jane-cortical-responses-to"
    assert publication.authors == ["Jane Doe", "John Roe"]
    assert publication.journal == "Journal of Neuroscience"
    assert publication.pages == "123-145"
