import json

from labcontent.cli import cleanup_authors, cluster, convert, dedup, embed, report_duplicates, search, verify_category
from tests.helpers import FakeOllama


def content_args(store, *extra):
    return ["--content-dir", str(store.root), "--log-level", "WARNING", *extra]


def test_dedup_dry_run_keeps_files(store, make_record):
    make_record("a", title="Neural coding in rats", authors=["A Smith"])
    make_record("b", title="Neural coding in rats", authors=["B Lee"])

    assert dedup.main(content_args(store, "--dry-run")) == 0
    assert len(store.publication_files()) == 2

    assert dedup.main(content_args(store, "--matcher", "exact")) == 0
    assert len(store.publication_files()) == 1


def test_convert(tmp_path, store):
    parsed = tmp_path / "parsed"
    parsed.mkdir()
    (parsed / "batch-0-parsed.json").write_text(json.dumps({
        "category": "conference",
        "items": [{"title": "Spiking networks", "authors": ["A Smith"], "year": 2019}],
    }), encoding="utf-8")

    assert convert.main(content_args(store, "--parsed-dir", str(parsed))) == 0
    assert [p.stem for p in store.publication_files()] == ["2019-a-spiking-networks"]


def test_cleanup_and_report_run_on_empty_store(store):
    assert cleanup_authors.main(content_args(store)) == 0
    assert report_duplicates.main(content_args(store, "--prefix", "15")) == 0


def test_keyword_only_search(tmp_path, store, make_record):
    make_record("a", title="Auditory cortex")

    assert search.main(content_args(store, "auditory", "--keyword-only", "--embeddings", str(tmp_path / "none.json"))) == 0


def test_cluster(tmp_path, store, make_record):
    make_record("a", title="Auditory cortex")
    make_record("b", title="Reservoir computing")
    embeddings = tmp_path / "embeddings.json"
    embeddings.write_text(json.dumps([
        {"id": "a", "embedding": [1.0, 0.0]},
        {"id": "b", "embedding": [0.0, 1.0]},
    ]), encoding="utf-8")

    assert cluster.main(content_args(store, "--clusters", "2", "--seed", "1", "--embeddings", str(embeddings))) == 0


def test_embed_reports_missing_ollama(monkeypatch, tmp_path, store, make_record):
    make_record("a", title="Auditory cortex")
    monkeypatch.setattr("labcontent.services.embeddings.ollama.Client", lambda host: FakeOllama(fail=True))

    assert embed.main(content_args(store, "--output", str(tmp_path / "embeddings.json"))) == 1
    assert not (tmp_path / "embeddings.json").exists()


def test_verify_category(tmp_path, store, make_record):
    batches = tmp_path / "batches"
    batches.mkdir()
    (batches / "batch-0.json").write_text(json.dumps({
        "category": "conference",
        "items": ['(1) A. Smith: "Spiking networks." Proceedings of IEEE EMBC, 2019'],
    }), encoding="utf-8")
    make_record("a", title="Spiking networks", type="conference")

    assert verify_category.main(content_args(store, "all", "--batches-dir", str(batches))) == 0
    assert verify_category.main(content_args(store, "conference", "--batches-dir", str(tmp_path / "none"))) == 1
