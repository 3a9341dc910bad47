import pytest
import yaml

from labcontent.exceptions import ContentStoreError
from labcontent.models.schemas import Publication
from labcontent.utils.content_store import allocate_id, generate_id


def test_publication_round_trip(store):
    publication = Publication(
        id="2020-takahashi-deviance-detection",
        title="Deviance detection in rat auditory cortex",
        authors=["Hirokazu Takahashi", "高橋宏知"],
        year=2020,
        type="journal",
        journal="Cerebral Cortex",
        volume="30",
        pages="1-12",
        awards=["Best Paper Award"],
    )
    path = store.path_for(publication.id)
    store.write_publication(path, publication)

    assert store.read_publication(path) == publication

    text = path.read_text(encoding="utf-8")
    assert "year: 2020\n" in text
    assert "高橋宏知" in text
    assert "abstract" not in text


def test_unknown_fields_are_preserved(store):
    path = store.path_for("x")
    path.parent.mkdir(parents=True)
    path.write_text("id: x\ntitle: T\nfeatured: true\n", encoding="utf-8")

    publication = store.read_publication(path)
    store.write_publication(path, publication)

    assert yaml.safe_load(path.read_text(encoding="utf-8"))["featured"] is True


def test_hand_written_numbers_and_dates_become_text(store):
    path = store.path_for("x")
    path.parent.mkdir(parents=True)
    path.write_text("id: x\nvolume: 12\nissue: 3\ndate: 2020-05-01\nyear: 2020\n", encoding="utf-8")

    publication = store.read_publication(path)

    assert publication.volume == "12"
    assert publication.issue == "3"
    assert publication.date == "2020-05-01"
    assert publication.year == 2020


def test_unreadable_and_id_less_files_are_skipped(store, make_record):
    make_record("good", title="Good")
    (store.publications_dir / "broken.yaml").write_text("id: [unclosed\n", encoding="utf-8")
    (store.publications_dir / "noid.yaml").write_text("title: No id\n", encoding="utf-8")
    (store.publications_dir / "list.yaml").write_text("- id: x\n", encoding="utf-8")

    ids = [publication.id for _, publication in store.iter_publications()]

    assert ids == ["good"]


def test_publications_are_listed_in_file_name_order(store, make_record):
    make_record("b")
    make_record("a")

    assert [p.id for _, p in store.load_publications()] == ["a", "b"]


def test_missing_directory_yields_nothing(store):
    assert store.load_publications() == []
    assert store.load_collection("members/faculty") == []
    assert store.load_news() == []


def test_markdown_front_matter_round_trip(store):
    path = store.root / "news" / "2024-01-01-award.md"
    store.write_markdown(path, {"id": "n1", "date": "2024-01-01", "title": "受賞"}, "Body text")

    front_matter, body = store.read_markdown(path)

    assert front_matter == {"id": "n1", "date": "2024-01-01", "title": "受賞"}
    assert body == "Body text"


def test_markdown_without_front_matter(store):
    path = store.root / "news" / "plain.md"
    path.parent.mkdir(parents=True)
    path.write_text("Just text", encoding="utf-8")

    assert store.read_markdown(path) == ({}, "Just text")


def test_news_sorted_newest_first(store):
    store.write_markdown(store.root / "news" / "a.md", {"id": "old", "date": "2023-01-01"}, "")
    store.write_markdown(store.root / "news" / "b.md", {"id": "new", "date": "2024-06-01"}, "Hello")

    news = store.load_news()

    assert [item["id"] for item in news] == ["new", "old"]
    assert news[0]["content"] == "Hello"


def test_collection_accepts_lists_and_single_documents(store):
    directory = store.root / "members" / "faculty"
    directory.mkdir(parents=True)
    (directory / "a.yaml").write_text("- name: A\n- name: B\n", encoding="utf-8")
    (directory / "c.yaml").write_text("name: C\n", encoding="utf-8")

    assert [m["name"] for m in store.load_collection("members/faculty")] == ["A", "B", "C"]


def test_generate_id_latin():
    assert generate_id(2020, ["Hirokazu Takahashi"], "Neural coding of tones") == "2020-hirokazu-neural-coding-of"


def test_generate_id_japanese_author_and_title():
    assert generate_id(2019, ["高橋宏知"], "聴覚野の研究", index=4) == "2019-高橋-pub-4"


def test_generate_id_defaults():
    assert generate_id(None, [], "") == "2000-unknown-pub-0"


def test_generate_id_is_capped():
    title = "Supercalifragilisticexpialidocious antidisestablishmentarianism pneumonoultramicroscopic"
    assert len(generate_id(2020, ["Somebody"], title)) == 60


def test_allocate_id_suffixes():
    used = {"2020-a-b"}

    assert allocate_id("2020-a-b", used) == "2020-a-b-1"
    assert allocate_id("2020-a-b", used) == "2020-a-b-2"
    assert allocate_id("2021-c-d", used) == "2021-c-d"
    assert {"2020-a-b-1", "2020-a-b-2", "2021-c-d"} <= used


def test_non_mapping_record_raises(store):
    path = store.path_for("list")
    path.parent.mkdir(parents=True)
    path.write_text("- id: x\n", encoding="utf-8")

    with pytest.raises(ContentStoreError):
        store.read_publication(path)
