import pytest

from labcontent.models.schemas import Publication
from labcontent.utils.api_clients import RequestThrottle
from labcontent.utils.content_store import ContentStore


@pytest.fixture
def no_delay():
    return RequestThrottle(0)


@pytest.fixture
def store(tmp_path):
    return ContentStore(tmp_path / "content")


@pytest.fixture
def make_record(store):
    def _make(publication_id, **fields):
        publication = Publication(id=publication_id, **fields)
        path = store.path_for(publication_id)
        store.write_publication(path, publication)
        return path
    return _make
