import datetime
from pathlib import Path
from typing import List, Optional, Dict, Any
from pydantic import BaseModel, ConfigDict, Field, field_validator


PUBLICATION_TYPES = [
    "journal", "conference", "book", "book-chapter", "review", "presentation",
    "poster", "thesis", "media", "award", "grant", "report", "patent", "preprint",
]


class Publication(BaseModel):
    """One publication record, persisted as content/publications/<id>.yaml"""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    title: str = ""
    authors: List[str] = Field(default_factory=list)
    year: Optional[int] = None
    type: Optional[str] = None
    journal: Optional[str] = None
    conference: Optional[str] = None
    volume: Optional[str] = None
    issue: Optional[str] = None
    pages: Optional[str] = None
    doi: Optional[str] = None
    url: Optional[str] = None
    arxiv: Optional[str] = None
    publisher: Optional[str] = None
    location: Optional[str] = None
    date: Optional[str] = None
    awards: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    abstract: Optional[str] = None
    language: Optional[str] = None
    category: Optional[str] = None

    @field_validator("volume", "issue", "pages", "date", mode="before")
    @classmethod
    def _numbers_as_text(cls, value):
        # YAML written by hand often leaves volume/issue/date unquoted
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        if isinstance(value, (datetime.date, datetime.datetime)):
            return value.isoformat()
        return value

    def to_record(self) -> Dict[str, Any]:
        """Serializable dict with unset optional fields and empty lists dropped"""
        data = self.model_dump(by_alias=True, exclude_none=True)
        return {key: value for key, value in data.items() if value != [] and value != ""}


class ParsedCitation(Publication):
    """A citation after ingestion, before it becomes a record file"""

    id: str = ""
    raw: str = Field("", alias="_raw")
    source: Optional[str] = Field(None, alias="_source")
    valid: bool = Field(True, alias="_valid")
    errors: List[str] = Field(default_factory=list, alias="_errors")
    batch_index: Optional[int] = Field(None, alias="_batchIndex")


class RecordFile(BaseModel):
    path: Path
    publication: Publication


class EmbeddingEntry(BaseModel):
    id: str
    embedding: List[float]


class DoiMatch(BaseModel):
    doi: str
    title: str
    score: float
    author_match: bool = False


class AbstractResult(BaseModel):
    source: str
    text: str


class DuplicateGroup(BaseModel):
    """Records whose normalized title keys are equal"""
    key: str
    files: List[RecordFile]


class MergeOutcome(BaseModel):
    key: str
    kept: Path
    deleted: List[Path] = []
    merged: Publication
    original_score: int
    merged_score: int
    added_authors: List[str] = []
    added_awards: List[str] = []


class LabelAssignment(BaseModel):
    id: str
    labels: Dict[str, List[str]] = {}
    scores: Dict[str, Dict[str, float]] = {}


class CitationBatch(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    batch_id: int = Field(0, alias="batchId")
    category: str
    category_title: str = Field("", alias="categoryTitle")
    items: List[Any] = []


class ParseProgress(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    completed_batches: List[str] = Field(default_factory=list, alias="completedBatches")
    stats: Dict[str, int] = Field(default_factory=lambda: {
        "total": 0, "fromRegex": 0, "fromCrossRef": 0, "fromOllama": 0, "valid": 0, "invalid": 0,
    })


class LegacyEntry(BaseModel):
    """One numbered entry of a section on the legacy publication page"""
    number: int
    raw: str
    title: Optional[str] = None


class SectionReport(BaseModel):
    section: str
    header: str = ""
    legacy_count: int = 0
    record_count: int = 0
    matched: List[str] = []
    missing: List[str] = []
    extra: List[str] = []
