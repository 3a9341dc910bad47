"""
File-backed content store: one YAML file per publication, YAML collections
for other categories and Markdown files with YAML front matter for news
"""
import re
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

import yaml
from loguru import logger
from pydantic import ValidationError

from ..config import settings
from ..exceptions import ContentStoreError
from ..models.schemas import Publication
from .text_normalizer import JAPANESE_CHARS


class ContentStore:
    """Reads and writes records under a content root such as `content/`"""

    def __init__(self, root: Optional[Path] = None):
        self.root = Path(root or settings.content_dir)

    @property
    def publications_dir(self) -> Path:
        return self.root / "publications"

    def path_for(self, publication_id: str) -> Path:
        return self.publications_dir / f"{publication_id}.yaml"

    def publication_files(self) -> List[Path]:
        if not self.publications_dir.exists():
            return []
        return sorted(self.publications_dir.glob("*.yaml"))

    def iter_publications(self) -> Iterator[Tuple[Path, Publication]]:
        """(path, record) for every readable publication file, in file-name order"""
        for path in self.publication_files():
            try:
                publication = self.read_publication(path)
            except (yaml.YAMLError, ValidationError, ContentStoreError) as e:
                logger.warning(f"Skipping unreadable record {path.name}: {e}")
                continue
            if publication is not None:
                yield path, publication

    def load_publications(self) -> List[Tuple[Path, Publication]]:
        return list(self.iter_publications())

    def read_publication(self, path: Path) -> Optional[Publication]:
        data = self._read_yaml(path)
        if data is not None and not isinstance(data, dict):
            raise ContentStoreError(f"{Path(path).name} does not contain a mapping")
        if not data or not data.get("id"):
            return None
        return Publication.model_validate(data)

    def write_publication(self, path: Path, publication: Publication):
        self._write_yaml(path, publication.to_record())

    def delete(self, path: Path):
        Path(path).unlink()
        logger.debug(f"Deleted {path}")

    def load_collection(self, category: str) -> List[Dict[str, Any]]:
        """All YAML documents under a category directory (e.g. `members/faculty`, `media/books`)"""
        directory = self.root / category
        if not directory.exists():
            return []

        items = []
        for path in sorted(directory.glob("*.yaml")):
            try:
                data = self._read_yaml(path)
            except yaml.YAMLError as e:
                logger.warning(f"Skipping unreadable file {path}: {e}")
                continue
            if isinstance(data, list):
                items.extend(data)
            elif data:
                items.append(data)
        return items

    def read_markdown(self, path: Path) -> Tuple[Dict[str, Any], str]:
        """Split a Markdown file into (front matter, body)"""
        text = Path(path).read_text(encoding="utf-8-sig")
        lines = text.splitlines()

        i = 0
        while i < len(lines) and lines[i].strip() == "":
            i += 1

        if i >= len(lines) or lines[i].strip() != "---":
            return {}, text

        i += 1
        front_lines = []
        while i < len(lines) and lines[i].strip() not in ("---", "..."):
            front_lines.append(lines[i])
            i += 1

        if i >= len(lines):
            return {}, text

        body = "\n".join(lines[i + 1:]).lstrip("\n")
        front_matter = yaml.safe_load("\n".join(front_lines)) or {}
        return front_matter, body

    def write_markdown(self, path: Path, front_matter: Dict[str, Any], body: str = ""):
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        front = yaml.safe_dump(
            front_matter,
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=False,
            width=120,
        ).strip()
        path.write_text(f"---\n{front}\n---\n{body}", encoding="utf-8")

    def load_news(self) -> List[Dict[str, Any]]:
        """News items from `news/*.md`, newest first"""
        directory = self.root / "news"
        if not directory.exists():
            return []

        items = []
        for path in sorted(directory.glob("*.md")):
            front_matter, body = self.read_markdown(path)
            item = dict(front_matter)
            if body:
                item["content"] = body
            items.append(item)

        return sorted(items, key=lambda item: str(item.get("date", "")), reverse=True)

    def _read_yaml(self, path: Path) -> Any:
        with Path(path).open(encoding="utf-8") as f:
            return yaml.safe_load(f)

    def _write_yaml(self, path: Path, data: Dict[str, Any]):
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, sort_keys=False, allow_unicode=True, width=10000)


def generate_id(year: Optional[int], authors: List[str], title: str, index: int = 0) -> str:
    """`<year>-<first author slug>-<first three latin title words>`, at most 60 characters"""
    author_slug = "unknown"
    if authors:
        first_author = authors[0]
        if JAPANESE_CHARS.search(first_author):
            author_slug = first_author[:2]
        else:
            parts = re.split(r"[\s,]+", first_author.strip())
            author_slug = re.sub(r"[^a-z]", "", parts[0].lower()) if parts else ""

    latin_title = JAPANESE_CHARS.sub("", (title or "").lower())
    latin_title = re.sub(r"[^a-z0-9\s]", "", latin_title).strip()
    title_slug = "-".join(latin_title.split()[:3]) or f"pub-{index}"

    return f"{year or 2000}-{author_slug}-{title_slug}"[:60]


def allocate_id(base_id: str, used: Set[str]) -> str:
    """Suffix `-1`, `-2`, ... until the id is unused; records the result in `used`"""
    candidate = base_id
    suffix = 1
    while candidate in used:
        candidate = f"{base_id}-{suffix}"
        suffix += 1
    used.add(candidate)
    return candidate
