"""
Publication embeddings: generation through a local Ollama model, the
`embeddings.json` index and hybrid semantic/keyword search over it
"""
import json
import time
from pathlib import Path
from typing import List, Dict, Any, Optional, Tuple

import numpy as np
import ollama
from loguru import logger

from ..config import settings
from ..exceptions import OllamaUnavailableError
from ..models.schemas import EmbeddingEntry, Publication
from ..scoring_config import SEARCH_CONFIG
from ..utils.content_store import ContentStore


def cosine_similarity(a, b) -> float:
    """0.0 for vectors of different length or zero norm"""
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if a.shape != b.shape or a.size == 0:
        return 0.0

    denominator = np.linalg.norm(a) * np.linalg.norm(b)
    if denominator == 0:
        return 0.0
    return float(np.dot(a, b) / denominator)


def truncate_embedding(vector: List[float], dim: int) -> List[float]:
    return [round(float(v), 4) for v in vector[:dim]]


class EmbeddingIndex:
    """In-memory `{id: vector}` map mirrored to a JSON array of `{id, embedding}`"""

    def __init__(self, entries: Optional[Dict[str, List[float]]] = None):
        self.entries: Dict[str, List[float]] = dict(entries or {})

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, publication_id: str) -> bool:
        return publication_id in self.entries

    def get(self, publication_id: str) -> Optional[List[float]]:
        return self.entries.get(publication_id)

    def set(self, publication_id: str, vector: List[float]):
        self.entries[publication_id] = vector

    @classmethod
    def load(cls, path: Optional[Path] = None) -> "EmbeddingIndex":
        path = Path(path or settings.embeddings_path)
        if not path.exists():
            logger.warning(f"Embeddings not found at {path}")
            return cls()

        with path.open(encoding="utf-8") as f:
            data = json.load(f)

        entries = {}
        for item in data:
            entry = EmbeddingEntry.model_validate(item)
            entries[entry.id] = entry.embedding
        logger.info(f"Loaded {len(entries)} embeddings")
        return cls(entries)

    def save(self, path: Optional[Path] = None):
        path = Path(path or settings.embeddings_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = [{"id": pid, "embedding": vector} for pid, vector in self.entries.items()]
        with path.open("w", encoding="utf-8") as f:
            json.dump(data, f)
        logger.info(f"✓ Saved {len(data)} embeddings to {path} ({path.stat().st_size / 1024:.1f} KB)")

    def matrix(self) -> Tuple[List[str], np.ndarray]:
        """Ids and the stacked vectors of every entry with the dominant dimension"""
        if not self.entries:
            return [], np.zeros((0, 0))

        dims = [len(v) for v in self.entries.values()]
        dim = max(set(dims), key=dims.count)
        ids = [pid for pid, vector in self.entries.items() if len(vector) == dim]
        return ids, np.array([self.entries[pid] for pid in ids], dtype=np.float64)

    def search(self, query_vector: List[float], threshold: float = 0.0, top_k: Optional[int] = None) -> List[Tuple[str, float]]:
        """Full linear scan by cosine similarity, best first"""
        results = []
        for publication_id, vector in self.entries.items():
            score = cosine_similarity(query_vector, vector)
            if score >= threshold:
                results.append((publication_id, score))

        results.sort(key=lambda pair: pair[1], reverse=True)
        return results[:top_k] if top_k else results


def keyword_score(query: str, text: str) -> float:
    """Share of query terms (longer than 2 chars) found in the text"""
    if not query or not text:
        return 0.0

    terms = [t for t in query.lower().split() if len(t) > 2]
    if not terms:
        return 0.0

    text = text.lower()
    return sum(1 for term in terms if term in text) / len(terms)


def hybrid_search(
    query: str,
    publications: List[Publication],
    query_vector: Optional[List[float]],
    index: EmbeddingIndex,
    threshold: float = SEARCH_CONFIG["semantic_threshold"],
) -> List[Dict[str, Any]]:
    """Semantic match when the record has a vector above threshold, else down-weighted keyword match"""
    if not query.strip():
        return [{"publication": p, "score": 1.0, "match_type": "keyword"} for p in publications]

    results = []
    for publication in publications:
        vector = index.get(publication.id)
        if query_vector is not None and vector is not None:
            similarity = cosine_similarity(query_vector, vector)
            if similarity >= threshold:
                results.append({"publication": publication, "score": similarity, "match_type": "semantic"})
                continue

        text = " ".join([
            publication.title or "",
            " ".join(publication.authors),
            publication.journal or "",
            " ".join(publication.tags),
        ])
        score = keyword_score(query, text)
        if score > 0:
            results.append({
                "publication": publication,
                "score": score * SEARCH_CONFIG["keyword_weight"],
                "match_type": "keyword",
            })

    results.sort(key=lambda r: r["score"], reverse=True)
    return results


def create_search_text(publication: Publication) -> str:
    parts = [
        publication.title or "",
        ", ".join(publication.authors),
        publication.journal or "",
        " ".join(publication.tags),
        publication.abstract or "",
    ]
    return ". ".join(part for part in parts if part)


class EmbeddingGenerator:
    """Embeds records through Ollama, truncated to a fixed dimension"""

    def __init__(self, client=None, model_name: Optional[str] = None, dim: Optional[int] = None, delay: Optional[float] = None):
        self.client = client or ollama.Client(host=settings.ollama_host)
        self.model_name = model_name or settings.embedding_model
        self.dim = dim or settings.embedding_dim
        self.delay = settings.embedding_delay if delay is None else delay

    def check_available(self):
        try:
            self.client.list()
        except Exception as e:
            raise OllamaUnavailableError(f"Ollama is not running at {settings.ollama_host}. Start it with: ollama serve") from e

    def embed(self, text: str) -> List[float]:
        response = self.client.embeddings(model=self.model_name, prompt=text)
        return truncate_embedding(response["embedding"], self.dim)

    def generate(self, store: ContentStore, index: EmbeddingIndex, force: bool = False) -> Dict[str, int]:
        """Fill in missing or wrong-dimension vectors, or all of them with `force`"""
        self.check_available()
        publications = [pub for _, pub in store.iter_publications()]

        if force:
            index.entries.clear()

        # Drop vectors of deleted records; truncate over-long ones
        current_ids = {p.id for p in publications}
        for publication_id, vector in list(index.entries.items()):
            if publication_id not in current_ids:
                del index.entries[publication_id]
            elif len(vector) > self.dim:
                index.set(publication_id, truncate_embedding(vector, self.dim))

        pending = [p for p in publications if len(index.get(p.id) or []) != self.dim]
        logger.info(f"Publications needing embeddings: {len(pending)} of {len(publications)}")

        stats = {"generated": 0, "failed": 0, "existing": len(publications) - len(pending)}
        for i, publication in enumerate(pending, 1):
            logger.info(f"[{i}/{len(pending)}] {(publication.title or publication.id)[:60]}...")
            try:
                index.set(publication.id, self.embed(create_search_text(publication)))
                stats["generated"] += 1
            except Exception as e:
                logger.error(f"  Error: {e}")
                stats["failed"] += 1

            if i < len(pending) and self.delay:
                time.sleep(self.delay)

        return stats
