"""
Nearest-topic labels from embeddings, plus k-means clustering to explore
which topic descriptions are worth adding
"""
import re
from collections import Counter
from typing import List, Dict, Optional, Tuple

import numpy as np
from loguru import logger

from ..models.schemas import LabelAssignment, Publication
from ..scoring_config import CLUSTER_CONFIG, CLUSTER_STOPWORDS, LABEL_CONFIG, LABEL_TOPICS
from ..utils.content_store import ContentStore
from .embeddings import EmbeddingGenerator, EmbeddingIndex, cosine_similarity


def embed_topics(generator: EmbeddingGenerator, topics: Optional[Dict[str, Dict[str, str]]] = None) -> Dict[str, Dict[str, List[float]]]:
    topics = topics or LABEL_TOPICS
    return {
        category: {name: generator.embed(description) for name, description in entries.items()}
        for category, entries in topics.items()
    }


def assign_labels(
    publication_id: str,
    vector: List[float],
    topic_vectors: Dict[str, Dict[str, List[float]]],
    threshold: float = LABEL_CONFIG["min_threshold"],
    gap: float = LABEL_CONFIG["second_place_gap"],
) -> LabelAssignment:
    """Best topic per category if it clears the threshold; runner-up too when within `gap`"""
    labels: Dict[str, List[str]] = {}
    scores: Dict[str, Dict[str, float]] = {}

    for category, topics in topic_vectors.items():
        scores[category] = {name: cosine_similarity(vector, topic) for name, topic in topics.items()}
        ranked = sorted(scores[category].items(), key=lambda pair: pair[1], reverse=True)

        labels[category] = []
        if ranked and ranked[0][1] >= threshold:
            labels[category].append(ranked[0][0])
            if len(ranked) > 1 and ranked[1][1] >= threshold and ranked[0][1] - ranked[1][1] <= gap:
                labels[category].append(ranked[1][0])

    return LabelAssignment(id=publication_id, labels=labels, scores=scores)


def apply_labels(publication: Publication, assignment: LabelAssignment) -> bool:
    """Replace `category:label` tags, keeping hand-written ones. True when the tags changed."""
    auto_tags = [f"{category}:{label}" for category, labels in assignment.labels.items() for label in labels]

    tags = [tag for tag in publication.tags if ":" not in tag]
    for tag in auto_tags:
        if tag not in tags:
            tags.append(tag)

    if tags == publication.tags:
        return False
    publication.tags = tags
    return True


def label_publications(
    store: ContentStore,
    index: EmbeddingIndex,
    topic_vectors: Dict[str, Dict[str, List[float]]],
    dry_run: bool = False,
) -> List[LabelAssignment]:
    records = {publication.id: (path, publication) for path, publication in store.iter_publications()}
    assignments = []
    updated = 0

    for publication_id, vector in index.entries.items():
        if publication_id not in records:
            continue
        path, publication = records[publication_id]

        assignment = assign_labels(publication_id, vector, topic_vectors)
        assignments.append(assignment)

        if apply_labels(publication, assignment) and not dry_run:
            store.write_publication(path, publication)
            updated += 1

    log_distribution(assignments, topic_vectors)
    if dry_run:
        logger.info("Dry run - no files modified")
    else:
        logger.info(f"Updated {updated} papers with auto-labels")
    return assignments


def log_distribution(assignments: List[LabelAssignment], topic_vectors: Dict[str, Dict[str, List[float]]]):
    total = len(assignments) or 1
    for category, topics in topic_vectors.items():
        counts = Counter(label for a in assignments for label in a.labels.get(category, []))
        logger.info(f"{category.upper()}:")
        for name in sorted(topics, key=lambda n: counts[n], reverse=True):
            logger.info(f"  {name:<20} {counts[name]:>4} ({counts[name] * 100 // total:>2}%)")


def kmeans(
    vectors: np.ndarray,
    k: int = CLUSTER_CONFIG["num_clusters"],
    max_iterations: int = CLUSTER_CONFIG["max_iterations"],
    seed: Optional[int] = None,
) -> np.ndarray:
    """Cosine k-means; returns the cluster index of each row"""
    vectors = np.asarray(vectors, dtype=np.float64)
    n = len(vectors)
    if n == 0:
        return np.zeros(0, dtype=int)
    k = min(k, n)

    rng = np.random.default_rng(seed)
    centroids = vectors[rng.choice(n, size=k, replace=False)].copy()
    assignments = None

    for iteration in range(max_iterations):
        norms = np.linalg.norm(vectors, axis=1, keepdims=True) * np.linalg.norm(centroids, axis=1)
        similarity = np.divide(vectors @ centroids.T, norms, out=np.zeros((n, k)), where=norms != 0)
        new_assignments = similarity.argmax(axis=1)

        if assignments is not None and np.array_equal(new_assignments, assignments):
            logger.info(f"Converged after {iteration + 1} iterations")
            break
        assignments = new_assignments

        for c in range(k):
            members = vectors[assignments == c]
            if len(members):
                centroids[c] = members.mean(axis=0)

    return assignments


def suggest_keywords(titles: List[str], top_n: int = 8) -> List[str]:
    counts = Counter()
    for title in titles:
        tokens = re.split(r"[^a-z]+", (title or "").lower())
        counts.update(t for t in tokens if len(t) > 2 and t not in CLUSTER_STOPWORDS)
    return [word for word, _ in counts.most_common(top_n)]


def cluster_report(
    store: ContentStore,
    index: EmbeddingIndex,
    k: int = CLUSTER_CONFIG["num_clusters"],
    seed: Optional[int] = None,
) -> List[Dict]:
    """Clusters sorted by size with keywords, type mix and sample titles"""
    publications = {p.id: p for _, p in store.iter_publications()}
    ids, matrix = index.matrix()
    ids_with_records = [i for i, pid in enumerate(ids) if pid in publications]
    ids = [ids[i] for i in ids_with_records]
    matrix = matrix[ids_with_records] if len(ids) else matrix

    assignments = kmeans(matrix, k=k, seed=seed)

    clusters: Dict[int, List[Publication]] = {}
    for pid, cluster in zip(ids, assignments):
        clusters.setdefault(int(cluster), []).append(publications[pid])

    report = []
    for cluster, members in sorted(clusters.items(), key=lambda item: len(item[1]), reverse=True):
        types = Counter(p.type or "unknown" for p in members).most_common(3)
        samples = [p for p in members if p.type in ("journal", "conference")][:3]
        samples += [p for p in members if p not in samples][: 3 - len(samples)]
        report.append({
            "cluster": cluster,
            "size": len(members),
            "keywords": suggest_keywords([p.title for p in members]),
            "types": types,
            "samples": [(p.year, p.title) for p in samples],
        })
    return report


def top_matches(assignments: List[LabelAssignment], category: str, label: str, limit: int = 2) -> List[Tuple[str, float]]:
    matching = [a for a in assignments if label in a.labels.get(category, [])]
    matching.sort(key=lambda a: a.scores[category][label], reverse=True)
    return [(a.id, a.scores[category][label]) for a in matching[:limit]]
