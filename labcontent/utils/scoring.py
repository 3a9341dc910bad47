from ..models.schemas import Publication
from ..scoring_config import COMPLETENESS_WEIGHTS, GENERIC_AWARD_TYPE


def completeness_score(publication: Publication) -> int:
    """
    How filled-in a record is. Only used to pick which duplicate survives a merge,
    so it is recomputed on demand and never stored.
    """
    weights = COMPLETENESS_WEIGHTS
    score = len(publication.authors or []) * weights["per_author"]

    if publication.awards:
        score += weights["awards"]
    if publication.doi:
        score += weights["doi"]
    if publication.conference:
        score += weights["conference"]
    if publication.journal:
        score += weights["journal"]
    if publication.pages:
        score += weights["pages"]
    if publication.type and publication.type != GENERIC_AWARD_TYPE:
        score += weights["specific_type"]
    if publication.year:
        score += weights["year"]

    return score
