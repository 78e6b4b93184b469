"""
Cache invalidation after create/update/delete operations.
"""
import glob
import logging
from typing import Dict, List, Optional

from .manager import CacheManager

logger = logging.getLogger("cache.invalidation")


# Key patterns made stale by a mutation of each entity type.
# "{id}" is filled with the affected id; "*" matches any suffix.
INVALIDATION_RULES: Dict[str, Dict[str, List[str]]] = {
    "doctor": {
        "always": ["doctors.*"],
        "with_id": [
            "doctor_by_id.{id}.*",
            "doctor_reviews.{id}.*",
            "doctor_rating_stats.{id}",
        ],
        "without_id": ["doctor_by_id.*"],
    },
    # A review also touches the reviewed doctor's cached record
    "doctor_review": {
        "always": ["doctors.*"],
        "with_id": [
            "doctor_by_id.{id}.*",
            "doctor_reviews.{id}.*",
            "doctor_rating_stats.{id}",
        ],
        "without_id": ["doctor_by_id.*", "doctor_reviews.*", "doctor_rating_stats.*"],
    },
    "patient_story": {
        "always": ["patient_stories.*"],
        "with_id": ["patient_story_by_id.{id}.*"],
        "without_id": ["patient_story_by_id.*"],
    },
    # Slug keys cannot be scoped by id, so every slug entry goes
    "post": {
        "always": ["posts.*", "post_by_slug.*"],
        "with_id": ["post_by_id.{id}.*"],
        "without_id": ["post_by_id.*"],
    },
    # Posts and questions embed their category
    "category": {
        "always": [
            "categories",
            "posts.*",
            "post_by_slug.*",
            "post_by_id.*",
            "questions.*",
            "question_by_slug.*",
        ],
        "with_id": [],
        "without_id": [],
    },
    "question": {
        "always": ["questions.*", "question_by_slug.*"],
        "with_id": ["answers.{id}"],
        "without_id": ["answers.*"],
    },
    # For answers the id is the question's id
    "answer": {
        "always": ["questions.*", "question_by_slug.*"],
        "with_id": ["answers.{id}"],
        "without_id": ["answers.*"],
    },
}


def patterns_for(entity_type: str, entity_id: Optional[str] = None) -> List[str]:
    """
    List the key patterns affected by a mutation.

    Args:
        entity_type: A key of INVALIDATION_RULES, e.g. "doctor" or "post"
        entity_id: Id of the changed entity, if known. For reviews this is
            the reviewed doctor's id, for answers the question's id.

    Returns:
        Glob patterns, empty for unknown entity types
    """
    rules = INVALIDATION_RULES.get(entity_type)
    if rules is None:
        return []
    if entity_id:
        # Ids are matched literally, "dr[1]" must not act as a character class
        scoped = [p.format(id=glob.escape(entity_id)) for p in rules["with_id"]]
    else:
        scoped = list(rules["without_id"])
    return rules["always"] + scoped


def invalidate_related_cache(
    cache: CacheManager,
    entity_type: str,
    entity_id: Optional[str] = None,
) -> int:
    """
    Drop every cache entry a mutation could have made stale.

    Best effort: a failure is logged and never reaches the mutation caller.

    Returns:
        Number of entries removed
    """
    removed = 0
    try:
        for pattern in patterns_for(entity_type, entity_id):
            removed += cache.invalidate_pattern(pattern)
    except Exception as e:
        logger.warning(f"Cache invalidation failed for {entity_type} {entity_id}: {e}")
        return removed

    if removed:
        logger.info(f"Invalidated {removed} cache entries after {entity_type} change ({entity_id or 'all'})")
    return removed
