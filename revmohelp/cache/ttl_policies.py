"""
TTL configuration per cached resource.
"""
from typing import Dict

# TTL Configuration by resource (in seconds)
TTL_CONFIG: Dict[str, int] = {
    "doctors": 180,               # 3 minutes - list pages, edited from admin
    "doctor_by_id": 300,          # 5 minutes
    "doctor_reviews": 300,        # 5 minutes
    "doctor_rating_stats": 600,   # 10 minutes - only moves on new reviews
    "patient_stories": 300,       # 5 minutes
    "patient_story_by_id": 300,   # 5 minutes
    "posts": 180,                 # 3 minutes
    "post_by_slug": 600,          # 10 minutes
    "post_by_id": 600,            # 10 minutes
    "categories": 900,            # 15 minutes - near static
    "questions": 120,             # 2 minutes - answer counts move often
    "question_by_slug": 300,      # 5 minutes
    "answers": 120,               # 2 minutes
}

DEFAULT_TTL_SECONDS = 300


def get_ttl_for_resource(resource: str) -> int:
    """
    Get the TTL for a cached resource.

    Args:
        resource: Logical resource name, the first segment of its cache keys

    Returns:
        TTL in seconds (DEFAULT_TTL_SECONDS for unknown resources)
    """
    return TTL_CONFIG.get(resource, DEFAULT_TTL_SECONDS)
