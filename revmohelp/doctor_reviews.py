"""
Doctor reviews and rating statistics.
"""
import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from revmohelp.backend import Backend
from revmohelp.cache import CacheManager, cache_keys, cached, invalidate_related_cache
from revmohelp.errors import BackendError, Result, is_ok
from revmohelp.schemas import CreateDoctorReviewData, DoctorRatingStats, DoctorReview, ReviewFilters

logger = logging.getLogger("doctor_reviews")

ReviewFiltersLike = Union[ReviewFilters, Mapping[str, Any], None]


def compute_rating_stats(ratings: List[int]) -> DoctorRatingStats:
    """
    Average (one decimal), count and 1..5 distribution of ratings.
    """
    if not ratings:
        return DoctorRatingStats()
    distribution = {star: 0 for star in range(1, 6)}
    for rating in ratings:
        if rating in distribution:
            distribution[rating] += 1
    return DoctorRatingStats(
        average_rating=round(sum(ratings) / len(ratings), 1),
        total_reviews=len(ratings),
        rating_distribution=distribution,
    )


def _coerce(filters: ReviewFiltersLike) -> ReviewFilters:
    if isinstance(filters, ReviewFilters):
        return filters
    return ReviewFilters(**(filters or {}))


class DoctorReviewRepository:
    """Cached review reads and review submission."""

    def __init__(self, backend: Backend, cache: CacheManager):
        self.backend = backend
        self.cache = cache

        @cached(cache, lambda doctor_id, filters=None: cache_keys.doctor_reviews(doctor_id, _coerce(filters)), cache_if=is_ok)
        def get_doctor_reviews(doctor_id: str, filters: ReviewFiltersLike = None) -> Result:
            """Reviews of a doctor, newest first."""
            filters = _coerce(filters)
            try:
                rows = backend.select(
                    "doctor_reviews",
                    filters={"doctor_id": doctor_id, "approved": filters.approved},
                    order_by="created_at",
                    descending=True,
                    limit=filters.limit,
                )
            except BackendError as e:
                logger.warning(f"Error loading reviews for doctor {doctor_id}: {e.message}")
                return Result.failure(e.message, data=[])
            try:
                return Result.success([DoctorReview(**row) for row in rows])
            except Exception as e:
                logger.warning(f"Error fetching reviews for doctor {doctor_id}: {e}", exc_info=True)
                return Result.failure("Error fetching reviews", data=[])

        @cached(cache, cache_keys.doctor_rating_stats, cache_if=is_ok)
        def get_doctor_rating_stats(doctor_id: str) -> Result:
            """Rating stats over approved reviews; zero stats when there are none."""
            try:
                rows = backend.select("doctor_reviews", filters={"doctor_id": doctor_id, "approved": True})
            except BackendError as e:
                logger.warning(f"Error loading rating stats for doctor {doctor_id}: {e.message}")
                return Result.failure(e.message, data=DoctorRatingStats())
            try:
                stats = compute_rating_stats([row["rating"] for row in rows])
            except Exception as e:
                logger.warning(f"Error fetching rating stats for doctor {doctor_id}: {e}", exc_info=True)
                return Result.failure("Error fetching rating stats", data=DoctorRatingStats())
            logger.info(f"Rating stats for doctor {doctor_id}: avg={stats.average_rating} n={stats.total_reviews}")
            return Result.success(stats)

        self.get_doctor_reviews = get_doctor_reviews
        self.get_doctor_rating_stats = get_doctor_rating_stats

    def create_doctor_review(self, data: CreateDoctorReviewData) -> Result:
        """
        Store an auto-approved review.

        Signed-in reviewers are identified by user_id, so the free-text
        reviewer name is only kept for guests.
        """
        values: Dict[str, Optional[Any]] = {
            "doctor_id": data.doctor_id,
            "user_id": data.user_id,
            "rating": data.rating,
            "comment": data.comment,
            "anonymous": data.anonymous,
            "reviewer_name": None if data.user_id else data.reviewer_name,
            "approved": True,
        }
        try:
            row = self.backend.insert("doctor_reviews", values)
        except BackendError as e:
            logger.warning(f"Error creating review for doctor {data.doctor_id}: {e.message}")
            return Result.failure(e.message)
        finally:
            invalidate_related_cache(self.cache, "doctor_review", data.doctor_id)

        return Result.success(DoctorReview(**row))
