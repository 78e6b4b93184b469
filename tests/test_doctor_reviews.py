"""
Tests for doctor reviews and rating statistics.
"""
from unittest import mock

from conftest import days_after_base

from revmohelp.doctor_reviews import compute_rating_stats
from revmohelp.errors import BackendError
from revmohelp.models import DoctorReview
from revmohelp.schemas import CreateDoctorReviewData


def review(doctor_id, rating, **overrides):
    values = dict(doctor_id=doctor_id, rating=rating, comment="Yaxshi shifokor", reviewer_name="Aziz")
    values.update(overrides)
    return CreateDoctorReviewData(**values)


def test_rating_stats_for_no_reviews():
    stats = compute_rating_stats([])
    assert stats.average_rating == 0.0
    assert stats.total_reviews == 0
    assert stats.rating_distribution == {1: 0, 2: 0, 3: 0, 4: 0, 5: 0}


def test_rating_stats_rounds_to_one_decimal():
    stats = compute_rating_stats([5, 4, 4])
    assert stats.average_rating == 4.3
    assert stats.total_reviews == 3
    assert stats.rating_distribution == {1: 0, 2: 0, 3: 0, 4: 2, 5: 1}


def test_create_review_is_auto_approved(services):
    result = services.reviews.create_doctor_review(review("D1", 5))

    assert result.ok
    assert result.data.approved is True
    assert result.data.reviewer_name == "Aziz"


def test_signed_in_reviewer_name_is_not_stored(services):
    result = services.reviews.create_doctor_review(review("D1", 4, user_id="u-1"))
    assert result.data.reviewer_name is None
    assert result.data.user_id == "u-1"


def test_reviews_newest_first_with_limit(services, add_rows):
    add_rows(*[
        DoctorReview(doctor_id="D1", rating=rating, comment="ok", created_at=days_after_base(day))
        for day, rating in enumerate([3, 4, 5])
    ])

    result = services.reviews.get_doctor_reviews("D1", {"limit": 2})
    assert [r.rating for r in result.data] == [5, 4]


def test_stats_are_cached_until_a_review_is_added(services):
    services.reviews.create_doctor_review(review("D1", 5))
    assert services.reviews.get_doctor_rating_stats("D1").data.total_reviews == 1

    with mock.patch.object(services.backend, "select", wraps=services.backend.select) as select:
        services.reviews.get_doctor_rating_stats("D1")
        assert select.call_count == 0

    services.reviews.create_doctor_review(review("D1", 3))

    stats = services.reviews.get_doctor_rating_stats("D1").data
    assert stats.total_reviews == 2
    assert stats.average_rating == 4.0


def test_new_review_keeps_other_doctors_cached(services, cache):
    services.reviews.get_doctor_reviews("D1")
    services.reviews.get_doctor_reviews("D2")
    services.reviews.get_doctor_rating_stats("D2")

    services.reviews.create_doctor_review(review("D1", 5))

    keys = cache.keys()
    assert "doctor_reviews.D1.all" not in keys
    assert "doctor_reviews.D2.all" in keys
    assert "doctor_rating_stats.D2" in keys


def test_stats_ignore_unapproved_reviews(services, add_rows):
    add_rows(
        DoctorReview(doctor_id="D1", rating=5, comment="ok", approved=True),
        DoctorReview(doctor_id="D1", rating=1, comment="spam", approved=False),
    )

    assert services.reviews.get_doctor_rating_stats("D1").data.average_rating == 5.0
    assert len(services.reviews.get_doctor_reviews("D1").data) == 2
    assert len(services.reviews.get_doctor_reviews("D1", {"approved": True}).data) == 1


def test_backend_error_is_returned_and_not_cached(services, cache):
    with mock.patch.object(services.backend, "select", side_effect=BackendError("timeout")):
        result = services.reviews.get_doctor_rating_stats("D1")

    assert result.error.message == "timeout"
    assert result.data.total_reviews == 0
    assert "doctor_rating_stats.D1" not in cache


def test_failed_create_still_invalidates(services, cache):
    services.reviews.get_doctor_rating_stats("D1")

    with mock.patch.object(services.backend, "insert", side_effect=BackendError("insert failed")):
        result = services.reviews.create_doctor_review(review("D1", 5))

    assert not result.ok
    assert "doctor_rating_stats.D1" not in cache


def test_stats_refresh_for_id_with_glob_characters(services):
    services.reviews.create_doctor_review(review("dr[1]", 5))
    assert services.reviews.get_doctor_rating_stats("dr[1]").data.total_reviews == 1

    services.reviews.create_doctor_review(review("dr[1]", 1))

    stats = services.reviews.get_doctor_rating_stats("dr[1]").data
    assert stats.total_reviews == 2
    assert stats.average_rating == 3.0


def test_malformed_review_row_becomes_error_result(services, cache, add_rows):
    add_rows(DoctorReview(doctor_id="D1", rating=5, comment="ok"))

    with mock.patch("revmohelp.doctor_reviews.DoctorReview", side_effect=ValueError("bad row")):
        result = services.reviews.get_doctor_reviews("D1")

    assert result.error.message == "Error fetching reviews"
    assert result.data == []
    assert "doctor_reviews.D1.all" not in cache
    assert len(services.reviews.get_doctor_reviews("D1").data) == 1


def test_stats_computation_failure_becomes_error_result(services, cache):
    with mock.patch("revmohelp.doctor_reviews.compute_rating_stats", side_effect=TypeError("bad rating")):
        result = services.reviews.get_doctor_rating_stats("D1")

    assert result.error.message == "Error fetching rating stats"
    assert result.data.total_reviews == 0
    assert "doctor_rating_stats.D1" not in cache
