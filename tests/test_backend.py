"""
Tests for the table-name backend adapter.
"""
from unittest import mock

import pytest
from sqlalchemy.exc import OperationalError

from conftest import legacy_doctor, legacy_translation
from revmohelp.backend import Backend, page_window
from revmohelp.errors import BackendError, RowNotFoundError


@pytest.fixture
def seeded_backend(backend, add_rows):
    add_rows(
        legacy_doctor("L1", "a@x.com", order_index=2),
        legacy_doctor("L2", "b@x.com", order_index=1, active=False),
        legacy_doctor("L3", "c@x.com", order_index=3),
        legacy_translation("L1", "ru", bio="bio"),
    )
    return backend


def test_select_ignores_none_filters(seeded_backend):
    rows = seeded_backend.select("doctors", filters={"active": True, "verified": None}, order_by="order_index")
    assert [r["id"] for r in rows] == ["L1", "L3"]


def test_select_offset_limit_and_order(seeded_backend):
    rows = seeded_backend.select("doctors", order_by="order_index", descending=True, offset=1, limit=1)
    assert [r["id"] for r in rows] == ["L1"]


def test_select_in_filter_and_exclude(seeded_backend):
    rows = seeded_backend.select("doctors", in_filter=("id", ["L1", "L2"]), exclude={"id": "L2"})
    assert [r["id"] for r in rows] == ["L1"]


def test_select_case_insensitive_filter(backend, add_rows):
    add_rows(legacy_doctor("L1", "Aliyev@Clinic.uz"))
    rows = backend.select("doctors", ci_filters={"email": "aliyev@clinic.UZ"})
    assert [r["id"] for r in rows] == ["L1"]


def test_select_search_matches_any_column(backend, add_rows):
    add_rows(
        legacy_doctor("L1", "a@x.com", bio="Artrit bo'yicha"),
        legacy_doctor("L2", "b@x.com", full_name="Dr. ARTRITOV"),
        legacy_doctor("L3", "c@x.com"),
    )
    rows = backend.select("doctors", search=(("full_name", "bio"), "artrit"), order_by="id")
    assert [r["id"] for r in rows] == ["L1", "L2"]


def test_count_with_filters(seeded_backend):
    assert seeded_backend.count("doctors") == 3
    assert seeded_backend.count("doctors", {"active": False}) == 1
    assert seeded_backend.count("doctors", {"active": None}) == 3


@pytest.mark.parametrize("limit,offset,expected", [
    (None, None, (None, None)),
    (5, None, (None, 5)),
    (5, 20, (20, 5)),
    (None, 20, (20, 10)),
])
def test_page_window(limit, offset, expected):
    assert page_window(limit, offset) == expected


def test_get_with_translations(seeded_backend):
    row = seeded_backend.get("doctors", "L1", with_translations=True)
    assert [t["language"] for t in row["translations"]] == ["ru"]
    assert seeded_backend.get("doctors", "nope") is None


def test_unknown_table(backend):
    with pytest.raises(BackendError):
        backend.select("tags")


def test_update_missing_row(backend):
    with pytest.raises(RowNotFoundError):
        backend.update("doctors", "nope", {"bio": "x"})


def test_upsert_updates_on_conflict(seeded_backend):
    seeded_backend.upsert(
        "doctor_translations",
        {"doctor_id": "L1", "language": "ru", "bio": "new"},
        conflict=("doctor_id", "language"),
    )
    rows = seeded_backend.select("doctor_translations", filters={"doctor_id": "L1"})
    assert [r["bio"] for r in rows] == ["new"]


def test_delete_cascades_translations(seeded_backend):
    assert seeded_backend.delete("doctors", "L1") is True
    assert seeded_backend.select("doctor_translations") == []
    assert seeded_backend.delete("doctors", "L1") is False


def test_integrity_error_becomes_backend_error(backend):
    with pytest.raises(BackendError):
        backend.insert("doctors", {"full_name": None, "specialization": "x"})


def test_availability_retries_then_reports_down():
    factory = mock.Mock()
    factory.return_value.execute.side_effect = OperationalError("SELECT 1", {}, Exception("connection refused"))

    with mock.patch("time.sleep"):
        assert Backend(factory).is_available() is False
    assert factory.call_count == 3


def test_availability_recovers_after_transient_failure():
    factory = mock.Mock()
    factory.return_value.execute.side_effect = [OperationalError("SELECT 1", {}, Exception("reset")), None]

    with mock.patch("time.sleep"):
        assert Backend(factory).is_available() is True
    assert factory.call_count == 2
