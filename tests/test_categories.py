"""
Tests for categories: cached list, mutations and slug uniqueness.
"""
from unittest import mock

from conftest import category, post
from revmohelp.categories import attach_categories
from revmohelp.errors import BackendError
from revmohelp.schemas import CreateCategoryData, UpdateCategoryData


def test_categories_ordered_by_name(services, add_rows):
    add_rows(category("C1", "profilaktika"), category("C2", "artrit"), category("C3", "dorilar"))
    assert [c.slug for c in services.categories.get_categories().data] == ["artrit", "dorilar", "profilaktika"]


def test_list_is_cached_with_long_ttl(services, add_rows, clock):
    add_rows(category("C1", "artrit"))
    services.categories.get_categories()

    with mock.patch.object(services.backend, "select", wraps=services.backend.select) as select:
        clock.advance(899)
        services.categories.get_categories()
        assert select.call_count == 0

        clock.advance(1)
        services.categories.get_categories()
        assert select.call_count == 1


def test_create_invalidates_list_and_posts(services, add_rows, cache):
    add_rows(post("PO1", "p-1"))
    services.categories.get_categories()
    services.posts.get_posts("uz")

    result = services.categories.create_category(CreateCategoryData(name="Artrit", slug="artrit"))

    assert result.ok
    assert result.data.color == "#3B82F6"
    assert cache.keys() == []
    assert len(services.categories.get_categories().data) == 1


def test_update_changes_embedded_category(services, add_rows):
    add_rows(category("C1", "artrit"), post("PO1", "p-1", category_id="C1"))
    assert services.posts.get_posts("uz").data[0].category.name == "Artrit"

    services.categories.update_category(UpdateCategoryData(id="C1", name="Revmatoid artrit"))

    assert services.posts.get_posts("uz").data[0].category.name == "Revmatoid artrit"


def test_update_and_delete_missing_category(services):
    assert services.categories.update_category(UpdateCategoryData(id="nope", name="x")).error.message == "Category not found"
    assert services.categories.delete_category("nope").error.message == "Category not found"


def test_delete(services, add_rows):
    add_rows(category("C1", "artrit"))
    assert services.categories.delete_category("C1").data is True
    assert services.categories.get_categories().data == []


def test_slug_uniqueness(services, add_rows):
    add_rows(category("C1", "artrit"))
    assert services.categories.check_category_slug_uniqueness("artrit").data is False
    assert services.categories.check_category_slug_uniqueness("artrit", exclude_category_id="C1").data is True
    assert services.categories.check_category_slug_uniqueness("artroz").data is True


def test_backend_error_is_not_cached(services, cache):
    with mock.patch.object(services.backend, "select", side_effect=BackendError("down")):
        result = services.categories.get_categories()
    assert result.error.message == "down"
    assert "categories" not in cache


def test_attach_categories_survives_lookup_failure(backend):
    rows = [{"id": "PO1", "category_id": "C1"}]
    with mock.patch.object(backend, "select", side_effect=BackendError("down")):
        attach_categories(backend, rows)
    assert "category" not in rows[0]


def test_attach_categories_skips_rows_without_category(backend, add_rows):
    add_rows(category("C1", "artrit"))
    rows = [{"id": "PO1", "category_id": "C1"}, {"id": "PO2", "category_id": None}]

    attach_categories(backend, rows)

    assert rows[0]["category"] == {"id": "C1", "name": "Artrit", "slug": "artrit", "color": "#10B981"}
    assert "category" not in rows[1]
