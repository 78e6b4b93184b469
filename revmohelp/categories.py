"""
Post and question categories.
"""
import logging
from typing import Any, Dict, List, Optional

from revmohelp.backend import Backend
from revmohelp.cache import CacheManager, cache_keys, invalidate_related_cache, with_cache
from revmohelp.errors import BackendError, Result, RowNotFoundError, is_ok
from revmohelp.schemas import Category, CreateCategoryData, UpdateCategoryData

logger = logging.getLogger("categories")

CATEGORY_REF_FIELDS = ("id", "name", "slug", "color")


def attach_categories(backend: Backend, rows: List[Dict[str, Any]]) -> None:
    """
    Embed each row's category under "category" in place.

    A failed lookup is logged and leaves the rows without categories.
    """
    ids = {row["category_id"] for row in rows if row.get("category_id")}
    if not ids:
        return
    try:
        categories = backend.select("categories", in_filter=("id", ids))
    except BackendError as e:
        logger.warning(f"Could not load categories: {e.message}")
        return
    by_id = {c["id"]: {k: c[k] for k in CATEGORY_REF_FIELDS} for c in categories}
    for row in rows:
        row["category"] = by_id.get(row.get("category_id"))


class CategoryRepository:
    """Cached category list and admin mutations."""

    def __init__(self, backend: Backend, cache: CacheManager):
        self.backend = backend
        self.cache = cache
        self.get_categories = with_cache(cache, self._get_categories, cache_keys.categories, cache_if=is_ok)

    def _get_categories(self) -> Result:
        """All categories ordered by name."""
        try:
            rows = self.backend.select("categories", order_by="name")
            categories = [Category(**row) for row in rows]
        except BackendError as e:
            logger.warning(f"Error loading categories: {e.message}")
            return Result.failure(e.message, data=[])
        except Exception as e:
            logger.warning(f"Error fetching categories: {e}", exc_info=True)
            return Result.failure("Error fetching categories", data=[])

        logger.info(f"Loaded {len(categories)} categories")
        return Result.success(categories)

    def create_category(self, data: CreateCategoryData) -> Result:
        try:
            row = self.backend.insert("categories", data.model_dump())
        except BackendError as e:
            logger.warning(f"Error creating category {data.slug}: {e.message}")
            return Result.failure(e.message)
        finally:
            invalidate_related_cache(self.cache, "category")
        return Result.success(Category(**row))

    def update_category(self, data: UpdateCategoryData) -> Result:
        values = data.model_dump(exclude_unset=True, exclude={"id"})
        try:
            if values:
                row = self.backend.update("categories", data.id, values)
            else:
                row = self.backend.get("categories", data.id)
                if row is None:
                    return Result.failure("Category not found")
        except RowNotFoundError:
            return Result.failure("Category not found")
        except BackendError as e:
            logger.warning(f"Error updating category {data.id}: {e.message}")
            return Result.failure(e.message)

        invalidate_related_cache(self.cache, "category", data.id)
        return Result.success(Category(**row))

    def delete_category(self, category_id: str) -> Result:
        """Delete a category; its posts and questions keep existing uncategorized."""
        try:
            deleted = self.backend.delete("categories", category_id)
        except BackendError as e:
            logger.warning(f"Error deleting category {category_id}: {e.message}")
            return Result.failure(e.message)
        finally:
            invalidate_related_cache(self.cache, "category", category_id)

        if not deleted:
            return Result.failure("Category not found", data=False)
        return Result.success(True)

    def check_category_slug_uniqueness(self, slug: str, exclude_category_id: Optional[str] = None) -> Result:
        """
        Result.data is True when no other category uses the slug.
        """
        try:
            rows = self.backend.select(
                "categories",
                filters={"slug": slug},
                exclude={"id": exclude_category_id},
                limit=1,
            )
        except BackendError as e:
            return Result.failure(e.message, data=False)
        return Result.success(not rows)
