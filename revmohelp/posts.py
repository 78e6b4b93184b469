"""
Blog posts with per-language translations and slugs.

The posts table holds the default-language text and slug. Each
post_translations row carries one language's text and its own slug, so a
post can be reached by the slug of any language it is translated into.
"""
import logging
import re
import unicodedata
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Sequence, Union

from revmohelp.backend import Backend, page_window
from revmohelp.cache import CacheManager, cache_keys, invalidate_related_cache, with_cache
from revmohelp.categories import attach_categories
from revmohelp.errors import BackendError, Result, RowNotFoundError, is_ok
from revmohelp.schemas import CreatePostData, Post, PostFilters, PostTranslationInput, UpdatePostData
from revmohelp.translations import (
    DEFAULT_LANGUAGE,
    SUPPORTED_LANGUAGES,
    exact_translation,
    localize_exact,
    pick_translation,
)

logger = logging.getLogger("posts")

POST_TEXT_FIELDS = ("title", "content", "excerpt", "meta_title", "meta_description")

# A translation qualifies for the list when any of these is non-empty
POST_CONTENT_FIELDS = ("title", "content", "excerpt")

SEARCH_FIELDS = ("title", "content", "excerpt")

PostFiltersLike = Union[PostFilters, Mapping[str, Any], None]


def _coerce(filters: PostFiltersLike) -> PostFilters:
    if isinstance(filters, PostFilters):
        return filters
    return PostFilters(**(filters or {}))


def slugify(text: Optional[str]) -> str:
    """
    URL slug from a title: lowercase ASCII, accents dropped, anything else
    turned into single hyphens.

    >>> slugify("Bo'g'im og'rig'i")
    'bo-g-im-og-rig-i'
    """
    if not text:
        return ""
    text = unicodedata.normalize("NFD", text.lower())
    text = "".join(c for c in text if not unicodedata.combining(c))
    text = re.sub(r"[^a-z0-9\s-]", "-", text)
    text = re.sub(r"\s+", "-", text)
    text = re.sub(r"-+", "-", text)
    return text.strip().strip("-")


def localize_post_for_list(
    post: Dict[str, Any],
    language: str,
    default_language: str = DEFAULT_LANGUAGE,
    supported: Sequence[str] = SUPPORTED_LANGUAGES,
) -> Dict[str, Any]:
    """
    Localize a post row for list pages.

    Other languages use the best translation's fields over the base, but
    only a translation in exactly that language changes the slug. The
    default language keeps its own fields and fills empty ones from a
    translation.
    """
    translations = post.get("translations") or []
    result = dict(post)
    result.pop("translations", None)
    picked = pick_translation(
        translations,
        language,
        content_fields=POST_CONTENT_FIELDS,
        default_language=default_language,
        supported=supported,
    )

    if language != default_language:
        exact = exact_translation(translations, language)
        for field in POST_TEXT_FIELDS:
            if picked and picked.get(field):
                result[field] = picked[field]
        if exact and exact.get("slug"):
            result["slug"] = exact["slug"]
        if exact:
            result["current_language"] = language
        else:
            result["current_language"] = picked.get("language") if picked else default_language
        return result

    for field in POST_TEXT_FIELDS:
        if not result.get(field) and picked and picked.get(field):
            result[field] = picked[field]
    result["current_language"] = default_language
    return result


def _translation_row(
    post_id: str,
    language: str,
    translation: PostTranslationInput,
    base: Dict[str, Any],
) -> Dict[str, Any]:
    """Translation row; empty fields copy the base post, the slug is derived when missing."""
    row = {"post_id": post_id, "language": language}
    for field in POST_TEXT_FIELDS:
        row[field] = getattr(translation, field) or base.get(field)
    row["slug"] = translation.slug or slugify(translation.title) or f"{base['slug']}-{language}"
    return row


class PostRepository:
    """Cached post reads, search and admin mutations."""

    def __init__(
        self,
        backend: Backend,
        cache: CacheManager,
        default_language: str = DEFAULT_LANGUAGE,
        supported_languages: Sequence[str] = SUPPORTED_LANGUAGES,
    ):
        self.backend = backend
        self.cache = cache
        self.default_language = default_language
        self.supported_languages = tuple(supported_languages)

        self.get_posts = with_cache(
            cache,
            self._get_posts,
            lambda language=None, filters=None: cache_keys.posts(language or self.default_language, _coerce(filters)),
            cache_if=is_ok,
        )
        self.get_post_by_slug = with_cache(
            cache,
            self._get_post_by_slug,
            lambda slug, language=None: cache_keys.post_by_slug(slug, language or self.default_language),
            cache_if=is_ok,
        )
        self.get_post_by_id = with_cache(
            cache,
            self._get_post_by_id,
            lambda post_id, language=None: cache_keys.post_by_id(post_id, language or self.default_language),
            cache_if=is_ok,
        )

    # ----- reads -----

    def _get_posts(self, language: Optional[str] = None, filters: PostFiltersLike = None) -> Result:
        """Posts newest first, localized for list pages."""
        language = language or self.default_language
        filters = _coerce(filters)
        offset, limit = page_window(filters.limit, filters.offset)
        try:
            rows = self.backend.select(
                "posts",
                filters={
                    "published": filters.published,
                    "category_id": filters.category_id,
                    "author_id": filters.author_id,
                },
                order_by="created_at",
                descending=True,
                offset=offset,
                limit=limit,
                with_translations=True,
            )
        except BackendError as e:
            logger.warning(f"Error loading posts: {e.message}")
            return Result.failure(e.message, data=[])

        try:
            attach_categories(self.backend, rows)
            posts = [
                Post(**localize_post_for_list(row, language, self.default_language, self.supported_languages))
                for row in rows
            ]
        except Exception as e:
            logger.warning(f"Error fetching posts: {e}", exc_info=True)
            return Result.failure("Error fetching posts", data=[])

        logger.info(f"Loaded {len(posts)} posts for language={language}")
        return Result.success(posts)

    def _localized(self, post: Dict[str, Any], language: str) -> Post:
        attach_categories(self.backend, [post])
        localized = localize_exact(post, post.get("translations"), language, fields=POST_TEXT_FIELDS + ("slug",))
        return Post(**localized)

    def _count_view(self, post: Dict[str, Any]) -> None:
        try:
            self.backend.update("posts", post["id"], {"views_count": (post.get("views_count") or 0) + 1})
        except BackendError as e:
            logger.warning(f"Could not count view of post {post['id']}: {e.message}")

    def _get_post_by_slug(self, slug: str, language: Optional[str] = None) -> Result:
        """
        Post by the slug of the requested language, or by its base slug.

        Counts a view on every uncached read.
        """
        language = language or self.default_language
        try:
            matches = self.backend.select(
                "post_translations",
                filters={"slug": slug, "language": language},
                limit=1,
            )
            post = None
            if matches:
                post = self.backend.get("posts", matches[0]["post_id"], with_translations=True)
            if post is None:
                rows = self.backend.select("posts", filters={"slug": slug}, limit=1, with_translations=True)
                post = rows[0] if rows else None
        except BackendError as e:
            logger.warning(f"Error loading post {slug}: {e.message}")
            return Result.failure(e.message)
        if post is None:
            return Result.failure("Post not found")

        try:
            result = self._localized(post, language)
        except Exception as e:
            logger.warning(f"Error fetching post {slug}: {e}", exc_info=True)
            return Result.failure("Error fetching post")
        self._count_view(post)
        return Result.success(result)

    def _get_post_by_id(self, post_id: str, language: Optional[str] = None) -> Result:
        language = language or self.default_language
        try:
            post = self.backend.get("posts", post_id, with_translations=True)
        except BackendError as e:
            logger.warning(f"Error loading post {post_id}: {e.message}")
            return Result.failure(e.message)
        if post is None:
            return Result.failure("Post not found")
        try:
            return Result.success(self._localized(post, language))
        except Exception as e:
            logger.warning(f"Error fetching post {post_id}: {e}", exc_info=True)
            return Result.failure("Error fetching post")

    def search_posts(
        self,
        query: str,
        category_id: Optional[str] = None,
        published: Optional[bool] = None,
    ) -> Result:
        """Posts whose title, content or excerpt contains the text, newest first. Not cached."""
        try:
            rows = self.backend.select(
                "posts",
                filters={"category_id": category_id, "published": published},
                search=(SEARCH_FIELDS, query),
                order_by="created_at",
                descending=True,
            )
            attach_categories(self.backend, rows)
            return Result.success([Post(**row) for row in rows])
        except BackendError as e:
            logger.warning(f"Error searching posts for '{query}': {e.message}")
            return Result.failure(e.message, data=[])
        except Exception as e:
            logger.warning(f"Error searching posts: {e}", exc_info=True)
            return Result.failure("Error searching posts", data=[])

    # ----- mutations -----

    def _write_translations(
        self,
        post_id: str,
        translations: Mapping[str, PostTranslationInput],
        base: Dict[str, Any],
    ) -> None:
        for lang, translation in translations.items():
            try:
                self.backend.upsert(
                    "post_translations",
                    _translation_row(post_id, lang, translation, base),
                    conflict=("post_id", "language"),
                )
            except BackendError as e:
                logger.warning(f"Could not save {lang} translation for post {post_id}: {e.message}")

    def create_post(self, data: CreatePostData) -> Result:
        """
        Insert a post and its default-language translation, then any
        additional translations.
        """
        values = data.model_dump(exclude={"translations"})
        values["published_at"] = datetime.utcnow() if data.published else None
        logger.info(f"Creating post: {data.slug}")
        try:
            row = self.backend.insert("posts", values)
        except BackendError as e:
            logger.warning(f"Error creating post {data.slug}: {e.message}")
            invalidate_related_cache(self.cache, "post")
            return Result.failure(e.message)

        translations: Dict[str, PostTranslationInput] = {
            self.default_language: PostTranslationInput(**{f: row.get(f) for f in POST_TEXT_FIELDS}, slug=row["slug"]),
        }
        translations.update(data.translations)
        self._write_translations(row["id"], translations, row)

        invalidate_related_cache(self.cache, "post", row["id"])
        return Result.success(Post(**row))

    def update_post(self, data: UpdatePostData) -> Result:
        """Partial update; publishing stamps published_at, unpublishing clears it."""
        values = data.model_dump(exclude_unset=True, exclude={"id", "translations"})
        if values.get("published") is True:
            values["published_at"] = datetime.utcnow()
        elif values.get("published") is False:
            values["published_at"] = None
        try:
            if values:
                row = self.backend.update("posts", data.id, values)
            else:
                row = self.backend.get("posts", data.id)
                if row is None:
                    return Result.failure("Post not found")
        except RowNotFoundError:
            return Result.failure("Post not found")
        except BackendError as e:
            logger.warning(f"Error updating post {data.id}: {e.message}")
            return Result.failure(e.message)

        if data.translations:
            self._write_translations(data.id, data.translations, row)
        invalidate_related_cache(self.cache, "post", data.id)
        return Result.success(Post(**row))

    def delete_post(self, post_id: str) -> Result:
        try:
            deleted = self.backend.delete("posts", post_id)
        except BackendError as e:
            logger.warning(f"Error deleting post {post_id}: {e.message}")
            return Result.failure(e.message)
        finally:
            invalidate_related_cache(self.cache, "post", post_id)

        if not deleted:
            return Result.failure("Post not found", data=False)
        return Result.success(True)

    def check_slug_uniqueness(
        self,
        slug: str,
        language: Optional[str] = None,
        exclude_post_id: Optional[str] = None,
    ) -> Result:
        """
        Result.data is True when no other post uses the slug in that language.

        Default-language slugs live on the posts table as well as in the
        translations, so both are checked.
        """
        language = language or self.default_language
        try:
            if language == self.default_language:
                if self.backend.select("posts", filters={"slug": slug}, exclude={"id": exclude_post_id}, limit=1):
                    return Result.success(False)
            taken = self.backend.select(
                "post_translations",
                filters={"slug": slug, "language": language},
                exclude={"post_id": exclude_post_id},
                limit=1,
            )
        except BackendError as e:
            return Result.failure(e.message, data=False)
        return Result.success(not taken)
