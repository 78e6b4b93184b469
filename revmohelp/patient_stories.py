"""
Patient success stories with per-language translations.
"""
import logging
from typing import Any, Dict, Mapping, Optional, Sequence, Union

from revmohelp.backend import Backend
from revmohelp.cache import CacheManager, cache_keys, invalidate_related_cache, with_cache
from revmohelp.errors import BackendError, Result, RowNotFoundError, is_ok
from revmohelp.schemas import (
    CreatePatientStoryData,
    PatientStory,
    PatientStoryFilters,
    StoryTranslationInput,
    UpdatePatientStoryData,
)
from revmohelp.translations import DEFAULT_LANGUAGE, SUPPORTED_LANGUAGES, localize

logger = logging.getLogger("patient_stories")

STORY_TEXT_FIELDS = (
    "patient_name",
    "diagnosis",
    "story_content",
    "treatment_duration",
    "outcome",
    "doctor_name",
    "symptoms",
    "treatment_methods",
    "medications",
    "lifestyle_changes",
    "meta_title",
    "meta_description",
)

# A translation without story text is not worth showing
STORY_CONTENT_FIELDS = ("story_content",)

StoryFiltersLike = Union[PatientStoryFilters, Mapping[str, Any], None]


def _coerce(filters: StoryFiltersLike) -> PatientStoryFilters:
    if isinstance(filters, PatientStoryFilters):
        return filters
    return PatientStoryFilters(**(filters or {}))


def _translation_row(story_id: str, language: str, translation: StoryTranslationInput, base: Dict[str, Any]) -> Dict[str, Any]:
    """Translation row where unset fields copy the base story's value."""
    row = {"story_id": story_id, "language": language}
    for field, value in translation.model_dump().items():
        row[field] = value if value is not None else base.get(field)
    return row


class PatientStoryRepository:
    """Cached story reads and admin mutations."""

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

        self.get_patient_stories = with_cache(
            cache,
            self._get_patient_stories,
            lambda language=None, filters=None: cache_keys.patient_stories(language or self.default_language, _coerce(filters)),
            cache_if=is_ok,
        )
        self.get_patient_story_by_id = with_cache(
            cache,
            self._get_patient_story_by_id,
            lambda story_id, language=None: cache_keys.patient_story_by_id(story_id, language or self.default_language),
            cache_if=is_ok,
        )

    def _to_story(self, row: Dict[str, Any], language: str) -> PatientStory:
        localized = localize(
            row,
            row.get("translations"),
            language,
            fields=STORY_TEXT_FIELDS,
            content_fields=STORY_CONTENT_FIELDS,
            default_language=self.default_language,
            supported=self.supported_languages,
        )
        for field in ("symptoms", "treatment_methods", "medications"):
            localized[field] = localized.get(field) or []
        return PatientStory(**localized)

    def _get_patient_stories(self, language: Optional[str] = None, filters: StoryFiltersLike = None) -> Result:
        """Stories ordered by order_index, newest first within the same index."""
        language = language or self.default_language
        filters = _coerce(filters)
        try:
            rows = self.backend.select(
                "patient_stories",
                filters={"published": filters.published, "featured": filters.featured},
                order_by="created_at",
                descending=True,
                with_translations=True,
            )
        except BackendError as e:
            logger.warning(f"Error loading patient stories: {e.message}")
            return Result.failure(e.message, data=[])

        try:
            rows.sort(key=lambda r: r.get("order_index") or 0)
            if filters.limit:
                rows = rows[: filters.limit]
            stories = [self._to_story(row, language) for row in rows]
        except Exception as e:
            logger.warning(f"Error fetching patient stories: {e}", exc_info=True)
            return Result.failure("Error fetching patient stories", data=[])

        logger.info(f"Loaded {len(stories)} patient stories for language={language}")
        return Result.success(stories)

    def _get_patient_story_by_id(self, story_id: str, language: Optional[str] = None) -> Result:
        language = language or self.default_language
        try:
            row = self.backend.get("patient_stories", story_id, with_translations=True)
        except BackendError as e:
            logger.warning(f"Error loading patient story {story_id}: {e.message}")
            return Result.failure(e.message)
        if row is None:
            return Result.failure("Patient story not found")
        try:
            return Result.success(self._to_story(row, language))
        except Exception as e:
            logger.warning(f"Error fetching patient story {story_id}: {e}", exc_info=True)
            return Result.failure("Error fetching patient story")

    def _write_translations(self, story_id: str, translations: Dict[str, StoryTranslationInput], base: Dict[str, Any]) -> None:
        for lang, translation in translations.items():
            try:
                self.backend.upsert(
                    "patient_story_translations",
                    _translation_row(story_id, lang, translation, base),
                    conflict=("story_id", "language"),
                )
            except BackendError as e:
                logger.warning(f"Could not save {lang} translation for story {story_id}: {e.message}")

    def create_patient_story(self, data: CreatePatientStoryData) -> Result:
        """Insert a story; translations default to the base story's fields."""
        values = data.model_dump(exclude={"translations"})
        try:
            row = self.backend.insert("patient_stories", values)
        except BackendError as e:
            logger.warning(f"Error creating patient story: {e.message}")
            return Result.failure(e.message)

        self._write_translations(row["id"], data.translations, row)
        invalidate_related_cache(self.cache, "patient_story")
        return Result.success(PatientStory(**row))

    def update_patient_story(self, data: UpdatePatientStoryData) -> Result:
        values = data.model_dump(exclude_unset=True, exclude={"id", "translations"})
        try:
            if values:
                row = self.backend.update("patient_stories", data.id, values)
            else:
                row = self.backend.get("patient_stories", data.id)
                if row is None:
                    return Result.failure("Patient story not found")
        except RowNotFoundError:
            return Result.failure("Patient story not found")
        except BackendError as e:
            logger.warning(f"Error updating patient story {data.id}: {e.message}")
            return Result.failure(e.message)

        if data.translations:
            self._write_translations(data.id, data.translations, row)
        invalidate_related_cache(self.cache, "patient_story", data.id)
        return Result.success(PatientStory(**row))

    def delete_patient_story(self, story_id: str) -> Result:
        try:
            deleted = self.backend.delete("patient_stories", story_id)
        except BackendError as e:
            logger.warning(f"Error deleting patient story {story_id}: {e.message}")
            return Result.failure(e.message)
        finally:
            invalidate_related_cache(self.cache, "patient_story", story_id)

        if not deleted:
            return Result.failure("Patient story not found", data=False)
        return Result.success(True)
