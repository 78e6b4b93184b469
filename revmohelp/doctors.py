"""
Doctors directory: merge of self-registered profiles and legacy admin doctors.

Two tables hold overlapping doctor records:
- doctor_profiles (+ doctor_profile_translations): self-registered, no ordering
- doctors (+ doctor_translations): legacy, added by admins, explicit order_index

get_doctors() queries both, localizes each row, merges them with a
language-dependent source priority, deduplicates by identity key, sorts and
truncates. Reads are cached; every mutation invalidates the doctor caches.
"""
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from revmohelp.backend import Backend
from revmohelp.cache import CacheManager, cache_keys, invalidate_related_cache, with_cache
from revmohelp.errors import BackendError, Result, RowNotFoundError, is_ok
from revmohelp.schemas import CreateDoctorData, DoctorFilters, DoctorRecord, UpdateDoctorData
from revmohelp.translations import DEFAULT_LANGUAGE, SUPPORTED_LANGUAGES, localize, localize_exact

logger = logging.getLogger("doctors")

# Profiles carry no order_index; this puts them after every explicitly ordered doctor
PROFILE_ORDER_INDEX = 9999

# Admin form accepts more, the site shows at most two certificates
MAX_CERTIFICATES = 2

FiltersLike = Union[DoctorFilters, Mapping[str, Any], None]


class DoctorSource(Enum):
    """Tables doctors are loaded from."""
    PROFILES = "profiles"
    LEGACY = "legacy"


# ===== MERGE RULES =====

def source_priority(
    language: str,
    default_language: str = DEFAULT_LANGUAGE,
) -> Tuple[DoctorSource, DoctorSource]:
    """
    Which source wins when both hold the same doctor.

    Legacy rows carry the admin-curated default-language text, profiles
    carry the doctors' own translations.
    """
    if language == default_language:
        return (DoctorSource.LEGACY, DoctorSource.PROFILES)
    return (DoctorSource.PROFILES, DoctorSource.LEGACY)


def identity_key(doctor: DoctorRecord) -> str:
    """Lowercased email, or the id when the doctor has no email."""
    return (doctor.email or doctor.id).lower()


def merge_sources(
    sources: Mapping[DoctorSource, Sequence[DoctorRecord]],
    priority_order: Sequence[DoctorSource],
) -> List[DoctorRecord]:
    """
    Concatenate sources in priority order and keep the first record per identity key.

    Args:
        sources: Records loaded from each source (missing sources count as empty)
        priority_order: Sources from highest to lowest priority

    Returns:
        Deduplicated records, in concatenation order
    """
    unique: Dict[str, DoctorRecord] = {}
    for source in priority_order:
        for doctor in sources.get(source, ()):
            unique.setdefault(identity_key(doctor), doctor)
    return list(unique.values())


def sort_doctors(doctors: Iterable[DoctorRecord]) -> List[DoctorRecord]:
    """
    Sort by active desc, verified desc, order_index asc, created_at desc.
    """
    # Newest first, then a stable sort on the primary keys keeps that as the tie-break
    by_created = sorted(doctors, key=lambda d: d.created_at or datetime.min, reverse=True)
    return sorted(by_created, key=lambda d: (not d.active, not d.verified, d.order_index))


def _to_record(row: Dict[str, Any], source: DoctorSource, order_index: int) -> DoctorRecord:
    values = dict(row)
    values["certificates"] = values.get("certificates") or []
    values["experience_years"] = values.get("experience_years") or 0
    values["order_index"] = order_index
    values["source"] = source.value
    return DoctorRecord(**values)


# ===== REPOSITORY =====

class DoctorRepository:
    """
    Doctor reads (cached) and admin mutations (invalidating).

    Usage:
        repo = DoctorRepository(backend, cache)
        result = repo.get_doctors("ru", DoctorFilters(active=True, limit=10))
        if result.ok:
            doctors = result.data
    """

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

        self.get_doctors = with_cache(
            cache, self._get_doctors, self._doctors_key, cache_if=is_ok
        )
        self.get_doctor_by_id = with_cache(
            cache, self._get_doctor_by_id, self._doctor_by_id_key, cache_if=is_ok
        )

    # ----- cache keys -----

    @staticmethod
    def _coerce_filters(filters: FiltersLike) -> DoctorFilters:
        if isinstance(filters, DoctorFilters):
            return filters
        return DoctorFilters(**(filters or {}))

    def _doctors_key(self, language: Optional[str] = None, filters: FiltersLike = None) -> str:
        return cache_keys.doctors(language or self.default_language, self._coerce_filters(filters))

    def _doctor_by_id_key(self, doctor_id: str, language: Optional[str] = None) -> str:
        return cache_keys.doctor_by_id(doctor_id, language or self.default_language)

    # ----- localization -----

    def _localize(self, row: Dict[str, Any], translations: Optional[List[Dict[str, Any]]], language: str) -> Dict[str, Any]:
        return localize(
            row,
            translations,
            language,
            default_language=self.default_language,
            supported=self.supported_languages,
        )

    def _legacy_translations(self, doctor_ids: List[str], language: str) -> Dict[str, List[Dict[str, Any]]]:
        """Translation rows per legacy doctor id; empty for the default language."""
        grouped: Dict[str, List[Dict[str, Any]]] = {}
        if language == self.default_language or not doctor_ids:
            return grouped
        try:
            rows = self.backend.select("doctor_translations", in_filter=("doctor_id", doctor_ids))
        except BackendError as e:
            # Untranslated doctors are still worth showing
            logger.warning(f"Error loading doctor translations: {e.message}")
            return grouped
        for row in rows:
            grouped.setdefault(row["doctor_id"], []).append(row)
        return grouped

    # ----- reads -----

    def _load_profiles(self, language: str, filters: DoctorFilters) -> List[DoctorRecord]:
        rows = self.backend.select(
            "doctor_profiles",
            filters={"active": filters.active, "verified": filters.verified},
            order_by="created_at",
            descending=True,
            offset=filters.offset,
            limit=filters.page_size,
            with_translations=True,
        )
        return [
            _to_record(self._localize(row, row.get("translations"), language), DoctorSource.PROFILES, PROFILE_ORDER_INDEX)
            for row in rows
        ]

    def _load_legacy(self, language: str, filters: DoctorFilters) -> List[DoctorRecord]:
        rows = self.backend.select(
            "doctors",
            filters={"active": filters.active, "verified": filters.verified},
            order_by="order_index",
            offset=filters.offset,
            limit=filters.page_size,
        )
        translations = self._legacy_translations([row["id"] for row in rows], language)
        return [
            _to_record(
                self._localize(row, translations.get(row["id"]), language),
                DoctorSource.LEGACY,
                row.get("order_index") or 0,
            )
            for row in rows
        ]

    def _get_doctors(self, language: Optional[str] = None, filters: FiltersLike = None) -> Result:
        """
        Ranked, deduplicated doctors for a language.

        Returns:
            Result with the doctor list; on a backend outage the list is
            empty and the error is set. One failing source is logged and
            the other source's doctors are still returned.
        """
        language = language or self.default_language
        try:
            filters = self._coerce_filters(filters)
            logger.info(f"Loading doctors for language={language} filters={filters.model_dump(exclude_none=True)}")

            if not self.backend.is_available():
                logger.warning("Backend not available, cannot load doctors")
                return Result.failure("Backend not available", data=[])

            loaders = {
                DoctorSource.PROFILES: self._load_profiles,
                DoctorSource.LEGACY: self._load_legacy,
            }
            sources: Dict[DoctorSource, List[DoctorRecord]] = {}
            for source, load in loaders.items():
                try:
                    sources[source] = load(language, filters)
                    logger.debug(f"Loaded {len(sources[source])} doctors from {source.value}")
                except BackendError as e:
                    logger.warning(f"Error loading doctors from {source.value}: {e.message}")

            if not sources:
                return Result.failure("Error fetching doctors", data=[])

            merged = merge_sources(sources, source_priority(language, self.default_language))
            doctors = sort_doctors(merged)
            if filters.limit:
                doctors = doctors[: filters.limit]

            logger.info(f"Loaded {len(doctors)} doctors for language={language}")
            return Result.success(doctors)
        except Exception as e:
            logger.warning(f"Error fetching doctors: {e}", exc_info=True)
            return Result.failure("Error fetching doctors", data=[])

    def _get_doctor_by_id(self, doctor_id: str, language: Optional[str] = None) -> Result:
        """Profile first, then legacy doctor; error "Doctor not found" when neither exists."""
        language = language or self.default_language
        try:
            try:
                profile = self.backend.get("doctor_profiles", doctor_id, with_translations=True)
                if profile is not None:
                    # Profiles only show a translation written for this exact language
                    localized = localize_exact(profile, profile.get("translations"), language)
                    return Result.success(_to_record(localized, DoctorSource.PROFILES, PROFILE_ORDER_INDEX))
            except BackendError as e:
                logger.warning(f"Error loading doctor profile {doctor_id}, trying legacy doctors: {e.message}")

            legacy = self.backend.get("doctors", doctor_id)
            if legacy is not None:
                translations = self._legacy_translations([doctor_id], language)
                localized = self._localize(legacy, translations.get(doctor_id), language)
                return Result.success(_to_record(localized, DoctorSource.LEGACY, legacy.get("order_index") or 0))

            return Result.failure("Doctor not found")
        except BackendError as e:
            logger.warning(f"Error fetching doctor {doctor_id}: {e.message}")
            return Result.failure("Error fetching doctor")
        except Exception as e:
            logger.warning(f"Error fetching doctor {doctor_id}: {e}", exc_info=True)
            return Result.failure("Error fetching doctor")

    # ----- mutations -----

    def create_doctor(self, data: CreateDoctorData) -> Result:
        """Insert a legacy doctor and its translations."""
        logger.info(f"Creating doctor: {data.full_name} <{data.email}>")
        try:
            row = self.backend.insert("doctors", {
                "full_name": data.full_name,
                "email": data.email.lower(),
                "phone": data.phone,
                "specialization": data.specialization,
                "experience_years": data.experience_years,
                "bio": data.bio,
                "avatar_url": data.avatar_url,
                "certificates": data.certificates[:MAX_CERTIFICATES],
                "verified": data.verified if data.verified is not None else False,
                "active": data.active if data.active is not None else True,
                "order_index": data.order_index if data.order_index is not None else 0,
            })
        except BackendError as e:
            logger.warning(f"Error creating doctor: {e.message}")
            return Result.failure(e.message)

        if data.translations:
            try:
                self.backend.insert_many("doctor_translations", [
                    {"doctor_id": row["id"], "language": lang, **t.model_dump()}
                    for lang, t in data.translations.items()
                ])
            except BackendError as e:
                logger.warning(f"Could not create translations for doctor {row['id']}: {e.message}")

        invalidate_related_cache(self.cache, "doctor")
        logger.info(f"Doctor created: {row['id']}")
        return Result.success(_to_record(row, DoctorSource.LEGACY, row["order_index"]))

    def update_doctor(self, data: UpdateDoctorData) -> Result:
        """Update the fields that are set and upsert the given translations."""
        values = data.model_dump(exclude_unset=True, exclude={"id", "translations"})
        if values.get("email"):
            values["email"] = values["email"].lower()
        if values.get("certificates") is not None:
            values["certificates"] = values["certificates"][:MAX_CERTIFICATES]

        try:
            if values:
                row = self.backend.update("doctors", data.id, values)
            else:
                row = self.backend.get("doctors", data.id)
                if row is None:
                    return Result.failure("Doctor not found")
        except RowNotFoundError:
            return Result.failure("Doctor not found")
        except BackendError as e:
            logger.warning(f"Error updating doctor {data.id}: {e.message}")
            return Result.failure(e.message)

        for lang, translation in (data.translations or {}).items():
            try:
                self.backend.upsert(
                    "doctor_translations",
                    {"doctor_id": data.id, "language": lang, **translation.model_dump()},
                    conflict=("doctor_id", "language"),
                )
            except BackendError as e:
                logger.warning(f"Could not update {lang} translation for doctor {data.id}: {e.message}")

        invalidate_related_cache(self.cache, "doctor", data.id)
        return Result.success(_to_record(row, DoctorSource.LEGACY, row.get("order_index") or 0))

    def delete_doctor(self, doctor_id: str) -> Result:
        """Delete a legacy doctor. data is True when a row was removed."""
        try:
            deleted = self.backend.delete("doctors", doctor_id)
        except BackendError as e:
            logger.warning(f"Error deleting doctor {doctor_id}: {e.message}")
            return Result.failure(e.message)
        finally:
            invalidate_related_cache(self.cache, "doctor", doctor_id)

        if not deleted:
            return Result.failure("Doctor not found", data=False)
        logger.info(f"Doctor deleted: {doctor_id}")
        return Result.success(True)

    def check_doctor_email_uniqueness(self, email: str, exclude_doctor_id: Optional[str] = None) -> Result:
        """data is True when no other legacy doctor uses the email."""
        try:
            rows = self.backend.select(
                "doctors",
                ci_filters={"email": email},
                exclude={"id": exclude_doctor_id},
                limit=1,
            )
        except BackendError as e:
            return Result.failure(e.message, data=False)
        return Result.success(not rows)
