"""
Translation fallback for localized content.

Base rows are written in the default language. For any other language a
row's translation set is searched in a fixed priority order and the first
translation with content wins; each field then falls back to the base row
on its own when the chosen translation leaves it empty.
"""
from typing import Any, Dict, Iterable, List, Optional, Sequence

DEFAULT_LANGUAGE = "uz"
SUPPORTED_LANGUAGES = ("uz", "ru", "en")

DOCTOR_TEXT_FIELDS = ("bio", "specialization")


def language_order(
    language: str,
    default_language: str = DEFAULT_LANGUAGE,
    supported: Sequence[str] = SUPPORTED_LANGUAGES,
) -> List[str]:
    """
    Languages to try for a requested language, without duplicates.

    >>> language_order("ru")
    ['ru', 'uz', 'en']
    """
    order: List[str] = []
    for lang in (language, default_language, *supported):
        if lang not in order:
            order.append(lang)
    return order


def _has_content(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, (list, tuple)):
        return len(value) > 0
    return True


def pick_translation(
    translations: Optional[Iterable[Dict[str, Any]]],
    language: str,
    content_fields: Sequence[str] = DOCTOR_TEXT_FIELDS,
    default_language: str = DEFAULT_LANGUAGE,
    supported: Sequence[str] = SUPPORTED_LANGUAGES,
) -> Optional[Dict[str, Any]]:
    """
    Choose the translation row to display for a language.

    Args:
        translations: Translation rows, each with a "language" key
        language: Requested language
        content_fields: A translation qualifies when any of these is non-empty

    Returns:
        The first qualifying row in language_order(), or None
    """
    rows = list(translations or [])
    if not rows:
        return None

    by_language = {}
    for row in rows:
        by_language.setdefault(row.get("language"), row)

    for lang in language_order(language, default_language, supported):
        row = by_language.get(lang)
        if row is not None and any(_has_content(row.get(f)) for f in content_fields):
            return row
    return None


def exact_translation(
    translations: Optional[Iterable[Dict[str, Any]]],
    language: str,
) -> Optional[Dict[str, Any]]:
    """The translation row for exactly this language, or None."""
    for row in translations or []:
        if row.get("language") == language:
            return row
    return None


def localize_exact(
    base: Dict[str, Any],
    translations: Optional[Iterable[Dict[str, Any]]],
    language: str,
    fields: Sequence[str] = DOCTOR_TEXT_FIELDS,
) -> Dict[str, Any]:
    """
    Like localize(), but only the requested language's translation is used,
    including for the default language. Empty translated fields keep the
    base value.
    """
    result = dict(base)
    result.pop("translations", None)
    result["current_language"] = None

    translation = exact_translation(translations, language)
    if translation is None:
        return result
    for field in fields:
        value = translation.get(field)
        if _has_content(value):
            result[field] = value
    result["current_language"] = language
    return result


def localize(
    base: Dict[str, Any],
    translations: Optional[Iterable[Dict[str, Any]]],
    language: str,
    fields: Sequence[str] = DOCTOR_TEXT_FIELDS,
    content_fields: Optional[Sequence[str]] = None,
    default_language: str = DEFAULT_LANGUAGE,
    supported: Sequence[str] = SUPPORTED_LANGUAGES,
) -> Dict[str, Any]:
    """
    Return a copy of base with localized fields and "current_language" set.

    The default language always uses the base row's own fields.

    Args:
        base: The untranslated row
        translations: The row's translation set
        language: Requested language
        fields: Fields to localize
        content_fields: Fields that make a translation qualify (default: fields)
    """
    result = dict(base)
    result.pop("translations", None)
    result["current_language"] = None

    if language == default_language:
        return result

    translation = pick_translation(
        translations,
        language,
        content_fields=content_fields or fields,
        default_language=default_language,
        supported=supported,
    )
    if translation is None:
        return result

    for field in fields:
        value = translation.get(field)
        if _has_content(value):
            result[field] = value
    result["current_language"] = translation.get("language")
    return result
