"""
Deterministic cache key construction.

Keys are dot-separated: "<resource>.<positional parts...>.<options>".
Options are serialized in sorted field order with None fields dropped, so
an option left out and an option passed as None give the same key.
"""
import json
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel

# Serialized form of an empty option set
NO_OPTIONS = "all"

OptionsLike = Union[BaseModel, Mapping[str, Any], None]


def canonical_options(options: OptionsLike) -> Dict[str, Any]:
    """Turn an options model or mapping into a dict without None values."""
    if options is None:
        return {}
    if isinstance(options, BaseModel):
        options = options.model_dump()
    return {k: v for k, v in options.items() if v is not None}


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, str)):
        return str(value)
    return json.dumps(value, sort_keys=True, separators=(",", ":"), default=str)


def serialize_options(options: OptionsLike) -> str:
    """
    Serialize options as "a=1&b=true" in sorted key order.

    Returns:
        NO_OPTIONS when every field is absent
    """
    canonical = canonical_options(options)
    if not canonical:
        return NO_OPTIONS
    return "&".join(f"{k}={_format_value(canonical[k])}" for k in sorted(canonical))


def build_key(resource: str, *parts: Any, options: OptionsLike = None) -> str:
    """
    Build a cache key for a resource.

    Args:
        resource: Logical resource name (also the TTL policy name)
        parts: Positional identity parts, e.g. an id and a language
        options: Query options; omitted means "no options"

    Examples:
        build_key("doctors", "uz", options={"active": True})
            -> "doctors.uz.active=true"
        build_key("doctor_rating_stats", "D1")
            -> "doctor_rating_stats.D1"
    """
    segments = [resource, *(str(p) for p in parts)]
    if options is not None:
        segments.append(serialize_options(options))
    return ".".join(segments)


class CacheKeys:
    """Key builders for every cached accessor."""

    @staticmethod
    def doctors(language: str, options: OptionsLike = None) -> str:
        return build_key("doctors", language, options=options or {})

    @staticmethod
    def doctor_by_id(doctor_id: str, language: str) -> str:
        return build_key("doctor_by_id", doctor_id, language)

    @staticmethod
    def doctor_reviews(doctor_id: str, options: OptionsLike = None) -> str:
        return build_key("doctor_reviews", doctor_id, options=options or {})

    @staticmethod
    def doctor_rating_stats(doctor_id: str) -> str:
        return build_key("doctor_rating_stats", doctor_id)

    @staticmethod
    def patient_stories(language: str, options: OptionsLike = None) -> str:
        return build_key("patient_stories", language, options=options or {})

    @staticmethod
    def patient_story_by_id(story_id: str, language: str) -> str:
        return build_key("patient_story_by_id", story_id, language)

    @staticmethod
    def posts(language: str, options: OptionsLike = None) -> str:
        return build_key("posts", language, options=options or {})

    @staticmethod
    def post_by_slug(slug: str, language: str) -> str:
        return build_key("post_by_slug", slug, language)

    @staticmethod
    def post_by_id(post_id: str, language: str) -> str:
        return build_key("post_by_id", post_id, language)

    @staticmethod
    def categories() -> str:
        return build_key("categories")

    @staticmethod
    def questions(options: OptionsLike = None) -> str:
        return build_key("questions", options=options or {})

    @staticmethod
    def question_by_slug(slug: str) -> str:
        return build_key("question_by_slug", slug)

    @staticmethod
    def answers(question_id: str) -> str:
        return build_key("answers", question_id)


cache_keys = CacheKeys()


def resource_of(key: str) -> Optional[str]:
    """First segment of a key, i.e. the resource it belongs to."""
    return key.split(".", 1)[0] if key else None
