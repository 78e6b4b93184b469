"""
Application wiring: one cache and one backend shared by every repository.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import sessionmaker

from config.settings import Settings
from revmohelp.backend import Backend
from revmohelp.cache import CacheManager
from revmohelp.categories import CategoryRepository
from revmohelp.db import init_db, make_engine, make_session_factory
from revmohelp.doctor_reviews import DoctorReviewRepository
from revmohelp.doctors import DoctorRepository
from revmohelp.patient_stories import PatientStoryRepository
from revmohelp.posts import PostRepository
from revmohelp.questions import QuestionRepository
from revmohelp.schemas import DoctorFilters, PostFilters

logger = logging.getLogger("services")


@dataclass
class Services:
    """Long-lived collaborators built once at application start."""
    cache: CacheManager
    backend: Backend
    doctors: DoctorRepository
    reviews: DoctorReviewRepository
    stories: PatientStoryRepository
    posts: PostRepository
    categories: CategoryRepository
    questions: QuestionRepository
    default_language: str


def build_services(
    settings: Settings,
    session_factory: Optional[sessionmaker] = None,
    cache: Optional[CacheManager] = None,
) -> Services:
    """
    Build the cache, backend and repositories.

    Args:
        settings: Application settings
        session_factory: Use this instead of connecting to settings.database_url
        cache: Use this cache instead of a new one (tests pass a fake clock)
    """
    if session_factory is None:
        engine = make_engine(settings.database_url)
        init_db(engine)
        session_factory = make_session_factory(engine)

    cache = cache or CacheManager(enabled=settings.cache_enabled)
    backend = Backend(session_factory)
    languages = dict(
        default_language=settings.default_language,
        supported_languages=settings.supported_languages,
    )
    return Services(
        cache=cache,
        backend=backend,
        doctors=DoctorRepository(backend, cache, **languages),
        reviews=DoctorReviewRepository(backend, cache),
        stories=PatientStoryRepository(backend, cache, **languages),
        posts=PostRepository(backend, cache, **languages),
        categories=CategoryRepository(backend, cache),
        questions=QuestionRepository(backend, cache),
        default_language=settings.default_language,
    )


def preload_critical_data(services: Services) -> bool:
    """
    Warm the cache with what the home page shows first: featured doctors,
    the latest published posts and the category list.

    Each load runs even when another fails.

    Returns:
        True if every load succeeded; failures are logged, never raised
    """
    logger.info("Preloading critical data into cache...")
    try:
        if not services.backend.is_available():
            logger.warning("Backend not available, skipping data preload")
            return False
    except Exception as e:
        logger.error(f"Error preloading critical data: {e}")
        return False

    language = services.default_language
    loads = {
        "doctors": lambda: services.doctors.get_doctors(language, DoctorFilters(active=True, verified=True, limit=10)),
        "posts": lambda: services.posts.get_posts(language, PostFilters(published=True, limit=20)),
        "categories": services.categories.get_categories,
    }
    ok = True
    for name, load in loads.items():
        try:
            result = load()
        except Exception as e:
            logger.error(f"Error preloading {name}: {e}")
            ok = False
            continue
        if not result.ok:
            logger.warning(f"Preload of {name} failed: {result.error.message}")
            ok = False
            continue
        logger.info(f"Preloaded {len(result.data)} {name}")

    if ok:
        logger.info("Critical data preloaded")
    return ok
