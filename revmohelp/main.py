"""
Revmohelp - Main FastAPI Application
Doctors directory, patient stories, reviews, posts and Q&A, served from a cached backend
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field

from config.settings import settings
from revmohelp.errors import Result
from revmohelp.schemas import (
    CreateAnswerData,
    CreateCategoryData,
    CreateDoctorData,
    CreateDoctorReviewData,
    CreatePatientStoryData,
    CreatePostData,
    CreateQuestionData,
    DoctorFilters,
    PatientStoryFilters,
    PostFilters,
    QuestionFilters,
    ReviewFilters,
    UpdateCategoryData,
    UpdateDoctorData,
    UpdatePatientStoryData,
    UpdatePostData,
)
from revmohelp.services import Services, build_services, preload_critical_data

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger("main")

# Version tracking
APP_VERSION = "v1.0.0"
APP_NAME = "Revmohelp"

# Global services instance, built on first use
_services: Optional[Services] = None


def get_services() -> Services:
    """Get or create the application services (overridden in tests)."""
    global _services
    if _services is None:
        _services = build_services(settings)
    return _services


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.preload_on_startup:
        # Preload does blocking database reads, keep them off the event loop
        await run_in_threadpool(preload_critical_data, get_services())
    yield


app = FastAPI(
    title=APP_NAME,
    description="Multilingual medical information: doctors, patient stories, reviews, posts, Q&A",
    version=APP_VERSION,
    lifespan=lifespan,
)


def _unwrap(result: Result, not_found: Optional[str] = None):
    """Return result.data or raise the HTTP error matching result.error."""
    if result.ok:
        return result.data
    message = result.error.message
    if not_found and message == not_found:
        raise HTTPException(status_code=404, detail=message)
    raise HTTPException(status_code=503, detail=message)


@app.get("/health")
def health_check(services: Services = Depends(get_services)):
    """Health check endpoint."""
    return {"status": "ok", "backend": "up" if services.backend.is_available() else "down"}


@app.get("/version")
def version_info():
    """Version information endpoint."""
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "full": f"{APP_NAME} {APP_VERSION}",
    }


@app.get("/cache/stats")
def cache_stats(services: Services = Depends(get_services)):
    """Get cache statistics."""
    return services.cache.get_stats()


@app.post("/cache/clear")
def cache_clear(services: Services = Depends(get_services)):
    """Drop every cache entry."""
    return {"cleared": services.cache.clear()}


# ===== DOCTORS =====

@app.get("/api/doctors")
def list_doctors(
    lang: Optional[str] = Query(None, description="uz, ru or en"),
    active: Optional[bool] = None,
    verified: Optional[bool] = None,
    limit: Optional[int] = Query(None, ge=1),
    page: int = Query(1, ge=1),
    page_size: int = Query(12, ge=1, le=100),
    services: Services = Depends(get_services),
):
    """Doctors merged from profiles and legacy doctors, localized."""
    language = lang or services.default_language
    filters = DoctorFilters(active=active, verified=verified, limit=limit, page=page, page_size=page_size)
    doctors = _unwrap(services.doctors.get_doctors(language, filters))
    return {"language": language, "count": len(doctors), "doctors": doctors}


@app.get("/api/doctors/{doctor_id}")
def get_doctor(
    doctor_id: str,
    lang: Optional[str] = Query(None),
    services: Services = Depends(get_services),
):
    """Single doctor, localized."""
    return _unwrap(services.doctors.get_doctor_by_id(doctor_id, lang), not_found="Doctor not found")


@app.post("/api/admin/doctors", status_code=201)
def create_doctor(data: CreateDoctorData, services: Services = Depends(get_services)):
    """Create a doctor (admin)."""
    unique = services.doctors.check_doctor_email_uniqueness(data.email)
    if unique.ok and not unique.data:
        raise HTTPException(status_code=409, detail="A doctor with this email already exists")
    return _unwrap(services.doctors.create_doctor(data))


@app.put("/api/admin/doctors/{doctor_id}")
def update_doctor(doctor_id: str, data: UpdateDoctorData, services: Services = Depends(get_services)):
    """Update a doctor (admin)."""
    if data.email:
        unique = services.doctors.check_doctor_email_uniqueness(data.email, exclude_doctor_id=doctor_id)
        if unique.ok and not unique.data:
            raise HTTPException(status_code=409, detail="A doctor with this email already exists")
    data = data.model_copy(update={"id": doctor_id})
    return _unwrap(services.doctors.update_doctor(data), not_found="Doctor not found")


@app.delete("/api/admin/doctors/{doctor_id}")
def delete_doctor(doctor_id: str, services: Services = Depends(get_services)):
    """Delete a doctor (admin)."""
    _unwrap(services.doctors.delete_doctor(doctor_id), not_found="Doctor not found")
    return {"deleted": doctor_id}


# ===== REVIEWS =====

class ReviewSubmission(BaseModel):
    """Review form body; the doctor comes from the URL."""
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=1)
    anonymous: bool = False
    reviewer_name: Optional[str] = None


@app.get("/api/doctors/{doctor_id}/reviews")
def list_reviews(
    doctor_id: str,
    approved: Optional[bool] = None,
    limit: Optional[int] = Query(None, ge=1),
    services: Services = Depends(get_services),
):
    """Reviews of a doctor, newest first."""
    reviews = _unwrap(services.reviews.get_doctor_reviews(doctor_id, ReviewFilters(approved=approved, limit=limit)))
    return {"doctor_id": doctor_id, "count": len(reviews), "reviews": reviews}


@app.get("/api/doctors/{doctor_id}/rating")
def rating_stats(doctor_id: str, services: Services = Depends(get_services)):
    """Rating statistics of a doctor."""
    return _unwrap(services.reviews.get_doctor_rating_stats(doctor_id))


@app.post("/api/doctors/{doctor_id}/reviews", status_code=201)
def submit_review(doctor_id: str, body: ReviewSubmission, services: Services = Depends(get_services)):
    """Submit a review (auto-approved)."""
    data = CreateDoctorReviewData(doctor_id=doctor_id, **body.model_dump())
    return _unwrap(services.reviews.create_doctor_review(data))


# ===== PATIENT STORIES =====

@app.get("/api/patient-stories")
def list_patient_stories(
    lang: Optional[str] = Query(None),
    published: Optional[bool] = None,
    featured: Optional[bool] = None,
    limit: Optional[int] = Query(None, ge=1),
    services: Services = Depends(get_services),
):
    """Patient stories, localized."""
    language = lang or services.default_language
    filters = PatientStoryFilters(published=published, featured=featured, limit=limit)
    stories = _unwrap(services.stories.get_patient_stories(language, filters))
    return {"language": language, "count": len(stories), "stories": stories}


@app.get("/api/patient-stories/{story_id}")
def get_patient_story(story_id: str, lang: Optional[str] = Query(None), services: Services = Depends(get_services)):
    """Single patient story, localized."""
    return _unwrap(services.stories.get_patient_story_by_id(story_id, lang), not_found="Patient story not found")


@app.post("/api/admin/patient-stories", status_code=201)
def create_patient_story(data: CreatePatientStoryData, services: Services = Depends(get_services)):
    """Create a patient story (admin)."""
    return _unwrap(services.stories.create_patient_story(data))


@app.put("/api/admin/patient-stories/{story_id}")
def update_patient_story(story_id: str, data: UpdatePatientStoryData, services: Services = Depends(get_services)):
    """Update a patient story (admin)."""
    data = data.model_copy(update={"id": story_id})
    return _unwrap(services.stories.update_patient_story(data), not_found="Patient story not found")


@app.delete("/api/admin/patient-stories/{story_id}")
def delete_patient_story(story_id: str, services: Services = Depends(get_services)):
    """Delete a patient story (admin)."""
    _unwrap(services.stories.delete_patient_story(story_id), not_found="Patient story not found")
    return {"deleted": story_id}


# ===== CATEGORIES =====

@app.get("/api/categories")
def list_categories(services: Services = Depends(get_services)):
    """All categories by name."""
    return _unwrap(services.categories.get_categories())


@app.post("/api/admin/categories", status_code=201)
def create_category(data: CreateCategoryData, services: Services = Depends(get_services)):
    """Create a category (admin)."""
    unique = services.categories.check_category_slug_uniqueness(data.slug)
    if unique.ok and not unique.data:
        raise HTTPException(status_code=409, detail="A category with this slug already exists")
    return _unwrap(services.categories.create_category(data))


@app.put("/api/admin/categories/{category_id}")
def update_category(category_id: str, data: UpdateCategoryData, services: Services = Depends(get_services)):
    """Update a category (admin)."""
    if data.slug:
        unique = services.categories.check_category_slug_uniqueness(data.slug, exclude_category_id=category_id)
        if unique.ok and not unique.data:
            raise HTTPException(status_code=409, detail="A category with this slug already exists")
    data = data.model_copy(update={"id": category_id})
    return _unwrap(services.categories.update_category(data), not_found="Category not found")


@app.delete("/api/admin/categories/{category_id}")
def delete_category(category_id: str, services: Services = Depends(get_services)):
    """Delete a category (admin)."""
    _unwrap(services.categories.delete_category(category_id), not_found="Category not found")
    return {"deleted": category_id}


# ===== POSTS =====

@app.get("/api/posts")
def list_posts(
    lang: Optional[str] = Query(None),
    published: Optional[bool] = None,
    category_id: Optional[str] = None,
    author_id: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1),
    offset: Optional[int] = Query(None, ge=0),
    services: Services = Depends(get_services),
):
    """Posts newest first, localized."""
    language = lang or services.default_language
    filters = PostFilters(published=published, category_id=category_id, author_id=author_id, limit=limit, offset=offset)
    posts = _unwrap(services.posts.get_posts(language, filters))
    return {"language": language, "count": len(posts), "posts": posts}


@app.get("/api/posts/search")
def search_posts(
    q: str = Query(..., min_length=1),
    category_id: Optional[str] = None,
    published: Optional[bool] = None,
    services: Services = Depends(get_services),
):
    """Substring search over title, content and excerpt."""
    posts = _unwrap(services.posts.search_posts(q, category_id=category_id, published=published))
    return {"query": q, "count": len(posts), "posts": posts}


@app.get("/api/posts/by-id/{post_id}")
def get_post_by_id(post_id: str, lang: Optional[str] = Query(None), services: Services = Depends(get_services)):
    """Single post by id, localized."""
    return _unwrap(services.posts.get_post_by_id(post_id, lang), not_found="Post not found")


@app.get("/api/posts/{slug}")
def get_post_by_slug(slug: str, lang: Optional[str] = Query(None), services: Services = Depends(get_services)):
    """Single post by the slug of any language, localized."""
    return _unwrap(services.posts.get_post_by_slug(slug, lang), not_found="Post not found")


@app.post("/api/admin/posts", status_code=201)
def create_post(data: CreatePostData, services: Services = Depends(get_services)):
    """Create a post (admin)."""
    unique = services.posts.check_slug_uniqueness(data.slug)
    if unique.ok and not unique.data:
        raise HTTPException(status_code=409, detail="A post with this slug already exists")
    return _unwrap(services.posts.create_post(data))


@app.put("/api/admin/posts/{post_id}")
def update_post(post_id: str, data: UpdatePostData, services: Services = Depends(get_services)):
    """Update a post (admin)."""
    if data.slug:
        unique = services.posts.check_slug_uniqueness(data.slug, exclude_post_id=post_id)
        if unique.ok and not unique.data:
            raise HTTPException(status_code=409, detail="A post with this slug already exists")
    data = data.model_copy(update={"id": post_id})
    return _unwrap(services.posts.update_post(data), not_found="Post not found")


@app.delete("/api/admin/posts/{post_id}")
def delete_post(post_id: str, services: Services = Depends(get_services)):
    """Delete a post (admin)."""
    _unwrap(services.posts.delete_post(post_id), not_found="Post not found")
    return {"deleted": post_id}


# ===== Q&A =====

class AnswerSubmission(BaseModel):
    """Answer form body; the question comes from the URL."""
    content: str = Field(..., min_length=1)
    author_id: Optional[str] = None


@app.get("/api/questions")
def list_questions(
    status: Optional[str] = Query(None, pattern="^(open|answered|closed|all)$"),
    category_id: Optional[str] = None,
    author_id: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1),
    offset: Optional[int] = Query(None, ge=0),
    services: Services = Depends(get_services),
):
    """Questions newest first."""
    filters = QuestionFilters(status=status, category_id=category_id, author_id=author_id, limit=limit, offset=offset)
    questions = _unwrap(services.questions.get_questions(filters))
    return {"count": len(questions), "questions": questions}


@app.get("/api/questions/stats")
def qa_stats(services: Services = Depends(get_services)):
    """Q&A section counters."""
    return _unwrap(services.questions.get_qa_stats())


@app.get("/api/questions/{slug}")
def get_question(slug: str, services: Services = Depends(get_services)):
    """Single question."""
    return _unwrap(services.questions.get_question_by_slug(slug), not_found="Question not found")


@app.post("/api/questions", status_code=201)
def ask_question(data: CreateQuestionData, services: Services = Depends(get_services)):
    """Ask a question."""
    return _unwrap(services.questions.create_question(data))


@app.get("/api/questions/{question_id}/answers")
def list_answers(question_id: str, services: Services = Depends(get_services)):
    """Answers of a question, best first."""
    answers = _unwrap(services.questions.get_answers(question_id))
    return {"question_id": question_id, "count": len(answers), "answers": answers}


@app.post("/api/questions/{question_id}/answers", status_code=201)
def submit_answer(question_id: str, body: AnswerSubmission, services: Services = Depends(get_services)):
    """Answer a question."""
    data = CreateAnswerData(question_id=question_id, **body.model_dump())
    return _unwrap(services.questions.create_answer(data), not_found="Question not found")


@app.post("/api/questions/{question_id}/answers/{answer_id}/best")
def mark_best_answer(question_id: str, answer_id: str, services: Services = Depends(get_services)):
    """Mark an answer as the question's best answer."""
    _unwrap(services.questions.mark_best_answer(question_id, answer_id), not_found="Answer not found")
    return {"question_id": question_id, "best_answer_id": answer_id}
