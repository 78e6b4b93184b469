"""
Pydantic schemas for repository options and API request/response models
"""
from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field

Language = Literal["uz", "ru", "en"]


# ===== DOCTOR SCHEMAS =====

class DoctorFilters(BaseModel):
    """
    Options for the doctors list.

    Every field is optional; page/page_size default the same way whether
    omitted or passed explicitly, so both spellings share a cache key.
    """
    active: Optional[bool] = None
    verified: Optional[bool] = None
    limit: Optional[int] = Field(None, ge=1)
    page: int = Field(1, ge=1)
    page_size: int = Field(12, ge=1, le=100)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class DoctorRecord(BaseModel):
    """Doctor as shown on the site, merged from profiles and legacy doctors"""
    id: str
    full_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    specialization: str
    experience_years: int = 0
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    certificates: List[str] = []
    verified: bool = False
    active: bool = True
    order_index: int = 0
    created_at: datetime
    updated_at: Optional[datetime] = None
    current_language: Optional[str] = None
    source: Literal["profiles", "legacy"] = "legacy"


class DoctorTranslationInput(BaseModel):
    """Localized doctor fields for one language"""
    bio: Optional[str] = None
    specialization: Optional[str] = None


class CreateDoctorData(BaseModel):
    """Admin form data for a new doctor"""
    full_name: str = Field(..., min_length=1)
    email: EmailStr
    phone: Optional[str] = None
    specialization: str = Field(..., min_length=1)
    experience_years: int = Field(0, ge=0)
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    certificates: List[str] = []
    verified: Optional[bool] = None
    active: Optional[bool] = None
    order_index: Optional[int] = None
    translations: Dict[Language, DoctorTranslationInput] = {}


class UpdateDoctorData(BaseModel):
    """Partial update; only fields that are set are written"""
    id: Optional[str] = None  # taken from the URL by the API
    full_name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    specialization: Optional[str] = None
    experience_years: Optional[int] = Field(None, ge=0)
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    certificates: Optional[List[str]] = None
    verified: Optional[bool] = None
    active: Optional[bool] = None
    order_index: Optional[int] = None
    translations: Optional[Dict[Language, DoctorTranslationInput]] = None


# ===== REVIEW SCHEMAS =====

class ReviewFilters(BaseModel):
    """Options for a doctor's review list"""
    approved: Optional[bool] = None
    limit: Optional[int] = Field(None, ge=1)


class DoctorReview(BaseModel):
    """Review response"""
    id: str
    doctor_id: str
    user_id: Optional[str] = None
    rating: int
    comment: str
    anonymous: bool = False
    reviewer_name: Optional[str] = None
    approved: bool = True
    created_at: datetime
    updated_at: Optional[datetime] = None


class CreateDoctorReviewData(BaseModel):
    """New review submitted by a patient"""
    doctor_id: str
    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=1)
    anonymous: bool = False
    reviewer_name: Optional[str] = None
    user_id: Optional[str] = None


class DoctorRatingStats(BaseModel):
    """Aggregate over a doctor's approved reviews"""
    average_rating: float = 0.0
    total_reviews: int = 0
    rating_distribution: Dict[int, int] = Field(
        default_factory=lambda: {1: 0, 2: 0, 3: 0, 4: 0, 5: 0}
    )


# ===== PATIENT STORY SCHEMAS =====

class PatientStoryFilters(BaseModel):
    """Options for the patient stories list"""
    published: Optional[bool] = None
    featured: Optional[bool] = None
    limit: Optional[int] = Field(None, ge=1)


class PatientStory(BaseModel):
    """Patient story as shown on the site, localized"""
    id: str
    patient_name: str
    age: int
    diagnosis: str
    story_content: str
    treatment_duration: str = ""
    outcome: str = ""
    doctor_name: str = ""
    content_type: Literal["text", "image", "video"] = "text"
    featured_image_url: Optional[str] = None
    youtube_url: Optional[str] = None
    symptoms: List[str] = []
    treatment_methods: List[str] = []
    medications: List[str] = []
    lifestyle_changes: str = ""
    rating: int = 5
    featured: bool = False
    published: bool = True
    order_index: int = 0
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    current_language: Optional[str] = None


class StoryTranslationInput(BaseModel):
    """Localized story fields for one language; unset fields copy the base story"""
    patient_name: Optional[str] = None
    diagnosis: Optional[str] = None
    story_content: Optional[str] = None
    treatment_duration: Optional[str] = None
    outcome: Optional[str] = None
    doctor_name: Optional[str] = None
    symptoms: Optional[List[str]] = None
    treatment_methods: Optional[List[str]] = None
    medications: Optional[List[str]] = None
    lifestyle_changes: Optional[str] = None
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None


class CreatePatientStoryData(BaseModel):
    """Admin form data for a new patient story"""
    patient_name: str = Field(..., min_length=1)
    age: int = Field(..., ge=0, le=130)
    diagnosis: str
    story_content: str
    treatment_duration: str = ""
    outcome: str = ""
    doctor_name: str = ""
    content_type: Literal["text", "image", "video"] = "text"
    featured_image_url: Optional[str] = None
    youtube_url: Optional[str] = None
    symptoms: List[str] = []
    treatment_methods: List[str] = []
    medications: List[str] = []
    lifestyle_changes: str = ""
    rating: int = Field(5, ge=1, le=5)
    featured: bool = False
    published: bool = True
    order_index: int = 0
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    translations: Dict[Language, StoryTranslationInput] = {}


class UpdatePatientStoryData(BaseModel):
    """Partial story update"""
    id: Optional[str] = None  # taken from the URL by the API
    patient_name: Optional[str] = None
    age: Optional[int] = Field(None, ge=0, le=130)
    diagnosis: Optional[str] = None
    story_content: Optional[str] = None
    treatment_duration: Optional[str] = None
    outcome: Optional[str] = None
    doctor_name: Optional[str] = None
    content_type: Optional[Literal["text", "image", "video"]] = None
    featured_image_url: Optional[str] = None
    youtube_url: Optional[str] = None
    symptoms: Optional[List[str]] = None
    treatment_methods: Optional[List[str]] = None
    medications: Optional[List[str]] = None
    lifestyle_changes: Optional[str] = None
    rating: Optional[int] = Field(None, ge=1, le=5)
    featured: Optional[bool] = None
    published: Optional[bool] = None
    order_index: Optional[int] = None
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    translations: Optional[Dict[Language, StoryTranslationInput]] = None


# ===== CATEGORY SCHEMAS =====

class Category(BaseModel):
    """Post/question category"""
    id: str
    name: str
    slug: str
    description: Optional[str] = None
    color: str = "#3B82F6"
    created_at: datetime


class CreateCategoryData(BaseModel):
    name: str = Field(..., min_length=1)
    slug: str = Field(..., min_length=1)
    description: Optional[str] = None
    color: str = "#3B82F6"


class UpdateCategoryData(BaseModel):
    id: Optional[str] = None  # taken from the URL by the API
    name: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None


class CategoryRef(BaseModel):
    """Category embedded in a post or question"""
    id: str
    name: str
    slug: str
    color: str


# ===== POST SCHEMAS =====

class PostFilters(BaseModel):
    """Options for the posts list"""
    published: Optional[bool] = None
    category_id: Optional[str] = None
    author_id: Optional[str] = None
    limit: Optional[int] = Field(None, ge=1)
    offset: Optional[int] = Field(None, ge=0)


class Post(BaseModel):
    """Blog post as shown on the site, localized"""
    id: str
    title: str
    content: str
    excerpt: str = ""
    slug: str
    featured_image_url: Optional[str] = None
    youtube_url: Optional[str] = None
    author_id: Optional[str] = None
    category_id: Optional[str] = None
    category: Optional[CategoryRef] = None
    tags: List[str] = []
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    published: bool = False
    published_at: Optional[datetime] = None
    views_count: int = 0
    created_at: datetime
    updated_at: Optional[datetime] = None
    current_language: Optional[str] = None


class PostTranslationInput(BaseModel):
    """Localized post fields; empty fields copy the base post"""
    title: Optional[str] = None
    content: Optional[str] = None
    excerpt: Optional[str] = None
    slug: Optional[str] = None
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None


class CreatePostData(BaseModel):
    """Admin form data for a new post, written in the default language"""
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    excerpt: str = ""
    slug: str = Field(..., min_length=1)
    featured_image_url: Optional[str] = None
    youtube_url: Optional[str] = None
    author_id: Optional[str] = None
    category_id: Optional[str] = None
    tags: List[str] = []
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    published: bool = False
    translations: Dict[Language, PostTranslationInput] = {}


class UpdatePostData(BaseModel):
    """Partial post update"""
    id: Optional[str] = None  # taken from the URL by the API
    title: Optional[str] = None
    content: Optional[str] = None
    excerpt: Optional[str] = None
    slug: Optional[str] = None
    featured_image_url: Optional[str] = None
    youtube_url: Optional[str] = None
    category_id: Optional[str] = None
    tags: Optional[List[str]] = None
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    published: Optional[bool] = None
    translations: Optional[Dict[Language, PostTranslationInput]] = None


# ===== Q&A SCHEMAS =====

QuestionStatus = Literal["open", "answered", "closed"]


class QuestionFilters(BaseModel):
    """Options for the questions list; status "all" means no status filter"""
    status: Optional[Literal["open", "answered", "closed", "all"]] = None
    category_id: Optional[str] = None
    author_id: Optional[str] = None
    limit: Optional[int] = Field(None, ge=1)
    offset: Optional[int] = Field(None, ge=0)


class Question(BaseModel):
    id: str
    title: str
    content: str
    slug: str
    author_id: Optional[str] = None
    category_id: Optional[str] = None
    category: Optional[CategoryRef] = None
    tags: List[str] = []
    status: QuestionStatus = "open"
    views_count: int = 0
    votes_count: int = 0
    answers_count: int = 0
    best_answer_id: Optional[str] = None
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class Answer(BaseModel):
    id: str
    question_id: str
    content: str
    author_id: Optional[str] = None
    is_best_answer: bool = False
    votes_count: int = 0
    helpful_count: int = 0
    created_at: datetime
    updated_at: Optional[datetime] = None


class CreateQuestionData(BaseModel):
    """New question; tags and meta fields are derived when left empty"""
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    category_id: Optional[str] = None
    tags: List[str] = []
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    author_id: Optional[str] = None


class CreateAnswerData(BaseModel):
    question_id: str
    content: str = Field(..., min_length=1)
    author_id: Optional[str] = None


class QAStats(BaseModel):
    """Q&A section counters"""
    total_questions: int = 0
    answered_questions: int = 0
    total_answers: int = 0
    total_doctors: int = 0
