"""
Database models for the Revmohelp medical-information site
SQLAlchemy ORM models for doctors, reviews, patient stories, posts and Q&A
"""
import uuid
from datetime import datetime
from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey, Integer, JSON, String, Text, UniqueConstraint
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


class DoctorProfile(Base):
    """
    Doctor profile - doctors who registered themselves through the site
    Has no explicit ordering; listed after admin-ordered doctors
    """
    __tablename__ = "doctor_profiles"

    id = Column(String, primary_key=True, default=_uuid)
    full_name = Column(String, nullable=False)
    email = Column(String, nullable=True, index=True)
    phone = Column(String, nullable=True)
    specialization = Column(String, nullable=False)
    experience_years = Column(Integer, nullable=False, default=0)
    bio = Column(Text, nullable=True)
    avatar_url = Column(String, nullable=True)
    certificates = Column(JSON, nullable=False, default=list)
    verified = Column(Boolean, nullable=False, default=False)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    translations = relationship(
        "DoctorProfileTranslation", back_populates="profile", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<DoctorProfile(id='{self.id}', full_name='{self.full_name}')>"


class DoctorProfileTranslation(Base):
    """
    Localized bio/specialization for a doctor profile, one per language
    """
    __tablename__ = "doctor_profile_translations"

    id = Column(String, primary_key=True, default=_uuid)
    profile_id = Column(String, ForeignKey("doctor_profiles.id", ondelete="CASCADE"), nullable=False)
    language = Column(String, nullable=False)
    bio = Column(Text, nullable=True)
    specialization = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    profile = relationship("DoctorProfile", back_populates="translations")

    # Constraints
    __table_args__ = (
        UniqueConstraint("profile_id", "language", name="uix_profile_language"),
    )


class Doctor(Base):
    """
    Legacy doctor entity - doctors added by admins, with explicit ordering
    """
    __tablename__ = "doctors"

    id = Column(String, primary_key=True, default=_uuid)
    full_name = Column(String, nullable=False)
    email = Column(String, nullable=True, index=True)
    phone = Column(String, nullable=True)
    specialization = Column(String, nullable=False)
    experience_years = Column(Integer, nullable=False, default=0)
    bio = Column(Text, nullable=True)
    avatar_url = Column(String, nullable=True)
    certificates = Column(JSON, nullable=False, default=list)
    verified = Column(Boolean, nullable=False, default=False)
    active = Column(Boolean, nullable=False, default=True)
    order_index = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    translations = relationship(
        "DoctorTranslation", back_populates="doctor", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Doctor(id='{self.id}', full_name='{self.full_name}', order_index={self.order_index})>"


class DoctorTranslation(Base):
    """
    Localized bio/specialization for a legacy doctor, one per language
    """
    __tablename__ = "doctor_translations"

    id = Column(String, primary_key=True, default=_uuid)
    doctor_id = Column(String, ForeignKey("doctors.id", ondelete="CASCADE"), nullable=False)
    language = Column(String, nullable=False)
    bio = Column(Text, nullable=True)
    specialization = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    doctor = relationship("Doctor", back_populates="translations")

    # Constraints - at most one translation per language
    __table_args__ = (
        UniqueConstraint("doctor_id", "language", name="uix_doctor_language"),
    )


class DoctorReview(Base):
    """
    Patient review of a doctor, 1-5 stars
    """
    __tablename__ = "doctor_reviews"

    id = Column(String, primary_key=True, default=_uuid)
    doctor_id = Column(String, nullable=False, index=True)  # legacy or profile doctor id
    user_id = Column(String, nullable=True)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=False)
    anonymous = Column(Boolean, nullable=False, default=False)
    reviewer_name = Column(String, nullable=True)
    approved = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<DoctorReview(doctor_id='{self.doctor_id}', rating={self.rating})>"


class PatientStory(Base):
    """
    Patient success story, written in the default language
    """
    __tablename__ = "patient_stories"

    id = Column(String, primary_key=True, default=_uuid)
    patient_name = Column(String, nullable=False)
    age = Column(Integer, nullable=False)
    diagnosis = Column(String, nullable=False)
    story_content = Column(Text, nullable=False)
    treatment_duration = Column(String, nullable=False, default="")
    outcome = Column(Text, nullable=False, default="")
    doctor_name = Column(String, nullable=False, default="")
    content_type = Column(String, nullable=False, default="text")  # text/image/video
    featured_image_url = Column(String, nullable=True)
    youtube_url = Column(String, nullable=True)
    symptoms = Column(JSON, nullable=False, default=list)
    treatment_methods = Column(JSON, nullable=False, default=list)
    medications = Column(JSON, nullable=False, default=list)
    lifestyle_changes = Column(Text, nullable=False, default="")
    rating = Column(Integer, nullable=False, default=5)
    featured = Column(Boolean, nullable=False, default=False)
    published = Column(Boolean, nullable=False, default=True)
    order_index = Column(Integer, nullable=False, default=0)
    meta_title = Column(String, nullable=True)
    meta_description = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    translations = relationship(
        "PatientStoryTranslation", back_populates="story", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<PatientStory(id='{self.id}', patient_name='{self.patient_name}')>"


class PatientStoryTranslation(Base):
    """
    Localized story fields, one per language
    """
    __tablename__ = "patient_story_translations"

    id = Column(String, primary_key=True, default=_uuid)
    story_id = Column(String, ForeignKey("patient_stories.id", ondelete="CASCADE"), nullable=False)
    language = Column(String, nullable=False)
    patient_name = Column(String, nullable=True)
    diagnosis = Column(String, nullable=True)
    story_content = Column(Text, nullable=True)
    treatment_duration = Column(String, nullable=True)
    outcome = Column(Text, nullable=True)
    doctor_name = Column(String, nullable=True)
    symptoms = Column(JSON, nullable=True)
    treatment_methods = Column(JSON, nullable=True)
    medications = Column(JSON, nullable=True)
    lifestyle_changes = Column(Text, nullable=True)
    meta_title = Column(String, nullable=True)
    meta_description = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    story = relationship("PatientStory", back_populates="translations")

    # Constraints
    __table_args__ = (
        UniqueConstraint("story_id", "language", name="uix_story_language"),
    )


class Category(Base):
    """
    Post/question category (Artrit, Artroz, ...)
    """
    __tablename__ = "categories"

    id = Column(String, primary_key=True, default=_uuid)
    name = Column(String, nullable=False)
    slug = Column(String, nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    color = Column(String, nullable=False, default="#3B82F6")
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<Category(slug='{self.slug}')>"


class Post(Base):
    """
    Blog post written by a doctor, in the default language
    """
    __tablename__ = "posts"

    id = Column(String, primary_key=True, default=_uuid)
    title = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    excerpt = Column(Text, nullable=False, default="")
    slug = Column(String, nullable=False, unique=True, index=True)
    featured_image_url = Column(String, nullable=True)
    youtube_url = Column(String, nullable=True)
    author_id = Column(String, nullable=True, index=True)
    category_id = Column(String, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)
    tags = Column(JSON, nullable=False, default=list)
    meta_title = Column(String, nullable=True)
    meta_description = Column(String, nullable=True)
    published = Column(Boolean, nullable=False, default=False)
    published_at = Column(DateTime, nullable=True)
    views_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    translations = relationship(
        "PostTranslation", back_populates="post", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Post(slug='{self.slug}', published={self.published})>"


class PostTranslation(Base):
    """
    Localized post with its own slug, one per language
    """
    __tablename__ = "post_translations"

    id = Column(String, primary_key=True, default=_uuid)
    post_id = Column(String, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False)
    language = Column(String, nullable=False)
    title = Column(String, nullable=True)
    content = Column(Text, nullable=True)
    excerpt = Column(Text, nullable=True)
    slug = Column(String, nullable=True, index=True)
    meta_title = Column(String, nullable=True)
    meta_description = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    post = relationship("Post", back_populates="translations")

    # Constraints
    __table_args__ = (
        UniqueConstraint("post_id", "language", name="uix_post_language"),
    )


class Question(Base):
    """
    Patient question in the Q&A section
    """
    __tablename__ = "questions"

    id = Column(String, primary_key=True, default=_uuid)
    title = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    slug = Column(String, nullable=False, unique=True, index=True)
    author_id = Column(String, nullable=True)
    category_id = Column(String, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    status = Column(String, nullable=False, default="open")  # open/answered/closed
    views_count = Column(Integer, nullable=False, default=0)
    votes_count = Column(Integer, nullable=False, default=0)
    answers_count = Column(Integer, nullable=False, default=0)
    best_answer_id = Column(String, nullable=True)
    meta_title = Column(String, nullable=True)
    meta_description = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    answers = relationship("Answer", back_populates="question", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Question(slug='{self.slug}', status='{self.status}')>"


class Answer(Base):
    """
    Doctor's answer to a question
    """
    __tablename__ = "answers"

    id = Column(String, primary_key=True, default=_uuid)
    question_id = Column(String, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    author_id = Column(String, nullable=True)
    is_best_answer = Column(Boolean, nullable=False, default=False)
    votes_count = Column(Integer, nullable=False, default=0)
    helpful_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    question = relationship("Question", back_populates="answers")

    def __repr__(self):
        return f"<Answer(question_id='{self.question_id}', best={self.is_best_answer})>"
