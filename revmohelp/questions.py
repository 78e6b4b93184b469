"""
Patient questions and doctors' answers (Q&A section).
"""
import logging
import re
import time
from collections import Counter
from typing import Any, Dict, List, Mapping, Optional, Union

from revmohelp.backend import Backend, page_window
from revmohelp.cache import CacheManager, cache_keys, invalidate_related_cache, with_cache
from revmohelp.categories import attach_categories
from revmohelp.errors import BackendError, Result, is_ok
from revmohelp.schemas import Answer, CreateAnswerData, CreateQuestionData, QAStats, Question, QuestionFilters

logger = logging.getLogger("questions")

META_TITLE_MAX = 60
META_DESCRIPTION_MAX = 160
MAX_AUTO_TAGS = 5

STOPWORDS = frozenset([
    # uz
    "va", "ham", "bilan", "uchun", "bu", "shu", "u", "ko'p", "kam", "qanday", "qandaydir",
    "bor", "yo'q", "emas", "lekin", "yoki", "boshqa", "hali", "shuningdek", "degan", "deb",
    "qilib", "qilmoq", "da", "ning", "ga", "dan", "ni", "ta", "q", "bir", "ikki", "uch",
    "to'rt", "besh", "oltita", "etti", "sakkiz", "to'qqiz", "o'n",
    # ru
    "и", "в", "во", "не", "что", "он", "на", "я", "с", "со", "как", "а", "то", "все", "она",
    "так", "его", "но", "да", "ты", "к", "у", "же", "вы", "за", "бы", "по", "ее", "мне",
    "есть", "если", "из", "уже", "только", "мы", "такой", "еще", "для", "чтобы", "когда",
    "тогда", "без", "про", "ли", "быть",
    # en
    "the", "a", "an", "and", "or", "but", "if", "then", "else", "for", "of", "on", "in", "at",
    "to", "from", "by", "with", "is", "are", "was", "were", "be", "been", "being", "it",
    "this", "that", "these", "those", "as", "about", "into", "over", "after", "before",
    "between", "during", "out", "up", "down",
])

QuestionFiltersLike = Union[QuestionFilters, Mapping[str, Any], None]


def _coerce(filters: QuestionFiltersLike) -> QuestionFilters:
    if isinstance(filters, QuestionFilters):
        return filters
    return QuestionFilters(**(filters or {}))


def extract_tags(title: str, content: str, max_tags: int = MAX_AUTO_TAGS) -> List[str]:
    """
    Most frequent words of a question, ties in order of first appearance.

    Words shorter than three letters and stopwords are skipped.
    """
    text = f"{title} {content}".lower()
    words = re.sub(r"[^a-zа-яё0-9\s'-]", " ", text).split()
    counts: Counter = Counter()
    for word in words:
        if len(word) < 3 or word in STOPWORDS:
            continue
        word = word.strip("-")
        if word:
            counts[word] += 1
    return [word for word, _ in counts.most_common(max_tags)]


def question_slug(title: str, now_ms: Optional[int] = None) -> str:
    """Slug from the title plus a millisecond timestamp, unique per submission."""
    base = re.sub(r"[^a-z0-9\s-]", "", title.lower())
    base = re.sub(r"-+", "-", re.sub(r"\s+", "-", base)).strip()
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{base}-{now_ms}"


def meta_fields(data: CreateQuestionData) -> Dict[str, str]:
    plain_content = " ".join(data.content.split())
    return {
        "meta_title": (data.meta_title or data.title)[:META_TITLE_MAX],
        "meta_description": (data.meta_description or plain_content)[:META_DESCRIPTION_MAX],
    }


def sort_answers(answers: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Best answer first, then most votes, then oldest."""
    return sorted(
        answers,
        key=lambda a: (not a.get("is_best_answer"), -(a.get("votes_count") or 0), a["created_at"]),
    )


class QuestionRepository:
    """Cached Q&A reads, question and answer submission."""

    def __init__(self, backend: Backend, cache: CacheManager):
        self.backend = backend
        self.cache = cache

        self.get_questions = with_cache(
            cache,
            self._get_questions,
            lambda filters=None: cache_keys.questions(_coerce(filters)),
            cache_if=is_ok,
        )
        self.get_question_by_slug = with_cache(cache, self._get_question_by_slug, cache_keys.question_by_slug, cache_if=is_ok)
        self.get_answers = with_cache(cache, self._get_answers, cache_keys.answers, cache_if=is_ok)

    # ----- reads -----

    def _get_questions(self, filters: QuestionFiltersLike = None) -> Result:
        """Questions newest first; status "all" disables the status filter."""
        filters = _coerce(filters)
        offset, limit = page_window(filters.limit, filters.offset)
        status = None if filters.status == "all" else filters.status
        try:
            rows = self.backend.select(
                "questions",
                filters={"status": status, "category_id": filters.category_id, "author_id": filters.author_id},
                order_by="created_at",
                descending=True,
                offset=offset,
                limit=limit,
            )
        except BackendError as e:
            logger.warning(f"Error loading questions: {e.message}")
            return Result.failure(e.message, data=[])

        try:
            attach_categories(self.backend, rows)
            questions = [Question(**row) for row in rows]
        except Exception as e:
            logger.warning(f"Error fetching questions: {e}", exc_info=True)
            return Result.failure("Error fetching questions", data=[])

        logger.info(f"Loaded {len(questions)} questions")
        return Result.success(questions)

    def _get_question_by_slug(self, slug: str) -> Result:
        """Single question; counts a view on every uncached read."""
        try:
            rows = self.backend.select("questions", filters={"slug": slug}, limit=1)
        except BackendError as e:
            logger.warning(f"Error loading question {slug}: {e.message}")
            return Result.failure(e.message)
        if not rows:
            return Result.failure("Question not found")

        row = rows[0]
        try:
            attach_categories(self.backend, [row])
            question = Question(**row)
        except Exception as e:
            logger.warning(f"Error fetching question {slug}: {e}", exc_info=True)
            return Result.failure("Error fetching question")

        try:
            self.backend.update("questions", row["id"], {"views_count": (row.get("views_count") or 0) + 1})
        except BackendError as e:
            logger.warning(f"Could not count view of question {slug}: {e.message}")
        return Result.success(question)

    def _get_answers(self, question_id: str) -> Result:
        try:
            rows = self.backend.select("answers", filters={"question_id": question_id}, order_by="created_at")
            return Result.success([Answer(**row) for row in sort_answers(rows)])
        except BackendError as e:
            logger.warning(f"Error loading answers for question {question_id}: {e.message}")
            return Result.failure(e.message, data=[])
        except Exception as e:
            logger.warning(f"Error fetching answers for question {question_id}: {e}", exc_info=True)
            return Result.failure("Error fetching answers", data=[])

    def get_qa_stats(self) -> Result:
        """Counters for the Q&A landing page. Not cached."""
        try:
            stats = QAStats(
                total_questions=self.backend.count("questions"),
                answered_questions=self.backend.count("questions", {"status": "answered"}),
                total_answers=self.backend.count("answers"),
                total_doctors=self.backend.count("doctor_profiles", {"active": True}),
            )
        except BackendError as e:
            logger.warning(f"Error loading Q&A stats: {e.message}")
            return Result.failure(e.message, data=QAStats())
        return Result.success(stats)

    # ----- mutations -----

    def create_question(self, data: CreateQuestionData) -> Result:
        """Store a question; empty tags and meta fields are derived from its text."""
        values = {
            "title": data.title,
            "content": data.content,
            "slug": question_slug(data.title),
            "author_id": data.author_id,
            "category_id": data.category_id,
            "tags": data.tags or extract_tags(data.title, data.content),
            **meta_fields(data),
        }
        try:
            row = self.backend.insert("questions", values)
        except BackendError as e:
            logger.warning(f"Error creating question: {e.message}")
            return Result.failure(e.message)
        finally:
            invalidate_related_cache(self.cache, "question")

        logger.info(f"Created question {row['slug']} with tags {row['tags']}")
        return Result.success(Question(**row))

    def create_answer(self, data: CreateAnswerData) -> Result:
        """
        Store an answer and bump the question's answer count.

        An open question becomes "answered" with its first answer.
        """
        try:
            question = self.backend.get("questions", data.question_id)
            if question is None:
                return Result.failure("Question not found")
            row = self.backend.insert("answers", data.model_dump())
            changes: Dict[str, Any] = {"answers_count": (question.get("answers_count") or 0) + 1}
            if question.get("status") == "open":
                changes["status"] = "answered"
            self.backend.update("questions", data.question_id, changes)
        except BackendError as e:
            logger.warning(f"Error creating answer for question {data.question_id}: {e.message}")
            return Result.failure(e.message)
        finally:
            invalidate_related_cache(self.cache, "answer", data.question_id)

        return Result.success(Answer(**row))

    def mark_best_answer(self, question_id: str, answer_id: str) -> Result:
        """Make one answer the question's best answer, unmarking any previous one."""
        try:
            answers = self.backend.select("answers", filters={"question_id": question_id})
            if answer_id not in {a["id"] for a in answers}:
                return Result.failure("Answer not found", data=False)
            for answer in answers:
                if answer["is_best_answer"] and answer["id"] != answer_id:
                    self.backend.update("answers", answer["id"], {"is_best_answer": False})
            self.backend.update("answers", answer_id, {"is_best_answer": True})
            self.backend.update("questions", question_id, {"best_answer_id": answer_id})
        except BackendError as e:
            logger.warning(f"Error marking best answer {answer_id}: {e.message}")
            return Result.failure(e.message, data=False)
        finally:
            invalidate_related_cache(self.cache, "answer", question_id)

        return Result.success(True)
