"""
Backend adapter: table-name based query and mutation interface.

Repositories talk to the database only through this class, so the
merge and caching logic never depends on SQLAlchemy directly. Every
failure surfaces as BackendError with a readable message.
"""
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from sqlalchemy import func, or_, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload, sessionmaker
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from revmohelp.errors import BackendError, RowNotFoundError
from revmohelp.models import (
    Answer,
    Category,
    Doctor,
    DoctorProfile,
    DoctorProfileTranslation,
    DoctorReview,
    DoctorTranslation,
    PatientStory,
    PatientStoryTranslation,
    Post,
    PostTranslation,
    Question,
)

logger = logging.getLogger("backend")

# Table name -> ORM model
TABLES = {
    "doctor_profiles": DoctorProfile,
    "doctor_profile_translations": DoctorProfileTranslation,
    "doctors": Doctor,
    "doctor_translations": DoctorTranslation,
    "doctor_reviews": DoctorReview,
    "patient_stories": PatientStory,
    "patient_story_translations": PatientStoryTranslation,
    "categories": Category,
    "posts": Post,
    "post_translations": PostTranslation,
    "questions": Question,
    "answers": Answer,
}

# Tables whose rows can be loaded together with their translation rows
TRANSLATED_TABLES = {"doctor_profiles", "doctors", "patient_stories", "posts"}


def page_window(limit: Optional[int], offset: Optional[int], page_size: int = 10) -> Tuple[Optional[int], Optional[int]]:
    """
    (offset, limit) for list options. An offset without a limit reads one
    page of page_size rows.
    """
    if offset and not limit:
        return offset, page_size
    return offset, limit


def row_to_dict(obj: Any) -> Dict[str, Any]:
    """Convert an ORM row to a plain dict of its columns."""
    return {column.name: getattr(obj, column.name) for column in obj.__table__.columns}


class Backend:
    """
    Query/mutation interface over a SQLAlchemy session factory.

    Usage:
        backend = Backend(session_factory)
        rows = backend.select("doctors", filters={"active": True},
                              order_by="order_index", offset=0, limit=12)
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        """Session scope that commits on success and maps errors to BackendError."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.warning(f"Backend error: {e}")
            raise BackendError(str(e).splitlines()[0]) from e
        finally:
            session.close()

    @staticmethod
    def _model(table: str):
        try:
            return TABLES[table]
        except KeyError:
            raise BackendError(f"Unknown table: {table}") from None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, max=2),
        retry=retry_if_exception_type(BackendError),
        reraise=True,
    )
    def _ping(self) -> None:
        with self._session() as session:
            session.execute(text("SELECT 1"))

    def is_available(self) -> bool:
        """
        Connectivity check.

        Retries a dropped connection with exponential backoff before
        reporting the backend as down.
        """
        try:
            self._ping()
            return True
        except BackendError as e:
            logger.warning(f"Backend not reachable: {e.message}")
            return False

    # ===== QUERIES =====

    def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        offset: Optional[int] = None,
        limit: Optional[int] = None,
        with_translations: bool = False,
        in_filter: Optional[Tuple[str, Iterable[Any]]] = None,
        exclude: Optional[Dict[str, Any]] = None,
        ci_filters: Optional[Dict[str, str]] = None,
        search: Optional[Tuple[Sequence[str], str]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Select rows from a table.

        Args:
            table: Table name (see TABLES)
            filters: Column equality filters; None values are ignored
            order_by: Column to order by
            descending: Order direction
            offset: Rows to skip
            limit: Maximum rows to return
            with_translations: Attach a "translations" list to each row
            in_filter: (column, values) membership filter
            exclude: Column inequality filters
            ci_filters: Case-insensitive column equality filters
            search: (columns, text) substring match on any of the columns

        Returns:
            Rows as dicts
        """
        model = self._model(table)
        if with_translations and table not in TRANSLATED_TABLES:
            raise BackendError(f"Table {table} has no translations")

        with self._session() as session:
            query = session.query(model)
            if with_translations:
                query = query.options(selectinload(model.translations))

            query = self._apply_filters(query, model, filters, exclude, ci_filters)
            if in_filter is not None:
                column, values = in_filter
                query = query.filter(getattr(model, column).in_(list(values)))
            if search is not None:
                columns, needle = search
                query = query.filter(or_(*(getattr(model, c).ilike(f"%{needle}%") for c in columns)))

            if order_by:
                column = getattr(model, order_by)
                query = query.order_by(column.desc() if descending else column.asc())
            if offset:
                query = query.offset(offset)
            if limit is not None:
                query = query.limit(limit)

            rows = []
            for obj in query.all():
                row = row_to_dict(obj)
                if with_translations:
                    row["translations"] = [row_to_dict(t) for t in obj.translations]
                rows.append(row)
            return rows

    @staticmethod
    def _apply_filters(query, model, filters=None, exclude=None, ci_filters=None):
        for column, value in (filters or {}).items():
            if value is not None:
                query = query.filter(getattr(model, column) == value)
        for column, value in (exclude or {}).items():
            if value is not None:
                query = query.filter(getattr(model, column) != value)
        for column, value in (ci_filters or {}).items():
            if value is not None:
                query = query.filter(func.lower(getattr(model, column)) == value.lower())
        return query

    def count(self, table: str, filters: Optional[Dict[str, Any]] = None) -> int:
        """Number of rows matching equality filters."""
        model = self._model(table)
        with self._session() as session:
            return self._apply_filters(session.query(model), model, filters).count()

    def get(self, table: str, row_id: str, with_translations: bool = False) -> Optional[Dict[str, Any]]:
        """Select a single row by primary key, None if it does not exist."""
        rows = self.select(table, filters={"id": row_id}, limit=1, with_translations=with_translations)
        return rows[0] if rows else None

    # ===== MUTATIONS =====

    def insert(self, table: str, values: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a row and return it."""
        model = self._model(table)
        with self._session() as session:
            obj = model(**values)
            session.add(obj)
            session.flush()
            return row_to_dict(obj)

    def insert_many(self, table: str, rows: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Insert several rows in one transaction."""
        model = self._model(table)
        with self._session() as session:
            objs = [model(**values) for values in rows]
            session.add_all(objs)
            session.flush()
            return [row_to_dict(obj) for obj in objs]

    def update(self, table: str, row_id: str, values: Dict[str, Any]) -> Dict[str, Any]:
        """
        Update columns of one row.

        Raises:
            RowNotFoundError: If the row does not exist
        """
        model = self._model(table)
        with self._session() as session:
            obj = session.get(model, row_id)
            if obj is None:
                raise RowNotFoundError(f"No row with id {row_id} in {table}")
            for column, value in values.items():
                setattr(obj, column, value)
            session.flush()
            return row_to_dict(obj)

    def upsert(
        self,
        table: str,
        values: Dict[str, Any],
        conflict: Sequence[str] = ("id",),
    ) -> Dict[str, Any]:
        """
        Insert a row, or update the existing row with the same conflict columns.

        Args:
            table: Table name
            values: Column values, must include every conflict column
            conflict: Columns identifying an existing row
        """
        model = self._model(table)
        with self._session() as session:
            query = session.query(model)
            for column in conflict:
                query = query.filter(getattr(model, column) == values[column])
            obj = query.first()
            if obj is None:
                obj = model(**values)
                session.add(obj)
            else:
                for column, value in values.items():
                    setattr(obj, column, value)
            session.flush()
            return row_to_dict(obj)

    def delete(self, table: str, row_id: str) -> bool:
        """
        Delete one row (translation rows cascade).

        Returns:
            True if a row was deleted
        """
        model = self._model(table)
        with self._session() as session:
            obj = session.get(model, row_id)
            if obj is None:
                return False
            session.delete(obj)
            return True
