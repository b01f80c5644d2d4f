"""
Vacancy data access.

Owns every query against the vacancy table. Knows nothing about caching or
response shapes; the service layer handles both.
"""
import logging
import math
from typing import List, NamedTuple, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from ..models import INTEGER_MAX, Vacancy
from ..schemas import SearchSort, SortField, SortOrder
from .search import SearchStrategy, LikeSearch

logger = logging.getLogger("vacancy_api.repository")

PAGE_SIZE = 10


class Page(NamedTuple):
    """One page of vacancies plus totals for the pagination block."""
    records: List[Vacancy]
    total: int
    page_count: int


class VacancyRepository:
    """
    Vacancy data access object.

    Args:
        db: SQLAlchemy session for the current request.
        search_strategy: Dialect-specific full-text strategy chosen at startup.
    """

    def __init__(self, db: Session, search_strategy: Optional[SearchStrategy] = None):
        self.db = db
        self.search_strategy = search_strategy or LikeSearch()

    def _paginate(self, query: Query, page: int) -> Page:
        total = query.order_by(None).count()
        records = query.offset((page - 1) * PAGE_SIZE).limit(PAGE_SIZE).all()
        return Page(records, total, math.ceil(total / PAGE_SIZE))

    def find_by_id(self, vacancy_id: int) -> Optional[Vacancy]:
        """None for unknown ids, including ids outside the INTEGER column range."""
        if not 1 <= vacancy_id <= INTEGER_MAX:
            return None
        return self.db.get(Vacancy, vacancy_id)

    def find_page(self, page: int, sort_field: SortField, sort_order: SortOrder) -> Page:
        """Page through all vacancies ordered by salary or creation time (ties by id)."""
        column = getattr(Vacancy, sort_field.value)
        if sort_order == SortOrder.ASC:
            ordering = [column.asc(), Vacancy.id.asc()]
        else:
            ordering = [column.desc(), Vacancy.id.desc()]
        return self._paginate(self.db.query(Vacancy).order_by(*ordering), page)

    def search(self, text: str, page: int, sort_order: SearchSort = SearchSort.RELEVANCE) -> Page:
        query = self.search_strategy.apply(self.db.query(Vacancy), text, sort_order)
        return self._paginate(query, page)

    def count(self) -> int:
        return self.db.query(Vacancy).count()

    def save(self, vacancy: Vacancy) -> bool:
        """
        Insert or update a vacancy.

        Returns False (after rolling back) if the database rejects the write,
        e.g. the salary check constraint.
        """
        vacancy_id = vacancy.id
        try:
            self.db.add(vacancy)
            self.db.commit()
            self.db.refresh(vacancy)
            return True
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to save vacancy {vacancy_id}: {e}")
            return False

    def rollback(self) -> None:
        self.db.rollback()

    def delete(self, vacancy_id: int) -> bool:
        """Delete by id. Returns False if no such vacancy exists."""
        vacancy = self.find_by_id(vacancy_id)
        if vacancy is None:
            return False
        self.db.delete(vacancy)
        self.db.commit()
        return True
