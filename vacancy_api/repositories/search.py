"""
Full-text search strategies, one per database dialect.

The strategy is picked once at startup from the engine's dialect name
(see get_search_strategy) and handed to VacancyRepository. Every strategy
only adds a match predicate and an ordering to a Vacancy query, so paging
and response shape are identical across dialects.

    postgresql     search_vector @@ to_tsquery(config, 'term1 & term2'), ts_rank
    mysql/mariadb  MATCH(title, description) AGAINST (... IN NATURAL LANGUAGE MODE)
    anything else  case-insensitive substring match per term, no ranking
"""
import logging
import re
from typing import List

from sqlalchemy import cast, false, func, literal, literal_column, or_
from sqlalchemy.dialects.mysql import match
from sqlalchemy.dialects.postgresql import REGCONFIG
from sqlalchemy.orm import Query

from ..models import Vacancy
from ..schemas import SearchSort

logger = logging.getLogger("vacancy_api.search")

# Lexemes accepted by to_tsquery without escaping
_TSQUERY_TERM = re.compile(r"\w+", re.UNICODE)


def _created_order(sort_order: SearchSort) -> list:
    if sort_order == SearchSort.ASC:
        return [Vacancy.created_at.asc(), Vacancy.id.asc()]
    return [Vacancy.created_at.desc(), Vacancy.id.desc()]


class SearchStrategy:
    """Base strategy: subclasses add the match predicate and ordering."""
    name = "base"

    def apply(self, query: Query, text: str, sort_order: SearchSort) -> Query:
        raise NotImplementedError


class PostgresFullTextSearch(SearchStrategy):
    """Matches against the trigger-maintained `search_vector` tsvector column."""
    name = "postgresql"

    def __init__(self, config: str = "english"):
        self.config = config

    @staticmethod
    def to_tsquery_text(text: str) -> str:
        """'senior  python-dev' -> 'senior & python & dev'"""
        return " & ".join(_TSQUERY_TERM.findall(text))

    def apply(self, query: Query, text: str, sort_order: SearchSort) -> Query:
        terms = self.to_tsquery_text(text)
        if not terms:
            return query.filter(false())

        ts_query = func.to_tsquery(cast(literal(self.config), REGCONFIG), terms)
        search_vector = literal_column(f"{Vacancy.__tablename__}.search_vector")
        query = query.filter(search_vector.op("@@")(ts_query))

        if sort_order == SearchSort.RELEVANCE:
            rank = func.ts_rank(search_vector, ts_query)
            return query.order_by(rank.desc(), Vacancy.id.desc())
        return query.order_by(*_created_order(sort_order))


class MySQLFullTextSearch(SearchStrategy):
    """Uses the FULLTEXT(title, description) index from migration 003."""
    name = "mysql"

    def apply(self, query: Query, text: str, sort_order: SearchSort) -> Query:
        score = match(Vacancy.title, Vacancy.description, against=text).in_natural_language_mode()
        query = query.filter(score)

        if sort_order == SearchSort.RELEVANCE:
            return query.order_by(score.desc(), Vacancy.id.desc())
        return query.order_by(*_created_order(sort_order))


class LikeSearch(SearchStrategy):
    """
    Fallback for databases without a full-text index.

    Every whitespace-separated term must occur in the title or in the
    description. There is no relevance score: "relevance" sorts newest first.
    """
    name = "like"

    @staticmethod
    def terms(text: str) -> List[str]:
        return text.split()

    def apply(self, query: Query, text: str, sort_order: SearchSort) -> Query:
        terms = self.terms(text)
        if not terms:
            return query.filter(false())

        for term in terms:
            query = query.filter(
                or_(
                    Vacancy.title.icontains(term, autoescape=True),
                    Vacancy.description.icontains(term, autoescape=True),
                )
            )

        if sort_order == SearchSort.RELEVANCE:
            return query.order_by(*_created_order(SearchSort.DESC))
        return query.order_by(*_created_order(sort_order))


def get_search_strategy(dialect_name: str, fulltext_config: str = "english") -> SearchStrategy:
    """Pick the search strategy for a SQLAlchemy dialect name."""
    if dialect_name == "postgresql":
        strategy = PostgresFullTextSearch(fulltext_config)
    elif dialect_name in ("mysql", "mariadb"):
        strategy = MySQLFullTextSearch()
    else:
        strategy = LikeSearch()
    logger.info(f"Search strategy for dialect '{dialect_name}': {strategy.name}")
    return strategy
