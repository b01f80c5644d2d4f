from .search import (
    SearchStrategy,
    PostgresFullTextSearch,
    MySQLFullTextSearch,
    LikeSearch,
    get_search_strategy,
)
from .vacancy_repository import VacancyRepository, Page, PAGE_SIZE

__all__ = [
    "SearchStrategy",
    "PostgresFullTextSearch",
    "MySQLFullTextSearch",
    "LikeSearch",
    "get_search_strategy",
    "VacancyRepository",
    "Page",
    "PAGE_SIZE",
]
