"""
Vacancy API - Vacancy service.

Business rules for vacancies: validation, response shaping, result caching
and cache invalidation. Sits between the router and VacancyRepository.

Cache keys:
    list:{page}:{sort_field}:{sort_order}       300s
    entity:{id}                                 600s (unfiltered view only)
    search:{md5(query)}:{page}:{sort_order}     300s

The cache has no pattern delete, so a mutation only clears list pages
1..LIST_CACHE_INVALIDATION_PAGES for every sort combination. Deeper list
pages and all search results keep serving stale data until their TTL runs
out.
"""
import hashlib
import logging
from contextlib import contextmanager
from typing import Any, Dict, Mapping, Optional, Sequence, Type

from sqlalchemy.exc import SQLAlchemyError

from ..cache import CacheError, CacheStore, build_key
from ..exceptions import PersistenceError, VacancyNotFoundError, VacancyValidationError
from ..models import Vacancy
from ..repositories import PAGE_SIZE, Page, VacancyRepository
from ..schemas import (
    EDITABLE_FIELDS,
    MAX_PROJECTED_FIELDS,
    SearchSort,
    SortField,
    SortOrder,
    VacancyField,
    parse_fields,
    validate_vacancy,
)

logger = logging.getLogger("vacancy_api.services.vacancy")

CACHE_TTL_LIST = 300
CACHE_TTL_SINGLE = 600
LIST_CACHE_INVALIDATION_PAGES = 10
SEARCH_QUERY_MAX_LENGTH = 255


def _coerce(enum_cls: Type, value: Any, default, label: str):
    """Map a raw parameter onto an enum member, falling back to `default`."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        logger.warning(f"Invalid {label} requested: {value!r}. Using default '{default.value}'")
        return default


def _summary(vacancy: Vacancy) -> Dict[str, Any]:
    return {
        "id": vacancy.id,
        "title": vacancy.title,
        "salary": vacancy.salary,
        "description": vacancy.description,
    }


def _pagination(page: int, total: int, page_count: int) -> Dict[str, int]:
    return {
        "total": total,
        "page": page,
        "pageSize": PAGE_SIZE,
        "pageCount": page_count,
    }


def list_cache_key(page: int, sort_field: SortField, sort_order: SortOrder) -> str:
    return build_key("list", page, sort_field.value, sort_order.value)


def entity_cache_key(vacancy_id: int) -> str:
    return build_key("entity", vacancy_id)


def search_cache_key(query: str, page: int, sort_order: SearchSort) -> str:
    digest = hashlib.md5(query.encode("utf-8")).hexdigest()
    return build_key("search", digest, page, sort_order.value)


def invalidated_list_cache_keys():
    """Every list key cleared on mutation: first pages x sort fields x sort orders."""
    return [
        list_cache_key(page, field, order)
        for page in range(1, LIST_CACHE_INVALIDATION_PAGES + 1)
        for field in SortField
        for order in SortOrder
    ]


class VacancyService:
    """
    Vacancy use cases.

    Args:
        repository: Data access for the current request.
        cache: Shared cache store. Cache failures are logged and treated as
            misses; they never fail a request.
    """

    def __init__(self, repository: VacancyRepository, cache: CacheStore):
        self.repository = repository
        self.cache = cache

    # -------------------------------------------------------------------------
    # Cache helpers
    # -------------------------------------------------------------------------

    def _cache_get(self, key: str) -> Optional[Any]:
        try:
            result = self.cache.get(key)
        except CacheError as e:
            logger.warning(f"Cache read failed for {key}: {e}")
            return None
        if result is not None:
            logger.info(f"Cache HIT: {key}")
        return result

    def _cache_set(self, key: str, value: Any, ttl: int) -> None:
        try:
            if not self.cache.set(key, value, ttl):
                logger.warning(f"Cache write rejected for {key}")
        except CacheError as e:
            logger.warning(f"Cache write failed for {key}: {e}")

    def _cache_delete(self, key: str) -> None:
        try:
            self.cache.delete(key)
        except CacheError as e:
            logger.warning(f"Cache delete failed for {key}: {e}")

    def invalidate_vacancy_cache(self, vacancy_id: int) -> None:
        self._cache_delete(entity_cache_key(vacancy_id))
        logger.info(f"Cache invalidated for vacancy {vacancy_id}")

    def invalidate_list_cache(self) -> None:
        for key in invalidated_list_cache_keys():
            self._cache_delete(key)
        logger.info("Cache invalidated for vacancy lists")

    @contextmanager
    def _storage(self, action: str):
        """Turn database errors into an opaque PersistenceError."""
        try:
            yield
        except SQLAlchemyError as e:
            self.repository.rollback()
            logger.error(f"Database error while {action}: {e}")
            raise PersistenceError()

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def list_vacancies(self, page: int, sort_field: Any, sort_order: Any) -> Dict[str, Any]:
        """
        Get one page of vacancies sorted by salary or creation time.

        Invalid sort values fall back to created_at / desc. The caller is
        responsible for clamping `page`.
        """
        sort_field = _coerce(SortField, sort_field, SortField.CREATED_AT, "sort field")
        sort_order = _coerce(SortOrder, sort_order, SortOrder.DESC, "sort order")

        key = list_cache_key(page, sort_field, sort_order)
        cached = self._cache_get(key)
        if cached is not None:
            return cached

        logger.info(f"Cache MISS. Fetching vacancy list: page={page}, sort={sort_field.value}, order={sort_order.value}")
        with self._storage("listing vacancies"):
            result_page: Page = self.repository.find_page(page, sort_field, sort_order)

        result = {
            "data": [_summary(v) for v in result_page.records],
            "pagination": _pagination(page, result_page.total, result_page.page_count),
        }
        self._cache_set(key, result, CACHE_TTL_LIST)
        return result

    def get_vacancy(self, vacancy_id: int, fields: Optional[Sequence[str]] = None) -> Optional[Dict[str, Any]]:
        """
        Get one vacancy, or None if it does not exist.

        With `fields`, only `id` plus the requested subset of title,
        description, salary and additional_fields is returned (unknown names
        are ignored, at most MAX_PROJECTED_FIELDS are considered). Only the
        unfiltered view is read from and written to the cache.
        """
        key = entity_cache_key(vacancy_id)
        if fields is None:
            cached = self._cache_get(key)
            if cached is not None:
                return cached

        with self._storage(f"fetching vacancy {vacancy_id}"):
            vacancy = self.repository.find_by_id(vacancy_id)

        if vacancy is None:
            logger.warning(f"Vacancy not found: ID={vacancy_id}")
            return None

        if fields is not None:
            result = {"id": vacancy.id}
            for field in parse_fields(list(fields)[:MAX_PROJECTED_FIELDS]):
                value = getattr(vacancy, field.value)
                if field == VacancyField.ADDITIONAL_FIELDS and not value:
                    continue
                result[field.value] = value
            return result

        result = _summary(vacancy)
        if vacancy.additional_fields:
            result["additional_fields"] = vacancy.additional_fields
        self._cache_set(key, result, CACHE_TTL_SINGLE)
        return result

    def search_vacancies(self, query: str, page: int, sort_order: Any = SearchSort.RELEVANCE) -> Dict[str, Any]:
        """
        Full-text search over title and description.

        An empty query returns an empty result without touching the cache or
        the database. Queries longer than SEARCH_QUERY_MAX_LENGTH characters
        are truncated, and the truncated text is echoed back as "query".
        """
        query = (query or "").strip()
        if not query:
            logger.warning("Empty search query provided")
            return {"data": [], "pagination": _pagination(page, 0, 0), "query": ""}

        if len(query) > SEARCH_QUERY_MAX_LENGTH:
            query = query[:SEARCH_QUERY_MAX_LENGTH]
            logger.warning(f"Search query truncated to {SEARCH_QUERY_MAX_LENGTH} characters")

        sort_order = _coerce(SearchSort, sort_order, SearchSort.RELEVANCE, "search sort order")

        key = search_cache_key(query, page, sort_order)
        cached = self._cache_get(key)
        if cached is not None:
            return cached

        logger.info(f"Cache MISS. Searching vacancies: query={query!r}, page={page}, sort={sort_order.value}")
        with self._storage("searching vacancies"):
            result_page = self.repository.search(query, page, sort_order)

        result = {
            "data": [_summary(v) for v in result_page.records],
            "pagination": _pagination(page, result_page.total, result_page.page_count),
            "query": query,
        }
        self._cache_set(key, result, CACHE_TTL_LIST)
        return result

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def create_vacancy(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Validate and store a new vacancy.

        Raises:
            VacancyValidationError: invalid fields (nothing is written).
            PersistenceError: the database rejected the write.
        """
        try:
            payload = validate_vacancy(data, message="Failed to create vacancy")
        except VacancyValidationError as e:
            logger.warning(f"Vacancy validation failed: {e.errors}")
            raise

        vacancy = Vacancy(**payload.model_dump())
        with self._storage("creating vacancy"):
            saved = self.repository.save(vacancy)
        if not saved:
            logger.error("Failed to save vacancy to database")
            raise PersistenceError("Internal server error while saving the vacancy")

        self.invalidate_list_cache()
        logger.info(f"Vacancy created successfully: ID={vacancy.id}")
        return {
            "success": True,
            "id": vacancy.id,
            "message": "Vacancy created successfully",
        }

    def update_vacancy(self, vacancy_id: int, data: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Partially update a vacancy.

        Only editable fields present in `data` with a non-null value are
        applied; everything else keeps its stored value. The merged vacancy is
        validated as a whole before anything is written.

        Raises:
            VacancyNotFoundError, VacancyValidationError, PersistenceError
        """
        with self._storage(f"fetching vacancy {vacancy_id}"):
            vacancy = self.repository.find_by_id(vacancy_id)
        if vacancy is None:
            logger.warning(f"Vacancy not found for update: ID={vacancy_id}")
            raise VacancyNotFoundError()

        if not isinstance(data, Mapping):
            raise VacancyValidationError(
                {"__root__": ["Request body must be a JSON object"]}, "Failed to update vacancy"
            )
        changes = {k: data[k] for k in EDITABLE_FIELDS if data.get(k) is not None}
        merged = {k: getattr(vacancy, k) for k in EDITABLE_FIELDS}
        merged.update(changes)

        try:
            payload = validate_vacancy(merged, message="Failed to update vacancy")
        except VacancyValidationError as e:
            logger.warning(f"Vacancy validation failed during update: ID={vacancy_id}, errors={e.errors}")
            raise

        for key in changes:
            setattr(vacancy, key, getattr(payload, key))

        with self._storage(f"updating vacancy {vacancy_id}"):
            saved = self.repository.save(vacancy)
        if not saved:
            logger.error(f"Failed to update vacancy in database: ID={vacancy_id}")
            raise PersistenceError("Internal server error while updating the vacancy")

        self.invalidate_vacancy_cache(vacancy_id)
        self.invalidate_list_cache()
        logger.info(f"Vacancy updated successfully: ID={vacancy_id}")
        return {"success": True, "message": "Vacancy updated successfully"}

    def delete_vacancy(self, vacancy_id: int) -> Dict[str, Any]:
        """
        Raises:
            VacancyNotFoundError, PersistenceError
        """
        with self._storage(f"deleting vacancy {vacancy_id}"):
            deleted = self.repository.delete(vacancy_id)
        if not deleted:
            logger.warning(f"Vacancy not found for deletion: ID={vacancy_id}")
            raise VacancyNotFoundError()

        self.invalidate_vacancy_cache(vacancy_id)
        self.invalidate_list_cache()
        logger.info(f"Vacancy deleted successfully: ID={vacancy_id}")
        return {"success": True, "message": "Vacancy deleted successfully"}
