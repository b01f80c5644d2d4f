"""Tests for VacancyService: caching, invalidation and write rules."""
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from vacancy_api.cache import CacheError
from vacancy_api.exceptions import PersistenceError, VacancyNotFoundError, VacancyValidationError
from vacancy_api.schemas import SearchSort, SortField, SortOrder
from vacancy_api.services import VacancyService
from vacancy_api.services.vacancy_service import (
    CACHE_TTL_LIST,
    CACHE_TTL_SINGLE,
    entity_cache_key,
    invalidated_list_cache_keys,
    list_cache_key,
    search_cache_key,
)


def create(service, title="Python Developer", description="Build APIs", salary=100000, **extra):
    return service.create_vacancy(dict(title=title, description=description, salary=salary, **extra))["id"]


class TestCacheKeys:
    def test_list_key(self):
        assert list_cache_key(3, SortField.SALARY, SortOrder.ASC) == "list:3:salary:asc"

    def test_entity_key(self):
        assert entity_cache_key(7) == "entity:7"

    def test_search_key_hashes_query(self):
        # md5("python")
        assert search_cache_key("python", 1, SearchSort.RELEVANCE) == \
            "search:23eeeb4347bdd26bfc6b7ee9a3b755dd:1:relevance"

    def test_invalidated_list_keys_cover_first_ten_pages(self):
        keys = invalidated_list_cache_keys()
        assert len(keys) == 40
        assert "list:1:created_at:desc" in keys
        assert "list:10:salary:asc" in keys
        assert "list:11:salary:asc" not in keys


class TestListVacancies:
    def test_response_shape(self, service):
        vacancy_id = create(service, additional_fields={"remote": True})
        result = service.list_vacancies(1, "created_at", "desc")

        assert result["pagination"] == {"total": 1, "page": 1, "pageSize": 10, "pageCount": 1}
        assert result["data"] == [{
            "id": vacancy_id,
            "title": "Python Developer",
            "salary": 100000,
            "description": "Build APIs",
        }]

    def test_invalid_sort_falls_back_to_defaults(self, service, cache):
        service.list_vacancies(1, "title", "sideways")
        assert cache.get("list:1:created_at:desc") is not None

    def test_second_call_served_from_cache(self, service, cache):
        create(service)
        first = service.list_vacancies(1, "salary", "asc")

        repository = MagicMock()
        cached_service = VacancyService(repository, cache)
        assert cached_service.list_vacancies(1, "salary", "asc") == first
        repository.find_page.assert_not_called()

    def test_list_cache_expires(self, service, cache, clock):
        service.list_vacancies(1, "salary", "asc")
        clock.advance(CACHE_TTL_LIST)
        assert cache.get("list:1:salary:asc") is None

    def test_cache_outage_is_a_miss(self, repository):
        broken = MagicMock()
        broken.get.side_effect = CacheError("down")
        broken.set.side_effect = CacheError("down")
        broken.delete.side_effect = CacheError("down")
        service = VacancyService(repository, broken)

        vacancy_id = create(service)
        assert service.list_vacancies(1, "salary", "asc")["pagination"]["total"] == 1
        assert service.get_vacancy(vacancy_id)["id"] == vacancy_id

    def test_database_error_becomes_persistence_error(self, cache):
        repository = MagicMock()
        repository.find_page.side_effect = OperationalError("SELECT", {}, Exception("gone"))
        service = VacancyService(repository, cache)

        with pytest.raises(PersistenceError) as exc_info:
            service.list_vacancies(1, "salary", "asc")
        assert exc_info.value.message == "Internal server error"
        repository.rollback.assert_called_once()


class TestGetVacancy:
    def test_full_view(self, service):
        vacancy_id = create(service, additional_fields={"company": "Acme"})
        assert service.get_vacancy(vacancy_id) == {
            "id": vacancy_id,
            "title": "Python Developer",
            "salary": 100000,
            "description": "Build APIs",
            "additional_fields": {"company": "Acme"},
        }

    def test_empty_additional_fields_omitted(self, service):
        vacancy_id = create(service)
        assert "additional_fields" not in service.get_vacancy(vacancy_id)

    def test_missing_returns_none(self, service):
        assert service.get_vacancy(999) is None

    def test_full_view_cached(self, service, cache, clock):
        vacancy_id = create(service)
        service.get_vacancy(vacancy_id)
        assert cache.get(entity_cache_key(vacancy_id))["id"] == vacancy_id

        clock.advance(CACHE_TTL_SINGLE)
        assert cache.get(entity_cache_key(vacancy_id)) is None

    def test_projection(self, service):
        vacancy_id = create(service, additional_fields={"company": "Acme"})
        assert service.get_vacancy(vacancy_id, ["title", "salary"]) == {
            "id": vacancy_id,
            "title": "Python Developer",
            "salary": 100000,
        }

    def test_projection_ignores_unknown_fields(self, service):
        vacancy_id = create(service)
        assert service.get_vacancy(vacancy_id, ["created_at", "password"]) == {"id": vacancy_id}

    def test_projection_neither_reads_nor_writes_cache(self, service, cache):
        vacancy_id = create(service)
        cache.set(entity_cache_key(vacancy_id), {"id": vacancy_id, "title": "stale"}, 600)

        assert service.get_vacancy(vacancy_id, ["title"])["title"] == "Python Developer"
        assert cache.get(entity_cache_key(vacancy_id))["title"] == "stale"

    def test_projection_caps_requested_fields(self, service):
        vacancy_id = create(service)
        fields = ["nope"] * 10 + ["title"]
        assert service.get_vacancy(vacancy_id, fields) == {"id": vacancy_id}


class TestSearchVacancies:
    def test_empty_query_short_circuits(self, cache):
        repository = MagicMock()
        service = VacancyService(repository, cache)

        result = service.search_vacancies("   ", 1)
        assert result == {
            "data": [],
            "pagination": {"total": 0, "page": 1, "pageSize": 10, "pageCount": 0},
            "query": "",
        }
        repository.search.assert_not_called()
        assert len(cache) == 0

    def test_echoes_trimmed_query(self, service):
        create(service)
        result = service.search_vacancies("  python  ", 1)
        assert result["query"] == "python"
        assert result["pagination"]["total"] == 1

    def test_long_query_truncated(self, service):
        result = service.search_vacancies("a" * 300, 1)
        assert result["query"] == "a" * 255

    def test_results_cached_by_query_page_and_order(self, service, cache):
        create(service)
        service.search_vacancies("python", 1, "asc")
        assert cache.get(search_cache_key("python", 1, SearchSort.ASC)) is not None
        assert cache.get(search_cache_key("python", 1, SearchSort.RELEVANCE)) is None

    def test_invalid_order_falls_back_to_relevance(self, service, cache):
        service.search_vacancies("python", 1, "random")
        assert cache.get(search_cache_key("python", 1, SearchSort.RELEVANCE)) is not None


class TestCreateVacancy:
    def test_create(self, service):
        result = service.create_vacancy({"title": "T", "description": "D", "salary": 1})
        assert result["success"] is True
        assert result["message"] == "Vacancy created successfully"
        assert isinstance(result["id"], int)

    def test_invalid_payload_writes_nothing(self, service, repository):
        with pytest.raises(VacancyValidationError) as exc_info:
            service.create_vacancy({"title": "", "salary": -1})
        assert exc_info.value.message == "Failed to create vacancy"
        assert set(exc_info.value.errors) == {"title", "description", "salary"}
        assert repository.count() == 0

    def test_invalidates_first_list_pages(self, service, cache):
        stale = {"data": [], "pagination": {}}
        cache.set("list:1:created_at:desc", stale, 300)
        cache.set("list:10:salary:asc", stale, 300)

        create(service)
        assert cache.get("list:1:created_at:desc") is None
        assert cache.get("list:10:salary:asc") is None

    def test_every_mutation_clears_all_first_page_keys(self, service, cache):
        for key in invalidated_list_cache_keys():
            cache.set(key, {"data": []}, 300)
        vacancy_id = create(service)
        assert not any(key in cache for key in invalidated_list_cache_keys())

        for key in invalidated_list_cache_keys():
            cache.set(key, {"data": []}, 300)
        service.update_vacancy(vacancy_id, {"salary": 1})
        assert not any(key in cache for key in invalidated_list_cache_keys())

        for key in invalidated_list_cache_keys():
            cache.set(key, {"data": []}, 300)
        service.delete_vacancy(vacancy_id)
        assert not any(key in cache for key in invalidated_list_cache_keys())

    def test_deep_pages_and_searches_stay_stale(self, service, cache):
        stale = {"data": [], "pagination": {}}
        cache.set("list:11:created_at:desc", stale, 300)
        search_key = search_cache_key("python", 1, SearchSort.RELEVANCE)
        cache.set(search_key, stale, 300)

        create(service)
        assert cache.get("list:11:created_at:desc") == stale
        assert cache.get(search_key) == stale
        assert service.search_vacancies("python", 1) == stale

    def test_save_failure(self, cache):
        repository = MagicMock()
        repository.save.return_value = False
        service = VacancyService(repository, cache)

        with pytest.raises(PersistenceError):
            create(service)


class TestUpdateVacancy:
    def test_partial_update_keeps_other_fields(self, service):
        vacancy_id = create(service, additional_fields={"company": "Acme"})
        result = service.update_vacancy(vacancy_id, {"salary": 150000})

        assert result == {"success": True, "message": "Vacancy updated successfully"}
        assert service.get_vacancy(vacancy_id) == {
            "id": vacancy_id,
            "title": "Python Developer",
            "salary": 150000,
            "description": "Build APIs",
            "additional_fields": {"company": "Acme"},
        }

    def test_null_and_unknown_keys_ignored(self, service):
        vacancy_id = create(service, additional_fields={"company": "Acme"})
        service.update_vacancy(vacancy_id, {"title": None, "additional_fields": None, "id": 77})

        vacancy = service.get_vacancy(vacancy_id)
        assert vacancy["id"] == vacancy_id
        assert vacancy["title"] == "Python Developer"
        assert vacancy["additional_fields"] == {"company": "Acme"}

    def test_invalidates_entity_and_lists(self, service, cache):
        vacancy_id = create(service)
        service.get_vacancy(vacancy_id)
        service.list_vacancies(1, "salary", "desc")

        service.update_vacancy(vacancy_id, {"title": "Lead Python Developer"})
        assert cache.get(entity_cache_key(vacancy_id)) is None
        assert cache.get("list:1:salary:desc") is None
        assert service.get_vacancy(vacancy_id)["title"] == "Lead Python Developer"

    def test_invalid_merge_rejected(self, service):
        vacancy_id = create(service)
        with pytest.raises(VacancyValidationError) as exc_info:
            service.update_vacancy(vacancy_id, {"salary": -10})
        assert exc_info.value.message == "Failed to update vacancy"
        assert service.get_vacancy(vacancy_id)["salary"] == 100000

    def test_missing_vacancy(self, service):
        with pytest.raises(VacancyNotFoundError):
            service.update_vacancy(404, {"salary": 1})

    def test_non_object_body(self, service):
        vacancy_id = create(service)
        with pytest.raises(VacancyValidationError):
            service.update_vacancy(vacancy_id, ["salary", 1])


class TestDeleteVacancy:
    def test_delete(self, service, cache):
        vacancy_id = create(service)
        service.get_vacancy(vacancy_id)

        assert service.delete_vacancy(vacancy_id) == {
            "success": True,
            "message": "Vacancy deleted successfully",
        }
        assert cache.get(entity_cache_key(vacancy_id)) is None
        assert service.get_vacancy(vacancy_id) is None

    def test_delete_missing(self, service):
        with pytest.raises(VacancyNotFoundError):
            service.delete_vacancy(404)

    def test_database_error(self, cache):
        repository = MagicMock()
        repository.delete.side_effect = OperationalError("DELETE", {}, Exception("locked"))
        service = VacancyService(repository, cache)

        with pytest.raises(PersistenceError):
            service.delete_vacancy(1)
