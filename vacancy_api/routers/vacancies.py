"""
Vacancy API - REST endpoints for vacancies.

Thin layer: parses query parameters, applies rate limiting and the optional
write guard, and hands everything else to VacancyService. Errors raised by
the service are rendered by the exception handlers in main.py.
"""
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, Request, status
from sqlalchemy.orm import Session

from ..auth import require_write_access
from ..database import get_db
from ..exceptions import VacancyNotFoundError, VacancyValidationError
from ..rate_limit import (
    rate_limited,
    SCOPE_LIST, SCOPE_VIEW, SCOPE_CREATE, SCOPE_UPDATE, SCOPE_DELETE, SCOPE_SEARCH,
)
from ..repositories import VacancyRepository
from ..schemas import MAX_PROJECTED_FIELDS, VacancyListResponse, VacancySearchResponse
from ..services import VacancyService

router = APIRouter()

MIN_PAGE = 1
MAX_PAGE = 10000


def clamp_page(page: int) -> int:
    return max(MIN_PAGE, min(MAX_PAGE, page))


def get_vacancy_service(request: Request, db: Session = Depends(get_db)) -> VacancyService:
    """Wire a service for this request from the app-wide cache and search strategy."""
    repository = VacancyRepository(db, request.app.state.search_strategy)
    return VacancyService(repository, request.app.state.cache)


@router.get(
    "",
    response_model=VacancyListResponse,
    dependencies=[Depends(rate_limited(SCOPE_LIST))],
)
def list_vacancies(
    page: int = 1,
    sort: str = "created_at",
    order: str = "desc",
    service: VacancyService = Depends(get_vacancy_service),
):
    """List vacancies, 10 per page, sorted by `salary` or `created_at`."""
    return service.list_vacancies(clamp_page(page), sort, order)


@router.get(
    "/search",
    response_model=VacancySearchResponse,
    dependencies=[Depends(rate_limited(SCOPE_SEARCH))],
)
def search_vacancies(
    q: str = "",
    page: int = 1,
    sort: str = Query("relevance", description="relevance, asc or desc"),
    service: VacancyService = Depends(get_vacancy_service),
):
    """Full-text search over vacancy titles and descriptions."""
    if not q.strip():
        raise VacancyValidationError(
            {"q": ["Search query cannot be empty"]},
            message="Search query cannot be empty",
        )
    return service.search_vacancies(q, clamp_page(page), sort)


@router.get("/{vacancy_id}", dependencies=[Depends(rate_limited(SCOPE_VIEW))])
def get_vacancy(
    vacancy_id: int,
    fields: Optional[str] = Query(None, description="Comma-separated subset, e.g. title,salary"),
    service: VacancyService = Depends(get_vacancy_service),
):
    """Get a vacancy, optionally projected onto `fields`."""
    requested = fields.split(",")[:MAX_PROJECTED_FIELDS] if fields else None
    result = service.get_vacancy(vacancy_id, requested)
    if result is None:
        raise VacancyNotFoundError()
    return result


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limited(SCOPE_CREATE)), Depends(require_write_access)],
)
def create_vacancy(
    data: Any = Body(...),
    service: VacancyService = Depends(get_vacancy_service),
):
    """Create a vacancy from {title, description, salary, additional_fields?}."""
    return service.create_vacancy(data)


@router.put(
    "/{vacancy_id}",
    dependencies=[Depends(rate_limited(SCOPE_UPDATE)), Depends(require_write_access)],
)
def update_vacancy(
    vacancy_id: int,
    data: Any = Body(...),
    service: VacancyService = Depends(get_vacancy_service),
):
    """Partially update a vacancy; omitted fields keep their values."""
    return service.update_vacancy(vacancy_id, data)


@router.delete(
    "/{vacancy_id}",
    dependencies=[Depends(rate_limited(SCOPE_DELETE)), Depends(require_write_access)],
)
def delete_vacancy(
    vacancy_id: int,
    service: VacancyService = Depends(get_vacancy_service),
):
    """Delete a vacancy."""
    return service.delete_vacancy(vacancy_id)
