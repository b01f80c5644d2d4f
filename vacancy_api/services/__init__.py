from .vacancy_service import VacancyService

__all__ = ["VacancyService"]
