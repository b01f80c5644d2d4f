# Vacancy API - Job vacancy management backend
"""
Vacancy API - REST backend for managing job vacancies.

CRUD, paginated listing and full-text search over vacancies, with
per-IP rate limiting and response caching.
"""

__version__ = "1.0.0"
__description__ = "Job vacancy management REST API"
