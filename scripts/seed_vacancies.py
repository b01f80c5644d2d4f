#!/usr/bin/env python3
"""
Vacancy API - Sample data loader

Inserts a handful of sample vacancies through VacancyService, so the same
validation applies as for API requests.

Usage:
    python scripts/seed_vacancies.py
"""
import sys
import os

# Add project root to path so we can import vacancy_api modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from vacancy_api.cache import MemoryCache
from vacancy_api.config import settings
from vacancy_api.database import SessionLocal, engine, run_migrations
from vacancy_api.exceptions import VacancyAPIError
from vacancy_api.repositories import VacancyRepository, get_search_strategy
from vacancy_api.services import VacancyService

SAMPLE_VACANCIES = [
    {
        "title": "Senior PHP Developer",
        "description": "Experienced PHP developer for large projects. PHP 8+, Yii2/Laravel, MySQL, Git.",
        "salary": 200000,
        "additional_fields": {"company": "Tech Corp", "location": "Moscow", "employment_type": "full-time", "experience": "5+ years"},
    },
    {
        "title": "Frontend Developer (React)",
        "description": "Frontend developer with React experience. React, Redux, TypeScript, HTML/CSS.",
        "salary": 150000,
        "additional_fields": {"company": "Startup Inc", "location": "Saint Petersburg", "employment_type": "full-time", "experience": "3+ years"},
    },
    {
        "title": "DevOps Engineer",
        "description": "DevOps engineer to automate deployments. Docker, Kubernetes, CI/CD, Linux.",
        "salary": 180000,
        "additional_fields": {"company": "Cloud Solutions", "location": "Remote", "employment_type": "full-time", "experience": "4+ years"},
    },
    {
        "title": "Junior Python Developer",
        "description": "Entry-level Python developer for a friendly team. Python, Django/Flask, SQL.",
        "salary": 80000,
        "additional_fields": {"company": "Data Analytics", "location": "Moscow", "employment_type": "full-time", "experience": "1+ year"},
    },
    {
        "title": "Full Stack Developer",
        "description": "Full stack developer for web applications. PHP/Node.js, Vue.js/React, PostgreSQL.",
        "salary": 170000,
        "additional_fields": {"company": "WebDev Studio", "location": "Novosibirsk", "employment_type": "full-time", "experience": "3+ years"},
    },
    {
        "title": "QA Engineer",
        "description": "QA engineer for web application testing. Manual and automated testing, Selenium.",
        "salary": 120000,
        "additional_fields": {"company": "Quality Assurance", "location": "Kazan", "employment_type": "full-time", "experience": "2+ years"},
    },
    {
        "title": "Mobile Developer (iOS)",
        "description": "iOS application developer. Swift, SwiftUI, App Store publishing experience.",
        "salary": 160000,
    },
]


def seed():
    os.makedirs("data", exist_ok=True)
    run_migrations()
    db = SessionLocal()
    try:
        repository = VacancyRepository(db, get_search_strategy(engine.dialect.name, settings.fulltext_config))
        service = VacancyService(repository, MemoryCache())
        for data in SAMPLE_VACANCIES:
            try:
                result = service.create_vacancy(data)
                print(f"Added: {data['title']} (id={result['id']})")
            except VacancyAPIError as e:
                print(f"Skipped: {data['title']} - {e.message}")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
