"""Add dialect-specific full-text search support.

PostgreSQL: search_vector tsvector column kept current by a trigger
            (title weighted A, description B) with a GIN index.
MySQL:      FULLTEXT index on (title, description).
Others:     nothing; searches fall back to LIKE matching.

Revision ID: 003
Revises: 002
Create Date: 2025-02-06 00:00:00.000000
"""
import logging
from typing import Sequence, Union

from alembic import op

from vacancy_api.config import settings

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

logger = logging.getLogger("alembic.runtime.migration")

TABLE = "vacancy"


def upgrade() -> None:
    dialect = op.get_bind().dialect.name
    config = settings.fulltext_config

    if dialect == "postgresql":
        op.execute(f"ALTER TABLE {TABLE} ADD COLUMN search_vector tsvector")
        op.execute(f"""
            CREATE OR REPLACE FUNCTION vacancy_search_vector_update() RETURNS trigger AS $$
            BEGIN
                NEW.search_vector :=
                    setweight(to_tsvector('{config}', coalesce(NEW.title, '')), 'A') ||
                    setweight(to_tsvector('{config}', coalesce(NEW.description, '')), 'B');
                RETURN NEW;
            END
            $$ LANGUAGE plpgsql;
        """)
        op.execute(f"""
            CREATE TRIGGER vacancy_search_vector_trigger
            BEFORE INSERT OR UPDATE ON {TABLE}
            FOR EACH ROW
            EXECUTE FUNCTION vacancy_search_vector_update();
        """)
        op.execute(f"""
            UPDATE {TABLE}
            SET search_vector =
                setweight(to_tsvector('{config}', coalesce(title, '')), 'A') ||
                setweight(to_tsvector('{config}', coalesce(description, '')), 'B');
        """)
        op.execute(f"CREATE INDEX idx_vacancy_search_vector ON {TABLE} USING GIN (search_vector)")
        logger.info(f"PostgreSQL full-text search configured (tsvector + GIN, config={config})")
    elif dialect in ("mysql", "mariadb"):
        op.execute(f"ALTER TABLE {TABLE} ADD FULLTEXT INDEX idx_vacancy_fulltext (title, description)")
        logger.info("MySQL FULLTEXT index created")
    else:
        logger.warning(f"Full-text search not supported on {dialect}; LIKE search will be used")


def downgrade() -> None:
    dialect = op.get_bind().dialect.name

    if dialect == "postgresql":
        op.execute("DROP INDEX IF EXISTS idx_vacancy_search_vector")
        op.execute(f"DROP TRIGGER IF EXISTS vacancy_search_vector_trigger ON {TABLE}")
        op.execute("DROP FUNCTION IF EXISTS vacancy_search_vector_update()")
        op.execute(f"ALTER TABLE {TABLE} DROP COLUMN search_vector")
    elif dialect in ("mysql", "mariadb"):
        op.execute(f"ALTER TABLE {TABLE} DROP INDEX idx_vacancy_fulltext")
