"""PostgreSQL connection and query helpers."""

import os
import psycopg2
from psycopg2.extras import RealDictCursor
from contextlib import contextmanager

DATABASE_URL = os.environ.get("DATABASE_URL", "")


class QueryError(Exception):
    """A statement failed in the CRM store."""


def get_connection():
    return psycopg2.connect(DATABASE_URL, cursor_factory=RealDictCursor)


@contextmanager
def get_db():
    conn = get_connection()
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def execute_query(sql: str, params: tuple = None) -> list:
    """Run one statement in its own transaction.

    Returns the fetched rows for statements that produce them and an empty
    list otherwise. Driver failures surface as QueryError.
    """
    try:
        with get_db() as conn:
            cur = conn.cursor()
            cur.execute(sql, params or None)
            if cur.description is None:
                return []
            return [dict(row) for row in cur.fetchall()]
    except psycopg2.Error as e:
        raise QueryError(str(e).strip()) from e


def init_db():
    """Create the campaign tables if they don't exist."""
    with get_db() as conn:
        cur = conn.cursor()
        cur.execute("""
            CREATE TABLE IF NOT EXISTS workflow_campaigns (
                id              BIGSERIAL PRIMARY KEY,
                campaign_name   TEXT NOT NULL,
                ref_table_id    BIGINT NOT NULL,
                ref_table_name  TEXT,
                status          TEXT DEFAULT 'active',
                start_date      DATE,
                created_at      TIMESTAMPTZ DEFAULT NOW()
            );
            CREATE INDEX IF NOT EXISTS idx_workflow_campaigns_ref
                ON workflow_campaigns(ref_table_id);

            CREATE TABLE IF NOT EXISTS workflow_registry (
                id                BIGSERIAL PRIMARY KEY,
                campaign_id       BIGINT NOT NULL REFERENCES workflow_campaigns(id),
                workflow_name     TEXT NOT NULL,
                webhook_url       TEXT,
                connector_name    TEXT,
                params            TEXT,
                last_page_fetched INTEGER DEFAULT 0,
                depth_limit       INTEGER DEFAULT 2,
                interval_minutes  INTEGER DEFAULT 1440,
                next_run_at       TIMESTAMPTZ,
                last_executed_at  TIMESTAMPTZ,
                is_active         BOOLEAN DEFAULT TRUE,
                priority          INTEGER DEFAULT 5,
                retry_count       INTEGER DEFAULT 0,
                created_at        TIMESTAMPTZ DEFAULT NOW()
            );
            CREATE INDEX IF NOT EXISTS idx_workflow_registry_campaign
                ON workflow_registry(campaign_id);
        """)
