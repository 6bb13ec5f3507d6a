# db.py
import logging
from contextlib import contextmanager

from psycopg2.pool import SimpleConnectionPool

from settings import settings

logger = logging.getLogger("payoutbot.db")

_pool: SimpleConnectionPool | None = None

SCHEMA = """
CREATE TABLE IF NOT EXISTS payouts (
  id              SERIAL PRIMARY KEY,
  message_id      TEXT,
  channel_id      TEXT,
  roblox_user     TEXT NOT NULL,
  amount          INTEGER NOT NULL,
  reason          TEXT,
  event_date      TEXT,
  event_details   TEXT,
  status          TEXT NOT NULL,
  requested_by_id TEXT,
  acted_by_id     TEXT,
  created_at      BIGINT NOT NULL,
  updated_at      BIGINT NOT NULL,
  due_at          BIGINT
);
ALTER TABLE payouts ADD COLUMN IF NOT EXISTS event_date TEXT;
ALTER TABLE payouts ADD COLUMN IF NOT EXISTS event_details TEXT;
CREATE INDEX IF NOT EXISTS idx_payouts_message_id ON payouts (message_id);
CREATE INDEX IF NOT EXISTS idx_payouts_status_due ON payouts (status, due_at);
"""


def init_pool():
    """
    Initialize the PostgreSQL connection pool.
    Called once at bot startup.
    """
    global _pool
    if _pool is None:
        _pool = SimpleConnectionPool(
            minconn=1,
            maxconn=5,
            dsn=settings.DATABASE_URL,
            connect_timeout=5,
        )


def close_pool():
    global _pool
    if _pool:
        _pool.closeall()
        _pool = None


@contextmanager
def get_conn():
    """
    Provides a transactional DB connection.
    Commits on success, rolls back on error.
    """
    if _pool is None:
        init_pool()

    conn = _pool.getconn()

    try:
        # Handlers run on the event loop, so never let a query hang it
        with conn.cursor() as cur:
            cur.execute("SET statement_timeout = '5000ms';")

        yield conn
        conn.commit()

    except Exception:
        conn.rollback()
        raise

    finally:
        _pool.putconn(conn)


def init_schema():
    with get_conn() as conn:
        with conn.cursor() as cur:
            cur.execute(SCHEMA)
    logger.info("payouts schema ready")
