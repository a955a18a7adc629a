"""
db/init_db.py
-------------
Creates the database schema (tables) if they do not already exist.
Run this module directly to initialize a fresh database:
    python -m db.init_db
"""

from db.connection import get_connection, release_connection
from utils.logger import get_logger

logger = get_logger(__name__)

SCHEMA_SQL = """
-- Users: marketplace members (never hard-deleted, see is_active)
CREATE TABLE IF NOT EXISTS users (
    id                  VARCHAR(36) PRIMARY KEY,
    email               VARCHAR(255) UNIQUE NOT NULL,
    password_hash       VARCHAR(255) NOT NULL,
    first_name          VARCHAR(100) NOT NULL,
    last_name           VARCHAR(100) NOT NULL,
    phone               VARCHAR(30),
    avatar_url          TEXT,
    bio                 TEXT,
    location_lat        DOUBLE PRECISION,
    location_lng        DOUBLE PRECISION,
    location_address    TEXT,
    is_verified         BOOLEAN NOT NULL DEFAULT FALSE,
    is_active           BOOLEAN NOT NULL DEFAULT TRUE,
    created_at          TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at          TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

-- Categories: static reference data
CREATE TABLE IF NOT EXISTS categories (
    id                  VARCHAR(36) PRIMARY KEY,
    name                VARCHAR(100) UNIQUE NOT NULL,
    description         TEXT,
    icon                VARCHAR(50),
    color               VARCHAR(20),
    is_active           BOOLEAN NOT NULL DEFAULT TRUE,
    created_at          TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at          TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

-- Items: listings owned by a user
CREATE TABLE IF NOT EXISTS items (
    id                  VARCHAR(36) PRIMARY KEY,
    owner_id            VARCHAR(36) NOT NULL REFERENCES users(id),
    category_id         VARCHAR(36) NOT NULL REFERENCES categories(id),
    title               VARCHAR(200) NOT NULL,
    description         TEXT NOT NULL,
    condition_rating    SMALLINT NOT NULL CHECK (condition_rating BETWEEN 1 AND 5),
    estimated_value     NUMERIC(12,2),
    daily_rate          NUMERIC(12,2),
    location_lat        DOUBLE PRECISION,
    location_lng        DOUBLE PRECISION,
    location_address    TEXT,
    is_available        BOOLEAN NOT NULL DEFAULT TRUE,
    is_active           BOOLEAN NOT NULL DEFAULT TRUE,
    created_at          TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at          TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS item_images (
    id                  VARCHAR(36) PRIMARY KEY,
    item_id             VARCHAR(36) NOT NULL REFERENCES items(id) ON DELETE CASCADE,
    url                 TEXT NOT NULL,
    alt_text            TEXT,
    is_primary          BOOLEAN NOT NULL DEFAULT FALSE,
    sort_order          INT NOT NULL DEFAULT 0,
    created_at          TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

-- Loans: overlap between approved/active loans is checked by the application
CREATE TABLE IF NOT EXISTS loans (
    id                  VARCHAR(36) PRIMARY KEY,
    item_id             VARCHAR(36) NOT NULL REFERENCES items(id),
    borrower_id         VARCHAR(36) NOT NULL REFERENCES users(id),
    lender_id           VARCHAR(36) NOT NULL REFERENCES users(id),
    start_date          DATE NOT NULL,
    end_date            DATE NOT NULL,
    daily_rate          NUMERIC(12,2) NOT NULL DEFAULT 0,
    total_amount        NUMERIC(12,2) NOT NULL DEFAULT 0,
    status              VARCHAR(20) NOT NULL DEFAULT 'pending'
                        CHECK (status IN ('pending', 'approved', 'active', 'completed', 'rejected', 'cancelled')),
    notes               TEXT,
    created_at          TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at          TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS messages (
    id                  VARCHAR(36) PRIMARY KEY,
    sender_id           VARCHAR(36) NOT NULL REFERENCES users(id),
    recipient_id        VARCHAR(36) NOT NULL REFERENCES users(id),
    item_id             VARCHAR(36) REFERENCES items(id),
    loan_id             VARCHAR(36) REFERENCES loans(id),
    content             TEXT NOT NULL,
    is_read             BOOLEAN NOT NULL DEFAULT FALSE,
    created_at          TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at          TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

-- Reviews: one per (loan, reviewer, type), checked by the application
CREATE TABLE IF NOT EXISTS reviews (
    id                  VARCHAR(36) PRIMARY KEY,
    loan_id             VARCHAR(36) NOT NULL REFERENCES loans(id),
    reviewer_id         VARCHAR(36) NOT NULL REFERENCES users(id),
    reviewed_id         VARCHAR(36) NOT NULL REFERENCES users(id),
    rating              SMALLINT NOT NULL CHECK (rating BETWEEN 1 AND 5),
    comment             TEXT,
    type                VARCHAR(30) NOT NULL
                        CHECK (type IN ('borrower_to_lender', 'lender_to_borrower')),
    created_at          TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at          TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

-- Refresh tokens: only a one-way hash of the token is stored
CREATE TABLE IF NOT EXISTS refresh_tokens (
    id                  VARCHAR(36) PRIMARY KEY,
    user_id             VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    token_hash          VARCHAR(255) NOT NULL,
    expires_at          TIMESTAMPTZ NOT NULL,
    is_revoked          BOOLEAN NOT NULL DEFAULT FALSE,
    created_at          TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

-- Indexes for faster queries
CREATE INDEX IF NOT EXISTS idx_items_owner ON items(owner_id);
CREATE INDEX IF NOT EXISTS idx_items_category ON items(category_id) WHERE is_active = TRUE;
CREATE INDEX IF NOT EXISTS idx_items_location ON items(location_lat, location_lng);
CREATE INDEX IF NOT EXISTS idx_item_images_item ON item_images(item_id, sort_order);
CREATE INDEX IF NOT EXISTS idx_loans_item_status ON loans(item_id, status);
CREATE INDEX IF NOT EXISTS idx_loans_borrower ON loans(borrower_id);
CREATE INDEX IF NOT EXISTS idx_loans_lender ON loans(lender_id);
CREATE INDEX IF NOT EXISTS idx_messages_pair ON messages(sender_id, recipient_id, created_at);
CREATE INDEX IF NOT EXISTS idx_messages_unread ON messages(recipient_id) WHERE is_read = FALSE;
CREATE INDEX IF NOT EXISTS idx_reviews_reviewed ON reviews(reviewed_id);
CREATE INDEX IF NOT EXISTS idx_reviews_loan_reviewer ON reviews(loan_id, reviewer_id, type);
CREATE INDEX IF NOT EXISTS idx_refresh_tokens_user ON refresh_tokens(user_id) WHERE is_revoked = FALSE;
"""

DROP_SQL = """
DROP TABLE IF EXISTS refresh_tokens, reviews, messages, loans,
    item_images, items, categories, users CASCADE;
"""


def _run_script(sql: str, success_message: str) -> None:
    conn = get_connection()
    try:
        with conn.cursor() as cur:
            cur.execute(sql)
        conn.commit()
        logger.info(success_message)
    except Exception as e:
        conn.rollback()
        logger.error(f"Schema script failed: {e}")
        raise
    finally:
        release_connection(conn)


def create_tables() -> None:
    """
    Execute the schema SQL to create all tables.
    Safe to call multiple times (uses IF NOT EXISTS).
    """
    _run_script(SCHEMA_SQL, "Database schema initialized successfully.")


def drop_tables() -> None:
    """Drop every table. Used by the integration test suite and `main.py reset-db`."""
    _run_script(DROP_SQL, "Database schema dropped.")


if __name__ == "__main__":
    from db.connection import init_pool
    init_pool()
    create_tables()
    print("Database schema created successfully.")
