"""
Counter triggers for calendars.subscriber_count and calendars.event_count.

The relational store is the only store that maintains these counters. The
same DDL is installed by Base.metadata.create_all (via the after_create
listener below) and by the Alembic migration, for SQLite and PostgreSQL.

Each entry is a single statement so it can run through any DBAPI driver.
"""

from sqlalchemy import DDL, event

from src.models.base import Base


SQLITE_TRIGGERS = [
    """
    CREATE TRIGGER IF NOT EXISTS trg_subscription_insert
    AFTER INSERT ON calendar_subscriptions
    BEGIN
        UPDATE calendars SET subscriber_count = subscriber_count + 1
        WHERE id = NEW.calendar_id;
    END
    """,
    """
    CREATE TRIGGER IF NOT EXISTS trg_subscription_delete
    AFTER DELETE ON calendar_subscriptions
    BEGIN
        UPDATE calendars SET subscriber_count = MAX(subscriber_count - 1, 0)
        WHERE id = OLD.calendar_id;
    END
    """,
    """
    CREATE TRIGGER IF NOT EXISTS trg_event_insert
    AFTER INSERT ON events
    WHEN NEW.calendar_id IS NOT NULL
    BEGIN
        UPDATE calendars SET event_count = event_count + 1
        WHERE id = NEW.calendar_id;
    END
    """,
    """
    CREATE TRIGGER IF NOT EXISTS trg_event_delete
    AFTER DELETE ON events
    WHEN OLD.calendar_id IS NOT NULL
    BEGIN
        UPDATE calendars SET event_count = MAX(event_count - 1, 0)
        WHERE id = OLD.calendar_id;
    END
    """,
    """
    CREATE TRIGGER IF NOT EXISTS trg_event_calendar_change
    AFTER UPDATE OF calendar_id ON events
    WHEN OLD.calendar_id IS NOT NEW.calendar_id
    BEGIN
        UPDATE calendars SET event_count = MAX(event_count - 1, 0)
        WHERE id = OLD.calendar_id;
        UPDATE calendars SET event_count = event_count + 1
        WHERE id = NEW.calendar_id;
    END
    """,
]

POSTGRES_TRIGGERS = [
    """
    CREATE OR REPLACE FUNCTION update_calendar_subscriber_count() RETURNS trigger AS $$
    BEGIN
        IF TG_OP = 'INSERT' THEN
            UPDATE calendars SET subscriber_count = subscriber_count + 1
            WHERE id = NEW.calendar_id;
            RETURN NEW;
        END IF;
        UPDATE calendars SET subscriber_count = GREATEST(subscriber_count - 1, 0)
        WHERE id = OLD.calendar_id;
        RETURN OLD;
    END;
    $$ LANGUAGE plpgsql
    """,
    """
    CREATE TRIGGER trg_calendar_subscriber_count
    AFTER INSERT OR DELETE ON calendar_subscriptions
    FOR EACH ROW EXECUTE FUNCTION update_calendar_subscriber_count()
    """,
    """
    CREATE OR REPLACE FUNCTION update_calendar_event_count() RETURNS trigger AS $$
    BEGIN
        IF TG_OP IN ('UPDATE', 'DELETE') AND OLD.calendar_id IS NOT NULL
           AND (TG_OP = 'DELETE' OR OLD.calendar_id IS DISTINCT FROM NEW.calendar_id) THEN
            UPDATE calendars SET event_count = GREATEST(event_count - 1, 0)
            WHERE id = OLD.calendar_id;
        END IF;
        IF TG_OP IN ('INSERT', 'UPDATE') AND NEW.calendar_id IS NOT NULL
           AND (TG_OP = 'INSERT' OR OLD.calendar_id IS DISTINCT FROM NEW.calendar_id) THEN
            UPDATE calendars SET event_count = event_count + 1
            WHERE id = NEW.calendar_id;
        END IF;
        IF TG_OP = 'DELETE' THEN
            RETURN OLD;
        END IF;
        RETURN NEW;
    END;
    $$ LANGUAGE plpgsql
    """,
    """
    CREATE TRIGGER trg_calendar_event_count
    AFTER INSERT OR DELETE OR UPDATE OF calendar_id ON events
    FOR EACH ROW EXECUTE FUNCTION update_calendar_event_count()
    """,
]

POSTGRES_DROP = [
    "DROP TRIGGER IF EXISTS trg_calendar_event_count ON events",
    "DROP FUNCTION IF EXISTS update_calendar_event_count()",
    "DROP TRIGGER IF EXISTS trg_calendar_subscriber_count ON calendar_subscriptions",
    "DROP FUNCTION IF EXISTS update_calendar_subscriber_count()",
]

SQLITE_DROP = [
    "DROP TRIGGER IF EXISTS trg_event_calendar_change",
    "DROP TRIGGER IF EXISTS trg_event_delete",
    "DROP TRIGGER IF EXISTS trg_event_insert",
    "DROP TRIGGER IF EXISTS trg_subscription_delete",
    "DROP TRIGGER IF EXISTS trg_subscription_insert",
]


def triggers_for(dialect_name: str) -> list[str]:
    """Return the trigger DDL statements for a dialect (empty if unsupported)."""
    if dialect_name == "sqlite":
        return SQLITE_TRIGGERS
    if dialect_name == "postgresql":
        return POSTGRES_TRIGGERS
    return []


def drops_for(dialect_name: str) -> list[str]:
    if dialect_name == "sqlite":
        return SQLITE_DROP
    if dialect_name == "postgresql":
        return POSTGRES_DROP
    return []


# Installed once every table exists, since the trigger bodies touch several.
for _statement in SQLITE_TRIGGERS:
    event.listen(Base.metadata, "after_create", DDL(_statement).execute_if(dialect="sqlite"))
for _statement in POSTGRES_TRIGGERS:
    event.listen(Base.metadata, "after_create", DDL(_statement).execute_if(dialect="postgresql"))
