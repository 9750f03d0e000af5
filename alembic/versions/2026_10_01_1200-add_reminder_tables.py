"""add_reminder_tables

Creates reminders, push_subscriptions and notification_preferences.
users, challenges and progressions belong to the main application schema.

Revision ID: add_reminder_tables
Revises:
Create Date: 2026-10-01 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = 'add_reminder_tables'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        DO $$ BEGIN
            IF NOT EXISTS (
                SELECT FROM information_schema.tables
                WHERE table_schema = 'public'
                AND table_name = 'reminders'
            ) THEN
                CREATE TABLE reminders (
                    id SERIAL PRIMARY KEY,
                    progression_id INTEGER NOT NULL REFERENCES progressions(id) ON DELETE CASCADE,
                    scheduled_at_utc TIMESTAMP WITH TIME ZONE NOT NULL,
                    recurrence VARCHAR(16) NOT NULL DEFAULT 'NONE',
                    timezone VARCHAR(64),
                    is_active BOOLEAN NOT NULL DEFAULT true,
                    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now(),
                    updated_at TIMESTAMP WITH TIME ZONE,
                    CONSTRAINT ck_reminders_recurrence CHECK (recurrence IN ('NONE', 'DAILY', 'WEEKLY'))
                );

                CREATE INDEX ix_reminders_id ON reminders(id);
                CREATE INDEX ix_reminders_progression_id ON reminders(progression_id);
                CREATE INDEX ix_reminders_due ON reminders(is_active, scheduled_at_utc);
                -- At most one active reminder per progression
                CREATE UNIQUE INDEX uq_reminders_active_progression
                    ON reminders(progression_id) WHERE is_active = true;
            END IF;
        END $$;
    """)

    op.execute("""
        DO $$ BEGIN
            IF NOT EXISTS (
                SELECT FROM information_schema.tables
                WHERE table_schema = 'public'
                AND table_name = 'push_subscriptions'
            ) THEN
                CREATE TABLE push_subscriptions (
                    id SERIAL PRIMARY KEY,
                    user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
                    endpoint TEXT NOT NULL,
                    endpoint_hash VARCHAR(64) NOT NULL,
                    p256dh VARCHAR(255) NOT NULL,
                    auth VARCHAR(255) NOT NULL,
                    encoding VARCHAR(32) NOT NULL DEFAULT 'aes128gcm',
                    user_agent VARCHAR(500),
                    is_active BOOLEAN NOT NULL DEFAULT true,
                    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now(),
                    updated_at TIMESTAMP WITH TIME ZONE
                );

                CREATE INDEX ix_push_subscriptions_id ON push_subscriptions(id);
                CREATE INDEX ix_push_subscriptions_user_id ON push_subscriptions(user_id);
                CREATE UNIQUE INDEX uq_push_subscriptions_endpoint_hash ON push_subscriptions(endpoint_hash);
            END IF;
        END $$;
    """)

    op.execute("""
        DO $$ BEGIN
            IF NOT EXISTS (
                SELECT FROM information_schema.tables
                WHERE table_schema = 'public'
                AND table_name = 'notification_preferences'
            ) THEN
                CREATE TABLE notification_preferences (
                    id SERIAL PRIMARY KEY,
                    user_id INTEGER NOT NULL UNIQUE REFERENCES users(id) ON DELETE CASCADE,
                    new_challenge BOOLEAN NOT NULL DEFAULT false
                );

                CREATE INDEX ix_notification_preferences_id ON notification_preferences(id);
            END IF;
        END $$;
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS notification_preferences")
    op.execute("DROP INDEX IF EXISTS uq_push_subscriptions_endpoint_hash")
    op.execute("DROP INDEX IF EXISTS ix_push_subscriptions_user_id")
    op.execute("DROP INDEX IF EXISTS ix_push_subscriptions_id")
    op.execute("DROP TABLE IF EXISTS push_subscriptions")
    op.execute("DROP INDEX IF EXISTS uq_reminders_active_progression")
    op.execute("DROP INDEX IF EXISTS ix_reminders_due")
    op.execute("DROP INDEX IF EXISTS ix_reminders_progression_id")
    op.execute("DROP INDEX IF EXISTS ix_reminders_id")
    op.execute("DROP TABLE IF EXISTS reminders")
