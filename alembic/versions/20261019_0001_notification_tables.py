"""add notification_configs and notification_logs tables

Revision ID: 5c1e7a9d2b40
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "5c1e7a9d2b40"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE IF NOT EXISTS notification_configs (
            id UUID NOT NULL,
            school_id UUID NOT NULL REFERENCES schools(id) ON DELETE CASCADE,
            is_active BOOLEAN NOT NULL DEFAULT FALSE,
            window_start VARCHAR(5) NOT NULL DEFAULT '08:00',
            window_end VARCHAR(5) NOT NULL DEFAULT '18:00',
            enable_reminder BOOLEAN NOT NULL DEFAULT TRUE,
            enable_due_today BOOLEAN NOT NULL DEFAULT TRUE,
            enable_overdue BOOLEAN NOT NULL DEFAULT TRUE,
            created_at TIMESTAMP WITHOUT TIME ZONE,
            updated_at TIMESTAMP WITHOUT TIME ZONE,
            PRIMARY KEY (id),
            CONSTRAINT uq_notification_configs_school_id UNIQUE (school_id)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS notification_logs (
            id UUID NOT NULL,
            school_id UUID NOT NULL REFERENCES schools(id) ON DELETE CASCADE,
            invoice_id UUID NOT NULL REFERENCES invoices(id) ON DELETE CASCADE,
            student_name VARCHAR NOT NULL,
            tutor_name VARCHAR NOT NULL,
            target_phone VARCHAR(32) NOT NULL,
            category VARCHAR(20) NOT NULL DEFAULT 'new_invoice',
            status VARCHAR(20) NOT NULL DEFAULT 'queued',
            scheduled_for TIMESTAMP WITHOUT TIME ZONE NOT NULL,
            sent_at TIMESTAMP WITHOUT TIME ZONE,
            attempts INTEGER NOT NULL DEFAULT 0,
            error_message TEXT,
            created_at TIMESTAMP WITHOUT TIME ZONE NOT NULL,
            updated_at TIMESTAMP WITHOUT TIME ZONE NOT NULL,
            PRIMARY KEY (id)
        )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_notification_logs_school_id ON notification_logs (school_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_notification_logs_invoice_id ON notification_logs (invoice_id)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_notification_logs_status ON notification_logs (status)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_notification_logs_created_at ON notification_logs (created_at)")
    op.execute(
        "CREATE INDEX IF NOT EXISTS ix_notification_logs_queue "
        "ON notification_logs (status, scheduled_for)"
    )


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS ix_notification_logs_queue")
    op.execute("DROP INDEX IF EXISTS ix_notification_logs_created_at")
    op.execute("DROP INDEX IF EXISTS ix_notification_logs_status")
    op.execute("DROP INDEX IF EXISTS ix_notification_logs_invoice_id")
    op.execute("DROP INDEX IF EXISTS ix_notification_logs_school_id")
    op.execute("DROP TABLE IF EXISTS notification_logs")
    op.execute("DROP TABLE IF EXISTS notification_configs")
