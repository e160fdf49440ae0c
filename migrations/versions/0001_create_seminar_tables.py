"""create users, seminars and registrations

Revision ID: 0001
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index(
        "ix_users_email_lower", "users", [sa.text("lower(email)")], unique=True
    )

    op.create_table(
        "seminar_types",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
    )

    op.create_table(
        "seminars",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False, unique=True),
        sa.Column("scheduled_at", sa.DateTime(), nullable=False),
        sa.Column(
            "seminar_type_id",
            sa.Integer(),
            sa.ForeignKey("seminar_types.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )

    op.create_table(
        "registrations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "seminar_id",
            sa.Integer(),
            sa.ForeignKey("seminars.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("present", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("certificate_code", sa.String(length=36), nullable=True, unique=True),
        sa.Column(
            "certificate_sent", sa.Boolean(), nullable=False, server_default=sa.text("false")
        ),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_registrations_seminar_id", "registrations", ["seminar_id"])
    op.create_index("ix_registrations_user_id", "registrations", ["user_id"])
    op.create_index(
        "ix_registrations_pending",
        "registrations",
        ["present", "certificate_sent"],
    )


def downgrade() -> None:
    op.drop_index("ix_registrations_pending", table_name="registrations")
    op.drop_index("ix_registrations_user_id", table_name="registrations")
    op.drop_index("ix_registrations_seminar_id", table_name="registrations")
    op.drop_table("registrations")
    op.drop_table("seminars")
    op.drop_table("seminar_types")
    op.drop_index("ix_users_email_lower", table_name="users")
    op.drop_table("users")
