"""invitations

Revision ID: 0002_invitations
Revises: 0001_init
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa


revision = "0002_invitations"
down_revision = "0001_init"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "invitations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("portfolio_id", sa.Integer(), sa.ForeignKey("portfolios.id"), nullable=False),
        sa.Column("invited_by", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=True),
        sa.Column("email", sa.String(length=200), nullable=False),
        sa.Column("role", sa.String(length=30), nullable=False, server_default="standard_user"),
        sa.Column("token", sa.String(length=80), nullable=False),
        sa.Column("accepted", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_invitations_portfolio_id", "invitations", ["portfolio_id"])
    op.create_index("ix_invitations_email", "invitations", ["email"])
    op.create_index("ix_invitations_token", "invitations", ["token"], unique=True)


def downgrade():
    op.drop_table("invitations")
