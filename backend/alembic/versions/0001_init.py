"""init

Revision ID: 0001_init
Revises:
Create Date: 2026-10-16
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None

loan_status = sa.Enum("requested", "repaid", "defaulted", name="loan_status")
custody_state = sa.Enum("locked", "released", "seized", name="custody_state")


def upgrade():
    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("identity", sa.String(length=128), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_accounts_identity", "accounts", ["identity"], unique=True)

    op.create_table(
        "user_profiles",
        sa.Column("identity", sa.String(length=128), primary_key=True),
        sa.Column("verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP")),
    )

    op.create_table(
        "collateral_locks",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("asset", sa.String(length=128), nullable=False),
        sa.Column("token_id", sa.BigInteger(), nullable=False),
        sa.Column("depositor", sa.String(length=128), nullable=False),
        sa.Column("holder", sa.String(length=128), nullable=False),
        sa.Column("state", custody_state, nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("closed_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_collateral_locks_state", "collateral_locks", ["state"])
    op.create_index("ix_collateral_locks_asset_token", "collateral_locks", ["asset", "token_id"])

    op.create_table(
        "loans",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("borrower", sa.String(length=128), nullable=False),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("interest_rate", sa.Integer(), nullable=False),
        sa.Column("duration_seconds", sa.BigInteger(), nullable=False),
        sa.Column("collateral_asset", sa.String(length=128), nullable=False),
        sa.Column("collateral_token_id", sa.BigInteger(), nullable=False),
        sa.Column("lock_id", sa.Integer(), sa.ForeignKey("collateral_locks.id"), nullable=False, unique=True),
        sa.Column("issued_at", sa.DateTime(), nullable=False),
        sa.Column("status", loan_status, nullable=False),
        sa.Column("approved_at", sa.DateTime(), nullable=True),
        sa.Column("closed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.CheckConstraint("amount > 0", name="ck_loans_amount_positive"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_loans_borrower", "loans", ["borrower"])
    op.create_index("ix_loans_status", "loans", ["status"])

    op.create_table(
        "loan_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("loan_id", sa.Integer(), nullable=False),
        sa.Column("borrower", sa.String(length=128), nullable=False),
        sa.Column("amount", sa.BigInteger(), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
    )
    op.create_index("ix_loan_events_created_at", "loan_events", ["created_at"])
    op.create_index("ix_loan_events_name", "loan_events", ["name"])
    op.create_index("ix_loan_events_loan_id", "loan_events", ["loan_id"])
    op.create_index("ix_loan_events_borrower", "loan_events", ["borrower"])
    op.create_index("ix_loan_events_loan", "loan_events", ["loan_id", "id"])


def downgrade():
    op.drop_table("loan_events")
    op.drop_table("loans")
    op.drop_table("collateral_locks")
    op.drop_table("user_profiles")
    op.drop_index("ix_accounts_identity", table_name="accounts")
    op.drop_table("accounts")
    custody_state.drop(op.get_bind(), checkfirst=True)
    loan_status.drop(op.get_bind(), checkfirst=True)
