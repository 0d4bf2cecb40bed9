"""Ledger schema — accounts, catalogue, orders, wallet transactions.

Timestamps are TIMESTAMP WITHOUT TIME ZONE holding UTC.

Revision ID: ledger_schema_001
Revises:
Create Date: 2026-10-19
"""

from alembic import op

# revision identifiers, used by Alembic.
revision = "ledger_schema_001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ──────────────────────────────────────────────────────────────────────
    # Accounts
    # ──────────────────────────────────────────────────────────────────────
    op.execute("""
    CREATE TABLE IF NOT EXISTS user_accounts (
        id              UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        username        VARCHAR(100) UNIQUE NOT NULL,
        phone           VARCHAR(32),
        email           VARCHAR(255),
        balance         NUMERIC(12, 2) NOT NULL DEFAULT 0 CHECK (balance >= 0),
        status          VARCHAR(20) NOT NULL DEFAULT 'active',
        created_at      TIMESTAMP DEFAULT (NOW() AT TIME ZONE 'utc'),
        last_login      TIMESTAMP
    )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_user_accounts_created_at ON user_accounts(created_at)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_user_accounts_last_login ON user_accounts(last_login)")

    op.execute("""
    CREATE TABLE IF NOT EXISTS agents (
        agent_id        VARCHAR(64) PRIMARY KEY,
        name            VARCHAR(100) NOT NULL,
        contact         VARCHAR(100),
        commission_rate NUMERIC(5, 4) DEFAULT 0.05,
        status          VARCHAR(20) NOT NULL DEFAULT 'active',
        created_at      TIMESTAMP DEFAULT (NOW() AT TIME ZONE 'utc')
    )
    """)

    # ──────────────────────────────────────────────────────────────────────
    # Catalogue
    # ──────────────────────────────────────────────────────────────────────
    op.execute("""
    CREATE TABLE IF NOT EXISTS business_types (
        id              UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        name            VARCHAR(100) NOT NULL,
        description     TEXT,
        is_active       BOOLEAN NOT NULL DEFAULT TRUE,
        created_at      TIMESTAMP DEFAULT (NOW() AT TIME ZONE 'utc')
    )
    """)

    op.execute("""
    CREATE TABLE IF NOT EXISTS recharge_products (
        product_id       VARCHAR(64) PRIMARY KEY,
        business_type_id UUID REFERENCES business_types(id) ON DELETE SET NULL,
        carrier          VARCHAR(20) NOT NULL,
        face_value       NUMERIC(12, 2) NOT NULL,
        sell_price       NUMERIC(12, 2) NOT NULL,
        cost_price       NUMERIC(12, 2),
        product_type     VARCHAR(20) NOT NULL DEFAULT 'call',
        status           VARCHAR(20) NOT NULL DEFAULT 'active',
        description      TEXT,
        created_at       TIMESTAMP DEFAULT (NOW() AT TIME ZONE 'utc')
    )
    """)

    # ──────────────────────────────────────────────────────────────────────
    # Ledger
    # ──────────────────────────────────────────────────────────────────────
    op.execute("""
    CREATE TABLE IF NOT EXISTS recharge_orders (
        order_id        VARCHAR(64) PRIMARY KEY,
        user_id         UUID REFERENCES user_accounts(id),
        product_id      VARCHAR(64) REFERENCES recharge_products(product_id),
        phone_number    VARCHAR(32) NOT NULL,
        amount          NUMERIC(12, 2),
        payment_amount  NUMERIC(12, 2),
        payment_method  VARCHAR(20) NOT NULL DEFAULT 'wallet',
        order_status    VARCHAR(20) NOT NULL DEFAULT 'pending',
        create_time     TIMESTAMP DEFAULT (NOW() AT TIME ZONE 'utc'),
        complete_time   TIMESTAMP,
        processed_by    VARCHAR(64) REFERENCES agents(agent_id)
    )
    """)
    op.execute("CREATE INDEX IF NOT EXISTS ix_recharge_orders_create_time ON recharge_orders(create_time)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_recharge_orders_complete_time ON recharge_orders(complete_time)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_recharge_orders_processed_by ON recharge_orders(processed_by)")
    op.execute("CREATE INDEX IF NOT EXISTS ix_recharge_orders_status ON recharge_orders(order_status)")

    op.execute("""
    CREATE TABLE IF NOT EXISTS financial_transactions (
        transaction_id   UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        user_id          UUID REFERENCES user_accounts(id),
        amount           NUMERIC(12, 2),
        balance          NUMERIC(12, 2),
        transaction_type VARCHAR(20) NOT NULL,
        related_order    VARCHAR(64),
        remark           TEXT,
        create_time      TIMESTAMP DEFAULT (NOW() AT TIME ZONE 'utc')
    )
    """)
    op.execute(
        "CREATE INDEX IF NOT EXISTS ix_financial_transactions_create_time "
        "ON financial_transactions(create_time)"
    )
    op.execute(
        "CREATE INDEX IF NOT EXISTS ix_financial_transactions_related_order "
        "ON financial_transactions(related_order)"
    )


def downgrade() -> None:
    for table in (
        "financial_transactions",
        "recharge_orders",
        "recharge_products",
        "business_types",
        "agents",
        "user_accounts",
    ):
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE")
