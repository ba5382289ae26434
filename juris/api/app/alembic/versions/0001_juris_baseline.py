"""Baseline schema: users, processos, alertas, ingestion_events.

Revision ID: 0001_juris_baseline
Revises:
Create Date: 2026-10-17
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0001_juris_baseline"
down_revision: str | None = None
branch_labels: tuple[str, ...] | None = None
depends_on: tuple[str, ...] | None = None

case_status = sa.Enum("active", "archived", "suspended", name="case_status")
alert_type = sa.Enum(
    "hearing",
    "appeal_deadline",
    "embargo_deadline",
    "dispatch",
    "distribution",
    name="alert_type",
)
alert_priority = sa.Enum("low", "medium", "high", "urgent", name="alert_priority")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "processos",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("numero", sa.String(50), nullable=False),
        sa.Column("classe", sa.String(255), nullable=False),
        sa.Column("assunto", sa.Text(), nullable=True),
        sa.Column("tribunal", sa.String(255), nullable=True),
        sa.Column("comarca", sa.String(255), nullable=True),
        sa.Column("status", case_status, nullable=False),
        sa.Column("data_distribuicao", sa.DateTime(), nullable=True),
        sa.Column("data_sentenca", sa.DateTime(), nullable=True),
        sa.Column("prazo_recurso", sa.DateTime(), nullable=True),
        sa.Column("prazo_embargos", sa.DateTime(), nullable=True),
        sa.Column("proxima_audiencia", sa.DateTime(), nullable=True),
        sa.Column("observacoes", sa.Text(), nullable=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
        sa.UniqueConstraint("numero", "user_id", name="uq_processos_numero_user"),
    )
    op.create_index("ix_processos_numero", "processos", ["numero"])
    op.create_index("ix_processos_user_id", "processos", ["user_id"])

    op.create_table(
        "alertas",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("tipo", alert_type, nullable=False),
        sa.Column("titulo", sa.String(200), nullable=False),
        sa.Column("mensagem", sa.Text(), nullable=False),
        sa.Column("data_vencimento", sa.DateTime(), nullable=False),
        sa.Column("data_notificacao", sa.DateTime(), nullable=False),
        sa.Column("lido", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("prioridade", alert_priority, nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column(
            "processo_id", sa.Integer(), sa.ForeignKey("processos.id"), nullable=False
        ),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
    )
    op.create_index("ix_alertas_user_id", "alertas", ["user_id"])
    # Dedup lookup; not unique
    op.create_index(
        "ix_alertas_dedupe", "alertas", ["processo_id", "tipo", "data_vencimento"]
    )

    op.create_table(
        "ingestion_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "processo_id", sa.Integer(), sa.ForeignKey("processos.id"), nullable=False
        ),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("received_at", sa.DateTime(), nullable=False),
        sa.Column("sender", sa.String(255), nullable=True),
        sa.Column("subject", sa.Text(), nullable=True),
        sa.Column("movements_count", sa.Integer(), nullable=False),
        sa.Column("created_case", sa.Boolean(), nullable=False),
        sa.Column("summary", sa.Text(), nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now()
        ),
    )
    op.create_index(
        "ix_ingestion_events_processo_id", "ingestion_events", ["processo_id"]
    )
    op.create_index("ix_ingestion_events_user_id", "ingestion_events", ["user_id"])


def downgrade() -> None:
    op.drop_table("ingestion_events")
    op.drop_table("alertas")
    op.drop_table("processos")
    op.drop_table("users")
    alert_priority.drop(op.get_bind(), checkfirst=True)
    alert_type.drop(op.get_bind(), checkfirst=True)
    case_status.drop(op.get_bind(), checkfirst=True)
