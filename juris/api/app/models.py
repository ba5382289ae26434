from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    String,
    DateTime,
    Text,
    Enum,
    Integer,
    ForeignKey,
    Boolean,
    Index,
    UniqueConstraint,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship, Mapped, mapped_column
from enum import Enum as PyEnum
from .db import Base


def _enum_values(enum_cls: type[PyEnum]) -> list[str]:
    return [member.value for member in enum_cls]


class CaseStatus(str, PyEnum):
    ACTIVE = "active"
    ARCHIVED = "archived"
    SUSPENDED = "suspended"


class AlertType(str, PyEnum):
    """
    Alert kinds:
    - HEARING: upcoming audiência
    - APPEAL_DEADLINE: prazo para recurso
    - EMBARGO_DEADLINE: prazo para embargos de declaração
    - DISPATCH: new movement (despacho) reported by the tribunal
    - DISTRIBUTION: distribution/filing date
    """

    HEARING = "hearing"
    APPEAL_DEADLINE = "appeal_deadline"
    EMBARGO_DEADLINE = "embargo_deadline"
    DISPATCH = "dispatch"
    DISTRIBUTION = "distribution"


class AlertPriority(str, PyEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class User(Base):
    __tablename__ = "users"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    processos: Mapped[list[Processo]] = relationship(
        "Processo", back_populates="user", cascade="all, delete-orphan"
    )


class Processo(Base):
    """A tracked legal process (case), unique by ``numero`` per owner.

    Deadline columns hold naive wall-clock datetimes in ``settings.TIMEZONE``.
    """

    __tablename__ = "processos"
    __table_args__ = (
        UniqueConstraint("numero", "user_id", name="uq_processos_numero_user"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    numero: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    classe: Mapped[str] = mapped_column(String(255), nullable=False)
    assunto: Mapped[str | None] = mapped_column(Text, nullable=True)
    tribunal: Mapped[str | None] = mapped_column(String(255), nullable=True)
    comarca: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[CaseStatus] = mapped_column(
        Enum(CaseStatus, name="case_status", values_callable=_enum_values),
        nullable=False,
        default=CaseStatus.ACTIVE,
    )
    data_distribuicao: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True
    )
    data_sentenca: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    prazo_recurso: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    prazo_embargos: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    proxima_audiencia: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True
    )
    observacoes: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    user: Mapped[User] = relationship("User", back_populates="processos")
    alerts: Mapped[list[Alert]] = relationship(
        "Alert", back_populates="processo", cascade="all, delete-orphan"
    )
    ingestion_events: Mapped[list[IngestionEvent]] = relationship(
        "IngestionEvent", back_populates="processo", cascade="all, delete-orphan"
    )


class Alert(Base):
    __tablename__ = "alertas"
    # Lookup index for deduplication; deliberately not unique.
    __table_args__ = (
        Index("ix_alertas_dedupe", "processo_id", "tipo", "data_vencimento"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tipo: Mapped[AlertType] = mapped_column(
        Enum(AlertType, name="alert_type", values_callable=_enum_values),
        nullable=False,
    )
    titulo: Mapped[str] = mapped_column(String(200), nullable=False)
    mensagem: Mapped[str] = mapped_column(Text, nullable=False)
    data_vencimento: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    data_notificacao: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    lido: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    prioridade: Mapped[AlertPriority] = mapped_column(
        Enum(AlertPriority, name="alert_priority", values_callable=_enum_values),
        nullable=False,
        default=AlertPriority.MEDIUM,
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )
    processo_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("processos.id"), nullable=False
    )
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    processo: Mapped[Processo] = relationship("Processo", back_populates="alerts")


class IngestionEvent(Base):
    """Append-only log of PJe notifications applied to a process."""

    __tablename__ = "ingestion_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    processo_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("processos.id"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False, index=True
    )
    received_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    sender: Mapped[str | None] = mapped_column(String(255), nullable=True)
    subject: Mapped[str | None] = mapped_column(Text, nullable=True)
    movements_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_case: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    processo: Mapped[Processo] = relationship(
        "Processo", back_populates="ingestion_events"
    )
