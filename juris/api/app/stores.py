"""
Persistence seams used by the ingestion pipeline and the scheduler.

The reconciler and the alert deduplicator only talk to these Protocols; the
SQLAlchemy classes below are the production implementations and commit on
every write so a failure in one step never leaves a half-applied session.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Protocol

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from .models import Alert, CaseStatus, IngestionEvent, Processo

logger = logging.getLogger(__name__)


class CaseStore(Protocol):
    """Subset of process persistence used by the reconciler."""

    def find_one(self, numero: str, user_id: int) -> Processo | None: ...

    def create(self, fields: dict[str, Any]) -> Processo: ...

    def update(self, processo: Processo, fields: dict[str, Any]) -> Processo: ...


class AlertStore(Protocol):
    def find_one(self, criteria: dict[str, Any]) -> Alert | None: ...

    def create(self, fields: dict[str, Any]) -> Alert: ...


class IngestionLog(Protocol):
    def record(self, fields: dict[str, Any]) -> IngestionEvent: ...


class SqlCaseStore:
    def __init__(self, db: Session):
        self.db = db

    def find_one(self, numero: str, user_id: int) -> Processo | None:
        return (
            self.db.query(Processo)
            .filter(Processo.numero == numero, Processo.user_id == user_id)
            .first()
        )

    def create(self, fields: dict[str, Any]) -> Processo:
        processo = Processo(**fields)
        self.db.add(processo)
        self._commit()
        self.db.refresh(processo)
        return processo

    def update(self, processo: Processo, fields: dict[str, Any]) -> Processo:
        for key, value in fields.items():
            setattr(processo, key, value)
        self._commit()
        self.db.refresh(processo)
        return processo

    def find_with_deadlines_between(
        self, start: datetime, end: datetime
    ) -> list[Processo]:
        """Active processes with any tracked date inside ``[start, end]``."""
        return (
            self.db.query(Processo)
            .filter(
                Processo.status == CaseStatus.ACTIVE,
                or_(
                    and_(
                        Processo.proxima_audiencia >= start,
                        Processo.proxima_audiencia <= end,
                    ),
                    and_(
                        Processo.prazo_recurso >= start,
                        Processo.prazo_recurso <= end,
                    ),
                    and_(
                        Processo.prazo_embargos >= start,
                        Processo.prazo_embargos <= end,
                    ),
                    and_(
                        Processo.data_distribuicao >= start,
                        Processo.data_distribuicao <= end,
                    ),
                ),
            )
            .order_by(Processo.id)
            .all()
        )

    def _commit(self) -> None:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise


class SqlAlertStore:
    def __init__(self, db: Session):
        self.db = db

    def find_one(self, criteria: dict[str, Any]) -> Alert | None:
        query = self.db.query(Alert)
        for key, value in criteria.items():
            query = query.filter(getattr(Alert, key) == value)
        return query.first()

    def create(self, fields: dict[str, Any]) -> Alert:
        alert = Alert(**fields)
        self.db.add(alert)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(alert)
        return alert


class SqlIngestionLog:
    def __init__(self, db: Session):
        self.db = db

    def record(self, fields: dict[str, Any]) -> IngestionEvent:
        event = IngestionEvent(**fields)
        self.db.add(event)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(event)
        return event
