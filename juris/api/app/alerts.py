"""Owner-scoped alert endpoints (list, stats, mark read, delete)."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from .date_utils import local_now
from .db import get_db
from .models import Alert, AlertPriority, AlertType
from .security import CurrentUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/alerts", tags=["alerts"])
DbDep = Annotated[Session, Depends(get_db)]


class ProcessoSummary(BaseModel):
    id: int
    numero: str
    classe: str
    assunto: str | None = None

    model_config = ConfigDict(from_attributes=True)


class AlertOut(BaseModel):
    id: int
    tipo: AlertType
    titulo: str
    mensagem: str
    data_vencimento: datetime
    data_notificacao: datetime
    lido: bool
    prioridade: AlertPriority
    processo_id: int
    processo: ProcessoSummary | None = None

    model_config = ConfigDict(from_attributes=True)


class BulkReadRequest(BaseModel):
    ids: list[int] = Field(min_length=1)


def _get_owned_alert(db: Session, alert_id: int, user_id: int) -> Alert:
    alert = (
        db.query(Alert)
        .options(joinedload(Alert.processo))
        .filter(Alert.id == alert_id, Alert.user_id == user_id)
        .first()
    )
    if not alert:
        raise HTTPException(status_code=404, detail="Alerta não encontrado")
    return alert


@router.get("", response_model=list[AlertOut])
def list_alerts(
    user: CurrentUser,
    db: DbDep,
    tipo: AlertType | None = Query(default=None),
    lido: bool | None = Query(default=None),
    prioridade: AlertPriority | None = Query(default=None),
) -> list[Alert]:
    query = (
        db.query(Alert)
        .options(joinedload(Alert.processo))
        .filter(Alert.user_id == user.id)
    )
    if tipo is not None:
        query = query.filter(Alert.tipo == tipo)
    if lido is not None:
        query = query.filter(Alert.lido == lido)
    if prioridade is not None:
        query = query.filter(Alert.prioridade == prioridade)
    return query.order_by(Alert.data_vencimento.asc(), Alert.id.desc()).all()


@router.get("/stats")
def alert_stats(user: CurrentUser, db: DbDep) -> dict[str, Any]:
    base = db.query(Alert).filter(Alert.user_id == user.id)
    now = local_now()

    by_type = (
        db.query(Alert.tipo, func.count(Alert.id))
        .filter(Alert.user_id == user.id)
        .group_by(Alert.tipo)
        .all()
    )
    by_priority = (
        db.query(Alert.prioridade, func.count(Alert.id))
        .filter(Alert.user_id == user.id)
        .group_by(Alert.prioridade)
        .all()
    )
    due_today = base.filter(
        Alert.lido.is_(False),
        Alert.data_vencimento >= now,
        Alert.data_vencimento < now + timedelta(days=1),
    ).count()

    return {
        "total": base.count(),
        "unread": base.filter(Alert.lido.is_(False)).count(),
        "by_type": {tipo.value: count for tipo, count in by_type},
        "by_priority": {prio.value: count for prio, count in by_priority},
        "due_today": due_today,
    }


@router.patch("/read")
def mark_many_read(
    request: BulkReadRequest, user: CurrentUser, db: DbDep
) -> dict[str, Any]:
    alerts = (
        db.query(Alert)
        .filter(Alert.user_id == user.id, Alert.id.in_(request.ids))
        .all()
    )
    for alert in alerts:
        alert.lido = True
    db.commit()
    logger.info("Marked %s alerts as read for user %s", len(alerts), user.id)
    return {"updated": len(alerts)}


@router.get("/{alert_id}", response_model=AlertOut)
def get_alert(alert_id: int, user: CurrentUser, db: DbDep) -> Alert:
    return _get_owned_alert(db, alert_id, user.id)


@router.patch("/{alert_id}/read", response_model=AlertOut)
def mark_read(alert_id: int, user: CurrentUser, db: DbDep) -> Alert:
    alert = _get_owned_alert(db, alert_id, user.id)
    alert.lido = True
    db.commit()
    db.refresh(alert)
    return alert


@router.delete("/{alert_id}", status_code=204)
def delete_alert(alert_id: int, user: CurrentUser, db: DbDep) -> None:
    alert = _get_owned_alert(db, alert_id, user.id)
    db.delete(alert)
    db.commit()
    logger.info("Alert %s deleted by user %s", alert_id, user.id)
