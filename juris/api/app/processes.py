"""
Owner-scoped process (case) CRUD.

Manual edits go through the same deadline machinery as email ingestion:
recording a sentence recomputes appeal/embargo deadlines, and any tracked
date that already falls inside the alert window gets its reminder right away
instead of waiting for the next scheduler tick.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .config import settings
from .date_utils import local_now, to_local
from .db import get_db
from .models import CaseStatus, Processo
from .scheduler import raise_due_alerts, schedule_sentence_deadlines
from .security import CurrentUser
from .stores import SqlAlertStore, SqlCaseStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/processos", tags=["processos"])
DbDep = Annotated[Session, Depends(get_db)]

_DATE_FIELDS = (
    "data_distribuicao",
    "data_sentenca",
    "prazo_recurso",
    "prazo_embargos",
    "proxima_audiencia",
)


class ProcessoBase(BaseModel):
    classe: str | None = Field(default=None, max_length=255)
    assunto: str | None = None
    tribunal: str | None = Field(default=None, max_length=255)
    comarca: str | None = Field(default=None, max_length=255)
    status: CaseStatus | None = None
    data_distribuicao: datetime | None = None
    data_sentenca: datetime | None = None
    prazo_recurso: datetime | None = None
    prazo_embargos: datetime | None = None
    proxima_audiencia: datetime | None = None
    observacoes: str | None = None


class ProcessoCreate(ProcessoBase):
    numero: str = Field(min_length=1, max_length=50)
    classe: str = Field(min_length=1, max_length=255)


class ProcessoUpdate(ProcessoBase):
    pass


class SentenceRequest(BaseModel):
    data_sentenca: datetime


class ProcessoOut(BaseModel):
    id: int
    numero: str
    classe: str
    assunto: str | None
    tribunal: str | None
    comarca: str | None
    status: CaseStatus
    data_distribuicao: datetime | None
    data_sentenca: datetime | None
    prazo_recurso: datetime | None
    prazo_embargos: datetime | None
    proxima_audiencia: datetime | None
    observacoes: str | None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


def _normalize_dates(fields: dict[str, Any]) -> dict[str, Any]:
    for name in _DATE_FIELDS:
        if fields.get(name) is not None:
            fields[name] = to_local(fields[name])
    return fields


def _get_owned_processo(db: Session, processo_id: int, user_id: int) -> Processo:
    processo = (
        db.query(Processo)
        .filter(Processo.id == processo_id, Processo.user_id == user_id)
        .first()
    )
    if not processo:
        raise HTTPException(status_code=404, detail="Processo não encontrado")
    return processo


def _refresh_deadlines(
    db: Session, processo: Processo, *, derive_from_sentence: bool
) -> Processo:
    if derive_from_sentence:
        processo = schedule_sentence_deadlines(SqlCaseStore(db), processo)
    created, failed = raise_due_alerts(
        SqlAlertStore(db),
        processo,
        local_now(),
        timedelta(hours=settings.ALERT_WINDOW_HOURS),
    )
    if created or failed:
        logger.info(
            "Processo %s: %s immediate alerts created, %s failed",
            processo.id,
            created,
            failed,
        )
    return processo


def _duplicate(numero: str) -> HTTPException:
    return HTTPException(
        status_code=409,
        detail={"error": "Processo já cadastrado", "numero": numero},
    )


@router.get("", response_model=list[ProcessoOut])
def list_processos(
    user: CurrentUser, db: DbDep, status: CaseStatus | None = None
) -> list[Processo]:
    query = db.query(Processo).filter(Processo.user_id == user.id)
    if status is not None:
        query = query.filter(Processo.status == status)
    return query.order_by(desc(Processo.updated_at), desc(Processo.id)).all()


@router.post("", response_model=ProcessoOut, status_code=201)
def create_processo(payload: ProcessoCreate, user: CurrentUser, db: DbDep) -> Processo:
    fields = _normalize_dates(payload.model_dump(exclude_none=True))
    fields.setdefault("status", CaseStatus.ACTIVE)

    if SqlCaseStore(db).find_one(payload.numero, user.id) is not None:
        raise _duplicate(payload.numero)

    try:
        processo = SqlCaseStore(db).create({**fields, "user_id": user.id})
    except IntegrityError:
        logger.warning("Duplicate processo %s for user %s", payload.numero, user.id)
        raise _duplicate(payload.numero)

    logger.info("Processo %s created by user %s", processo.numero, user.id)
    derive = processo.data_sentenca is not None and not (
        payload.prazo_recurso or payload.prazo_embargos
    )
    return _refresh_deadlines(db, processo, derive_from_sentence=derive)


@router.get("/{processo_id}", response_model=ProcessoOut)
def get_processo(processo_id: int, user: CurrentUser, db: DbDep) -> Processo:
    return _get_owned_processo(db, processo_id, user.id)


@router.put("/{processo_id}", response_model=ProcessoOut)
def update_processo(
    processo_id: int, payload: ProcessoUpdate, user: CurrentUser, db: DbDep
) -> Processo:
    processo = _get_owned_processo(db, processo_id, user.id)
    fields = _normalize_dates(payload.model_dump(exclude_unset=True))
    if "classe" in fields and not fields["classe"]:
        raise HTTPException(status_code=400, detail="Classe é obrigatória")
    if "status" in fields and fields["status"] is None:
        fields.pop("status")

    processo = SqlCaseStore(db).update(processo, fields)
    derive = "data_sentenca" in fields and not (
        "prazo_recurso" in fields or "prazo_embargos" in fields
    )
    return _refresh_deadlines(db, processo, derive_from_sentence=derive)


@router.post("/{processo_id}/sentenca", response_model=ProcessoOut)
def record_sentence(
    processo_id: int, payload: SentenceRequest, user: CurrentUser, db: DbDep
) -> Processo:
    """Store the sentence date and recompute appeal and embargo deadlines."""
    processo = _get_owned_processo(db, processo_id, user.id)
    processo = SqlCaseStore(db).update(
        processo, {"data_sentenca": to_local(payload.data_sentenca)}
    )
    return _refresh_deadlines(db, processo, derive_from_sentence=True)


@router.delete("/{processo_id}", status_code=204)
def delete_processo(processo_id: int, user: CurrentUser, db: DbDep) -> None:
    processo = _get_owned_processo(db, processo_id, user.id)
    db.delete(processo)
    db.commit()
    logger.info("Processo %s deleted by user %s", processo_id, user.id)
