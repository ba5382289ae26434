"""
PJe Push ingestion endpoints.

The webhook is public: the mail relay forwards every message it receives and
this layer decides what is a tribunal notification, who owns it and how the
outcome maps to an HTTP status.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from ..config import settings
from ..date_utils import to_local
from ..db import get_db
from ..models import IngestionEvent, User
from ..security import CurrentUser
from ..stores import SqlAlertStore, SqlCaseStore, SqlIngestionLog
from .notification_types import InboundEmail
from .parser import is_pje_notification, parse_notification
from .reconciler import CaseReconciler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/email", tags=["email"])
DbDep = Annotated[Session, Depends(get_db)]

SAMPLE_SENDER = "naoresponda.pje.push1@trf1.jus.br"
SAMPLE_SUBJECT = "Movimentação processual do processo 1000000-12.2023.4.01.3300"


class EmailWebhookPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sender: str | None = Field(default=None, alias="from")
    to: str | None = None
    subject: str | None = None
    body: str | None = None
    received_at: datetime | None = Field(default=None, alias="receivedAt")
    user_id: int | None = Field(
        default=None, validation_alias=AliasChoices("userId", "ownerId")
    )


class ParserTestRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email_content: str = Field(alias="emailContent", min_length=1)
    subject: str | None = None


class IngestionEventOut(BaseModel):
    id: int
    processo_id: int
    received_at: datetime
    sender: str | None
    subject: str | None
    movements_count: int
    created_case: bool
    summary: str

    model_config = ConfigDict(from_attributes=True)


def _resolve_owner(db: Session, payload: EmailWebhookPayload, recipient: str) -> int:
    if payload.user_id is not None:
        user = db.query(User).filter(User.id == payload.user_id).first()
    else:
        user = (
            db.query(User)
            .filter(func.lower(User.email) == recipient.strip().lower())
            .first()
        )

    if not user:
        logger.warning("No user found for recipient %s", recipient)
        raise HTTPException(
            status_code=404,
            detail={
                "error": "Usuário não encontrado para o email de destino",
                "email": recipient,
            },
        )
    return user.id


@router.post("/webhook")
def process_email_webhook(payload: EmailWebhookPayload, db: DbDep) -> dict[str, Any]:
    logger.info(
        "Email webhook received from=%s to=%s subject=%s",
        payload.sender,
        payload.to,
        payload.subject,
    )

    if not payload.sender or not payload.subject or not payload.body:
        raise HTTPException(
            status_code=400,
            detail={
                "error": "Dados do email inválidos",
                "received": {
                    "from": bool(payload.sender),
                    "subject": bool(payload.subject),
                    "body": bool(payload.body),
                },
            },
        )

    recipient = payload.to or settings.DEFAULT_RECIPIENT
    email = InboundEmail(
        sender=payload.sender,
        subject=payload.subject,
        body=payload.body,
        recipient=recipient,
        received_at=to_local(payload.received_at) if payload.received_at else None,
    )

    if not is_pje_notification(email):
        logger.info("Email is not a PJe notification, ignoring")
        return {
            "message": "Email não é uma notificação do PJe",
            "processed": False,
        }

    parsed = parse_notification(email)
    if parsed is None:
        raise HTTPException(
            status_code=400,
            detail={"error": "Não foi possível extrair informações do email"},
        )

    owner_id = _resolve_owner(db, payload, recipient)
    reconciler = CaseReconciler(
        SqlCaseStore(db), SqlAlertStore(db), SqlIngestionLog(db)
    )
    result = reconciler.reconcile(parsed, owner_id)

    if not result.success:
        logger.error("Webhook processing failed: %s", result.message)
        raise HTTPException(
            status_code=500,
            detail={"error": result.message, "details": result.error},
        )

    return {
        "message": result.message,
        "processNumber": result.process_number,
        "processId": result.case_id,
        "created": result.created,
        "movementsProcessed": result.movements_processed,
        "alertsCreated": result.alerts_created,
        "processed": True,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.post("/test-parser")
def test_parser(request: ParserTestRequest, user: CurrentUser) -> dict[str, Any]:
    """Run the parser over pasted notification text without touching any data."""
    email = InboundEmail(
        sender=SAMPLE_SENDER,
        subject=request.subject or SAMPLE_SUBJECT,
        body=request.email_content,
    )
    parsed = parse_notification(email)
    if parsed is None:
        raise HTTPException(
            status_code=400,
            detail={
                "message": "Email não é uma notificação válida do PJe",
                "isPjeNotification": False,
            },
        )
    return {
        "message": "Email parseado com sucesso",
        "parsed": parsed.to_dict(),
        "isPjeNotification": True,
    }


@router.get("/ingestions", response_model=list[IngestionEventOut])
def list_ingestions(
    user: CurrentUser,
    db: DbDep,
    processo_id: int | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
) -> list[IngestionEvent]:
    query = db.query(IngestionEvent).filter(IngestionEvent.user_id == user.id)
    if processo_id is not None:
        query = query.filter(IngestionEvent.processo_id == processo_id)
    return query.order_by(desc(IngestionEvent.id)).limit(limit).all()
