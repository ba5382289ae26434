"""
Apply a parsed PJe notification to the owner's process records.

Known process numbers are merged field by field (only values the
notification actually carries overwrite the stored ones); unknown numbers
create a new process. Either way the movement list drives deadline inference
and one dispatch alert per movement.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from ..alert_dedupe import ensure_movement_alert
from ..config import settings
from ..date_utils import format_date, format_datetime, local_now
from ..models import CaseStatus, Processo
from ..stores import AlertStore, CaseStore, IngestionLog
from .deadline_rules import RuleRegistry, default_registry, interpret_movements
from .notification_types import Movement, ParsedNotification

logger = logging.getLogger(__name__)

NOT_INFORMED = "Não informado"
EMAIL_UPDATES_BANNER = "=== ATUALIZAÇÕES VIA EMAIL ==="
_SEPARATOR = "-" * 39


@dataclass
class ReconcileResult:
    success: bool
    message: str
    process_number: str | None = None
    case_id: int | None = None
    created: bool = False
    movements_processed: int | None = None
    alerts_created: int = 0
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "success": self.success,
            "message": self.message,
            "processNumber": self.process_number,
        }
        if self.success:
            payload.update(
                {
                    "caseId": self.case_id,
                    "created": self.created,
                    "movementsProcessed": self.movements_processed,
                    "alertsCreated": self.alerts_created,
                }
            )
        if self.error is not None:
            payload["error"] = self.error
        return payload


def _render_movement(index: int, movement: Movement) -> str:
    lines = [
        f"   {index}. DATA: {format_date(movement.data)} às "
        f"{movement.data.strftime('%H:%M')}",
        f"      MOVIMENTO: {movement.movimento}",
    ]
    if movement.documento:
        lines.append(f"      Documento: {movement.documento}")
    return "\n".join(lines)


def render_audit_block(parsed: ParsedNotification, timestamp: datetime) -> str:
    """Human-readable summary of one notification."""
    parts = [
        _SEPARATOR,
        f"EMAIL RECEBIDO DO {settings.TRIBUNAL_LABEL}",
        f"[{format_datetime(timestamp)}]",
        "",
        f"ASSUNTO: {parsed.subject or NOT_INFORMED}",
    ]

    described = [m for m in parsed.movimentacoes if m.movimento]
    if parsed.movimentacoes:
        parts += ["", f"MOVIMENTAÇÕES ENCONTRADAS: {len(parsed.movimentacoes)}"]
        parts += [_render_movement(i, m) for i, m in enumerate(described, start=1)]

    info: list[str] = []
    if parsed.data_autuacao:
        info.append(f"   Data de Autuação: {format_date(parsed.data_autuacao)}")
    if parsed.tipo_distribuicao:
        info.append(f"   Tipo de Distribuição: {parsed.tipo_distribuicao}")
    if parsed.polo_ativo:
        info.append(f"   Polo Ativo: {parsed.polo_ativo}")
    if parsed.polo_passivo:
        info.append(f"   Polo Passivo: {parsed.polo_passivo}")
    if info:
        parts += ["", "INFORMAÇÕES DO PROCESSO:", *info]

    parts.append(_SEPARATOR)
    return "\n".join(parts)


def append_audit_block(notes: str | None, block: str) -> str:
    """Append ``block`` to existing notes; earlier content is never rewritten."""
    updated = notes or ""
    if EMAIL_UPDATES_BANNER not in updated:
        updated += f"\n\n{EMAIL_UPDATES_BANNER}\n"
    return f"{updated}\n\n{block}\n"


def creation_banner(parsed: ParsedNotification, timestamp: datetime) -> str:
    return (
        f"Processo criado automaticamente via email do {settings.TRIBUNAL_LABEL} "
        f"em {format_datetime(timestamp)}\n\n"
        "Informações do email:\n"
        f"- Polo Ativo: {parsed.polo_ativo or NOT_INFORMED}\n"
        f"- Polo Passivo: {parsed.polo_passivo or NOT_INFORMED}\n"
        f"- Classe: {parsed.classe or NOT_INFORMED}\n"
        f"- Órgão: {parsed.orgao or NOT_INFORMED}"
    )


def merge_fields(parsed: ParsedNotification) -> dict[str, Any]:
    """Overwrite-if-present view of the notification onto a process."""
    fields: dict[str, Any] = {}
    if parsed.classe:
        fields["classe"] = parsed.classe
    if parsed.assunto:
        fields["assunto"] = parsed.assunto
    if parsed.data_autuacao:
        fields["data_distribuicao"] = parsed.data_autuacao
    if parsed.orgao:
        fields["tribunal"] = parsed.orgao
        fields["comarca"] = parsed.orgao
    return fields


class CaseReconciler:
    def __init__(
        self,
        case_store: CaseStore,
        alert_store: AlertStore,
        ingestion_log: IngestionLog | None = None,
        *,
        registry: RuleRegistry | None = None,
        clock: Callable[[], datetime] = local_now,
        append_audit_to_notes: bool | None = None,
    ):
        self.case_store = case_store
        self.alert_store = alert_store
        self.ingestion_log = ingestion_log
        self.registry = registry or default_registry()
        self.clock = clock
        self.append_audit_to_notes = (
            settings.APPEND_AUDIT_TO_NOTES
            if append_audit_to_notes is None
            else append_audit_to_notes
        )

    def reconcile(self, parsed: ParsedNotification, owner_id: int) -> ReconcileResult:
        now = self.clock()
        action = "buscar"
        created = False
        try:
            existing = self.case_store.find_one(parsed.numero, owner_id)
            if existing is None:
                action = "criar"
                processo = self._create(parsed, owner_id, now)
                created = True
            else:
                action = "atualizar"
                processo = self._update(existing, parsed, now)
        except Exception as exc:
            logger.exception(
                "Failed to reconcile process %s for user %s", parsed.numero, owner_id
            )
            return ReconcileResult(
                success=False,
                message=f"Erro interno ao {action} processo",
                process_number=parsed.numero,
                error=str(exc),
            )

        try:
            self._record_event(processo, parsed, owner_id, now, created)
        except Exception:
            # The process row is already committed
            logger.exception(
                "Failed to record ingestion event for process %s", parsed.numero
            )

        alerts_created = 0
        for movement in parsed.movimentacoes:
            outcome = ensure_movement_alert(self.alert_store, processo, movement, now)
            if outcome is not None and outcome.created:
                alerts_created += 1

        logger.info(
            "Process %s %s via email (%s movements, %s new alerts)",
            parsed.numero,
            "created" if created else "updated",
            len(parsed.movimentacoes),
            alerts_created,
        )
        return ReconcileResult(
            success=True,
            message=(
                "Processo criado com sucesso"
                if created
                else "Processo atualizado com sucesso"
            ),
            process_number=parsed.numero,
            case_id=processo.id,
            created=created,
            movements_processed=len(parsed.movimentacoes),
            alerts_created=alerts_created,
        )

    def _deadline_fields(
        self, parsed: ParsedNotification, now: datetime
    ) -> dict[str, Any]:
        update = interpret_movements(parsed.movimentacoes, now, self.registry)
        for name, value in update.fields.items():
            logger.info(
                "%s for process %s set to %s", name, parsed.numero, format_date(value)
            )
        return dict(update.fields)

    def _create(
        self, parsed: ParsedNotification, owner_id: int, now: datetime
    ) -> Processo:
        fields: dict[str, Any] = {
            "numero": parsed.numero,
            "classe": parsed.classe or NOT_INFORMED,
            "assunto": parsed.assunto or NOT_INFORMED,
            "tribunal": settings.TRIBUNAL_LABEL,
            "comarca": parsed.orgao or NOT_INFORMED,
            "status": CaseStatus.ACTIVE,
            "data_distribuicao": parsed.data_autuacao,
            "observacoes": creation_banner(parsed, now),
            "user_id": owner_id,
        }
        fields.update(self._deadline_fields(parsed, now))
        return self.case_store.create(fields)

    def _update(
        self, processo: Processo, parsed: ParsedNotification, now: datetime
    ) -> Processo:
        fields = merge_fields(parsed)
        fields["status"] = CaseStatus.ACTIVE
        fields.update(self._deadline_fields(parsed, now))
        if self.append_audit_to_notes:
            fields["observacoes"] = append_audit_block(
                processo.observacoes, render_audit_block(parsed, now)
            )
        return self.case_store.update(processo, fields)

    def _record_event(
        self,
        processo: Processo,
        parsed: ParsedNotification,
        owner_id: int,
        now: datetime,
        created: bool,
    ) -> None:
        if self.ingestion_log is None:
            return
        self.ingestion_log.record(
            {
                "processo_id": processo.id,
                "user_id": owner_id,
                "received_at": parsed.received_at or now,
                "sender": parsed.sender,
                "subject": parsed.subject,
                "movements_count": len(parsed.movimentacoes),
                "created_case": created,
                "summary": render_audit_block(parsed, now),
            }
        )
