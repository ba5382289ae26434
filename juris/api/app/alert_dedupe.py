"""
Alert creation with duplicate suppression.

Every call site (movement alerts from email ingestion and deadline alerts
from the scheduler) uses the same key: ``(processo_id, tipo,
data_vencimento)``, regardless of read state. Once the user has seen an alert
for a date it is not raised again.

The check is read-then-insert and not atomic: two concurrent deliveries of
the same notification can still both insert.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from .date_utils import format_date
from .models import Alert, AlertPriority, AlertType, Processo
from .pje.notification_types import Movement
from .stores import AlertStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeadlineAlertTemplate:
    tipo: AlertType
    titulo: str
    template: str
    prioridade: AlertPriority


# Process field -> how a reminder for it looks.
DEADLINE_ALERTS: dict[str, DeadlineAlertTemplate] = {
    "proxima_audiencia": DeadlineAlertTemplate(
        AlertType.HEARING,
        "Audiência Agendada",
        "Audiência agendada para {date} no processo {numero}",
        AlertPriority.HIGH,
    ),
    "prazo_recurso": DeadlineAlertTemplate(
        AlertType.APPEAL_DEADLINE,
        "Prazo de Recurso",
        "Prazo para interposição de recurso vence em {date} no processo {numero}",
        AlertPriority.URGENT,
    ),
    "prazo_embargos": DeadlineAlertTemplate(
        AlertType.EMBARGO_DEADLINE,
        "Prazo de Embargos",
        "Prazo para embargos de declaração vence em {date} no processo {numero}",
        AlertPriority.URGENT,
    ),
    "data_distribuicao": DeadlineAlertTemplate(
        AlertType.DISTRIBUTION,
        "Data de Distribuição",
        "Data de distribuição do processo {numero} é {date}",
        AlertPriority.MEDIUM,
    ),
}


@dataclass
class AlertOutcome:
    created: bool
    alert: Alert | None = None
    error: str | None = None


def ensure_alert(
    store: AlertStore,
    *,
    tipo: AlertType,
    processo_id: int,
    data_vencimento: datetime,
    titulo: str,
    mensagem: str,
    prioridade: AlertPriority,
    user_id: int,
    now: datetime,
) -> AlertOutcome:
    """Insert an unread alert unless one already exists for the same key.

    Store failures are logged and reported in the outcome, never raised.
    """
    criteria: dict[str, Any] = {
        "processo_id": processo_id,
        "tipo": tipo,
        "data_vencimento": data_vencimento,
    }
    try:
        existing = store.find_one(criteria)
        if existing is not None:
            logger.debug(
                "Alert %s already exists for processo %s on %s",
                tipo.value,
                processo_id,
                data_vencimento,
            )
            return AlertOutcome(created=False, alert=existing)

        alert = store.create(
            {
                **criteria,
                "titulo": titulo,
                "mensagem": mensagem,
                "prioridade": prioridade,
                "data_notificacao": now,
                "lido": False,
                "user_id": user_id,
            }
        )
    except Exception as exc:
        logger.error(
            "Failed to create %s alert for processo %s: %s", tipo.value, processo_id, exc
        )
        return AlertOutcome(created=False, error=str(exc))

    logger.info("Alert created: %s for processo %s", titulo, processo_id)
    return AlertOutcome(created=True, alert=alert)


def ensure_movement_alert(
    store: AlertStore, processo: Processo, movement: Movement, now: datetime
) -> AlertOutcome | None:
    """Dispatch alert for one reported movement; rows without text are skipped."""
    if not movement.movimento:
        return None
    return ensure_alert(
        store,
        tipo=AlertType.DISPATCH,
        processo_id=processo.id,
        data_vencimento=movement.data,
        titulo="Nova Movimentação",
        mensagem=f"Movimentação em {format_date(movement.data)}: {movement.movimento}",
        prioridade=AlertPriority.MEDIUM,
        user_id=processo.user_id,
        now=now,
    )


def ensure_deadline_alert(
    store: AlertStore,
    processo: Processo,
    field_name: str,
    due: datetime,
    now: datetime,
) -> AlertOutcome:
    kind = DEADLINE_ALERTS[field_name]
    return ensure_alert(
        store,
        tipo=kind.tipo,
        processo_id=processo.id,
        data_vencimento=due,
        titulo=kind.titulo,
        mensagem=kind.template.format(date=format_date(due), numero=processo.numero),
        prioridade=kind.prioridade,
        user_id=processo.user_id,
        now=now,
    )
