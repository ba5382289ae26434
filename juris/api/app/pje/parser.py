"""
Parser for TRF1 "PJe Push" movement notifications.

The tribunal mails a fixed-layout plain-text message whenever a followed
process moves:

    Número do Processo: 1000000-12.2023.4.01.3300
    Polo Ativo: ...
    Classe Judicial: ...
    Órgão: ...
    Data de Autuação: 19/06/2023

    Data	Movimento	Documento
    09/09/2025 01:24	Decorrido prazo de ... em 08/09/2025 23:59.

Everything here is a pure function of the message text: no database, no
clock. Unrecognised input yields ``None`` rather than an exception.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime

from ..config import settings
from .notification_types import InboundEmail, Movement, ParsedNotification

logger = logging.getLogger(__name__)

_SENDER_RE = re.compile(settings.PJE_SENDER_PATTERN, re.IGNORECASE)
_SUBJECT_RE = re.compile(
    r"movimenta[çc][ãa]o processual do processo\s+(.+)", re.IGNORECASE
)
# NNNNNNN-DD.AAAA.J.TR.OOOO (CNJ unified numbering)
PROCESS_NUMBER_RE = re.compile(r"(\d{7}-\d{2}\.\d{4}\.\d\.\d{2}\.\d{4})")

_DATE_FORMATS: tuple[tuple[re.Pattern[str], tuple[int, int, int]], ...] = (
    # (pattern, (day group, month group, year group))
    (re.compile(r"(\d{2})/(\d{2})/(\d{4})"), (1, 2, 3)),
    (re.compile(r"(\d{2})-(\d{2})-(\d{4})"), (1, 2, 3)),
    (re.compile(r"(\d{4})-(\d{2})-(\d{2})"), (3, 2, 1)),
)

_TABLE_HEADER_RE = re.compile(
    r"^[ \t]*Data[ \t]+Movimento[ \t]+Documento[ \t]*$", re.IGNORECASE | re.MULTILINE
)
_MOVEMENT_ROW_RE = re.compile(
    r"^(?P<date>\d{2}/\d{2}/\d{4})"
    r"(?:[ \t]+(?P<hour>\d{1,2}):(?P<minute>\d{2})(?::(?P<second>\d{2}))?)?"
    r"[ \t]*(?P<rest>.*)$"
)


def _label_re(label: str) -> re.Pattern[str]:
    return re.compile(
        rf"(?<!\w){label}[ \t]*:[ \t]*(\S.*?)[ \t]*$", re.IGNORECASE | re.MULTILINE
    )


_FIELD_PATTERNS: dict[str, re.Pattern[str]] = {
    "polo_ativo": _label_re(r"Polo Ativo"),
    "polo_passivo": _label_re(r"Polo Passivo"),
    "classe": _label_re(r"Classe Judicial"),
    "orgao": _label_re(r"[ÓO]rg[ãa]o"),
    "data_autuacao": _label_re(r"Data de Autua[çc][ãa]o"),
    "tipo_distribuicao": _label_re(r"Tipo de Distribui[çc][ãa]o"),
    "assunto": _label_re(r"Assunto"),
}


def parse_date(value: str | None) -> datetime | None:
    """Parse DD/MM/YYYY, DD-MM-YYYY or YYYY-MM-DD; the first format found wins.

    Impossible calendar dates (31/02/2024) give ``None``.
    """
    if not value:
        return None

    for pattern, (day_idx, month_idx, year_idx) in _DATE_FORMATS:
        match = pattern.search(value)
        if not match:
            continue
        try:
            return datetime(
                int(match.group(year_idx)),
                int(match.group(month_idx)),
                int(match.group(day_idx)),
            )
        except ValueError:
            logger.debug("Invalid calendar date in %r", value)
            return None

    return None


def is_pje_notification(email: InboundEmail) -> bool:
    return bool(
        email.sender
        and email.subject
        and _SENDER_RE.search(email.sender)
        and _SUBJECT_RE.search(email.subject)
    )


def extract_process_number(subject: str | None, body: str | None) -> str | None:
    """Subject first, body as fallback."""
    for text in (subject, body):
        if not text:
            continue
        match = PROCESS_NUMBER_RE.search(text)
        if match:
            return match.group(1)
    return None


def _normalize_newlines(text: str) -> str:
    # CRLF (RFC 5322) and bare CR both become LF
    return text.replace("\r\n", "\n").replace("\r", "\n")


def extract_fields(body: str) -> dict[str, str | datetime | None]:
    body = _normalize_newlines(body)
    fields: dict[str, str | datetime | None] = {}
    for name, pattern in _FIELD_PATTERNS.items():
        match = pattern.search(body)
        value = match.group(1).strip() if match else None
        fields[name] = value or None

    fields["data_autuacao"] = parse_date(fields["data_autuacao"])  # type: ignore[arg-type]
    return fields


def _table_lines(body: str) -> list[str]:
    """Lines of the movement table: after the header, up to a blank line."""
    header = _TABLE_HEADER_RE.search(body)
    if not header:
        return []

    lines: list[str] = []
    for line in body[header.end() :].splitlines():
        if not line.strip():
            if lines:
                break
            continue
        lines.append(line)
    return lines


def _parse_movement_row(line: str) -> Movement | None:
    match = _MOVEMENT_ROW_RE.match(line.strip())
    if not match:
        return None

    day = parse_date(match.group("date"))
    if day is None:
        return None

    timestamp = day
    if match.group("hour") is not None:
        try:
            timestamp = day.replace(
                hour=int(match.group("hour")),
                minute=int(match.group("minute")),
                second=int(match.group("second") or 0),
            )
        except ValueError:
            timestamp = day

    columns = [col.strip() for col in match.group("rest").split("\t")]
    movimento = columns[0] if columns and columns[0] else None
    documento = columns[1] if len(columns) > 1 and columns[1] else None
    return Movement(data=timestamp, movimento=movimento, documento=documento)


def extract_movements(body: str) -> list[Movement]:
    body = _normalize_newlines(body)
    movements: list[Movement] = []
    for line in _table_lines(body):
        movement = _parse_movement_row(line)
        if movement is None:
            logger.debug("Skipping movement row without a date: %s", line)
            continue
        movements.append(movement)
    return movements


def parse_notification(email: InboundEmail) -> ParsedNotification | None:
    """Recognise and extract a PJe Push notification.

    Returns ``None`` when the sender/subject signature does not match or when
    no process number appears in the subject or body.
    """
    if not is_pje_notification(email):
        return None

    body = _normalize_newlines(email.body or "")
    numero = extract_process_number(email.subject, body)
    if not numero:
        logger.info("PJe notification without a process number: %s", email.subject)
        return None

    fields = extract_fields(body)
    return ParsedNotification(
        numero=numero,
        polo_ativo=fields["polo_ativo"],  # type: ignore[arg-type]
        polo_passivo=fields["polo_passivo"],  # type: ignore[arg-type]
        classe=fields["classe"],  # type: ignore[arg-type]
        orgao=fields["orgao"],  # type: ignore[arg-type]
        data_autuacao=fields["data_autuacao"],  # type: ignore[arg-type]
        tipo_distribuicao=fields["tipo_distribuicao"],  # type: ignore[arg-type]
        assunto=fields["assunto"],  # type: ignore[arg-type]
        movimentacoes=extract_movements(body),
        sender=email.sender,
        subject=email.subject,
        received_at=email.received_at,
    )
