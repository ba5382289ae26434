"""Shared sample data, fake stores and SQLite helpers for the test suite."""

import os
import sys
from datetime import datetime
from typing import Any

# Provide minimal env for Settings validation during import.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ALERT_SCHEDULER_ENABLED", "false")
os.environ.setdefault("SKIP_SQL_MIGRATIONS", "false")

# Ensure `juris` package is importable when running from repo root.
TEST_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if TEST_ROOT not in sys.path:
    sys.path.insert(0, TEST_ROOT)


from juris.api.app.db import Base, SessionLocal, engine  # noqa: E402
from juris.api.app.models import Alert, Processo, User  # noqa: E402
from juris.api.app.pje.notification_types import InboundEmail  # noqa: E402

# Saturday morning; 09/09/2025 is well in the past, 20/11/2026 in the future.
NOW = datetime(2026, 10, 17, 10, 0)

PJE_SENDER = "naoresponda.pje.push1@trf1.jus.br"
PROCESS_NUMBER = "1000654-21.2025.4.01.3704"
PJE_SUBJECT = f"Movimentação processual do processo {PROCESS_NUMBER}"

PJE_BODY = (
    "Prezado(a),\n"
    "\n"
    f"Número do Processo: {PROCESS_NUMBER}\n"
    "Polo Ativo: MARIA DA SILVA\n"
    "Polo Passivo: INSTITUTO NACIONAL DO SEGURO SOCIAL - INSS\n"
    "Classe Judicial: PROCEDIMENTO DO JUIZADO ESPECIAL CÍVEL\n"
    "Órgão: 1ª Vara Federal Cível e Criminal da SSJ de Barreiras-BA\n"
    "Data de Autuação: 19/06/2025\n"
    "Tipo de Distribuição: sorteio\n"
    "Assunto: Aposentadoria por Incapacidade Permanente\n"
    "\n"
    "Data\tMovimento\tDocumento\n"
    "09/09/2025 01:24\tDecorrido prazo de INSTITUTO NACIONAL DO SEGURO SOCIAL"
    " - INSS em 08/09/2025 23:59.\t\n"
    "15/10/2026 14:10\tAudiência de conciliação designada para 20/11/2026 14:00"
    "\tAta de audiência\n"
    "\n"
    "Este e-mail foi enviado automaticamente, não responda.\n"
)


def pje_email(body: str = PJE_BODY, subject: str = PJE_SUBJECT, **kwargs: Any):
    return InboundEmail(sender=PJE_SENDER, subject=subject, body=body, **kwargs)


def fixed_clock() -> datetime:
    return NOW


class FakeCaseStore:
    def __init__(self, rows: list[Processo] | None = None):
        self.rows: list[Processo] = list(rows or [])
        self.fail_on: str | None = None

    def _maybe_fail(self, op: str) -> None:
        if self.fail_on == op:
            raise RuntimeError(f"{op} failed")

    def find_one(self, numero: str, user_id: int) -> Processo | None:
        self._maybe_fail("find_one")
        for row in self.rows:
            if row.numero == numero and row.user_id == user_id:
                return row
        return None

    def create(self, fields: dict[str, Any]) -> Processo:
        self._maybe_fail("create")
        processo = Processo(**fields)
        processo.id = len(self.rows) + 1
        self.rows.append(processo)
        return processo

    def update(self, processo: Processo, fields: dict[str, Any]) -> Processo:
        self._maybe_fail("update")
        for key, value in fields.items():
            setattr(processo, key, value)
        return processo


class FakeAlertStore:
    def __init__(self):
        self.rows: list[Alert] = []
        self.fail = False

    def find_one(self, criteria: dict[str, Any]) -> Alert | None:
        for row in self.rows:
            if all(getattr(row, key) == value for key, value in criteria.items()):
                return row
        return None

    def create(self, fields: dict[str, Any]) -> Alert:
        if self.fail:
            raise RuntimeError("insert failed")
        alert = Alert(**fields)
        alert.id = len(self.rows) + 1
        self.rows.append(alert)
        return alert


class FakeIngestionLog:
    def __init__(self):
        self.events: list[dict[str, Any]] = []
        self.fail = False

    def record(self, fields: dict[str, Any]) -> dict[str, Any]:
        if self.fail:
            raise RuntimeError("event insert failed")
        self.events.append(fields)
        return fields


def reset_database() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


def create_user(email: str = "advogado@example.com", **kwargs: Any) -> User:
    db = SessionLocal()
    try:
        user = User(email=email, display_name=kwargs.pop("display_name", "Dra. Ana"))
        for key, value in kwargs.items():
            setattr(user, key, value)
        db.add(user)
        db.commit()
        db.refresh(user)
        db.expunge(user)
        return user
    finally:
        db.close()
