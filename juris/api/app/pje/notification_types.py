from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class InboundEmail:
    sender: str
    subject: str
    body: str
    recipient: str | None = None
    received_at: datetime | None = None


@dataclass(frozen=True)
class Movement:
    data: datetime
    movimento: str | None
    documento: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "data": self.data.isoformat(),
            "movimento": self.movimento,
            "documento": self.documento,
        }


@dataclass
class ParsedNotification:
    numero: str
    polo_ativo: str | None = None
    polo_passivo: str | None = None
    classe: str | None = None
    orgao: str | None = None
    data_autuacao: datetime | None = None
    tipo_distribuicao: str | None = None
    assunto: str | None = None
    movimentacoes: list[Movement] = field(default_factory=list)
    sender: str | None = None
    subject: str | None = None
    received_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "numero": self.numero,
            "poloAtivo": self.polo_ativo,
            "poloPassivo": self.polo_passivo,
            "classe": self.classe,
            "orgao": self.orgao,
            "dataAutuacao": (
                self.data_autuacao.isoformat() if self.data_autuacao else None
            ),
            "tipoDistribuicao": self.tipo_distribuicao,
            "assunto": self.assunto,
            "movimentacoes": [m.to_dict() for m in self.movimentacoes],
            "emailInfo": {
                "from": self.sender,
                "subject": self.subject,
                "receivedAt": (
                    self.received_at.isoformat() if self.received_at else None
                ),
            },
        }
