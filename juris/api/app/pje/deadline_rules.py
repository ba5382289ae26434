"""
Deadline inference from movement descriptions.

Movement texts are free Portuguese legal prose, so this is a keyword
heuristic. Each rule maps a keyword set to one process field; new rules are
added by registering another ``DeadlineRule`` without touching the
reconciler.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from ..date_utils import appeal_deadline, embargo_deadline
from .notification_types import Movement
from .parser import parse_date

logger = logging.getLogger(__name__)

_DATE_TOKEN_RE = re.compile(r"(?<!\d)(\d{2}/\d{2}/\d{4})(?!\d)")


def future_dates(text: str, now: datetime) -> list[datetime]:
    """Valid DD/MM/YYYY tokens in ``text`` strictly after ``now``, in order."""
    found: list[datetime] = []
    for token in _DATE_TOKEN_RE.findall(text):
        parsed = parse_date(token)
        if parsed is not None and parsed > now:
            found.append(parsed)
    return found


class DeadlineRule(ABC):
    """One keyword family -> one process field."""

    name: str
    field: str
    keywords: tuple[str, ...]
    # Keep the most recent value instead of the last one seen
    keep_latest: bool = False

    def applies_to(self, text: str) -> bool:
        folded = text.casefold()
        return any(keyword in folded for keyword in self.keywords)

    @abstractmethod
    def value_for(self, movement: Movement, now: datetime) -> datetime | None:
        """Date to write for ``movement``, or None to leave the field alone."""


class FutureDateRule(DeadlineRule):
    """Uses the last future date mentioned in the description."""

    def __init__(self, name: str, field: str, keywords: Iterable[str]):
        self.name = name
        self.field = field
        self.keywords = tuple(k.casefold() for k in keywords)

    def value_for(self, movement: Movement, now: datetime) -> datetime | None:
        dates = future_dates(movement.movimento or "", now)
        return dates[-1] if dates else None


class MovementDateRule(DeadlineRule):
    """Uses the movement's own timestamp (e.g. the day a sentence was issued)."""

    keep_latest = True

    def __init__(self, name: str, field: str, keywords: Iterable[str]):
        self.name = name
        self.field = field
        self.keywords = tuple(k.casefold() for k in keywords)

    def value_for(self, movement: Movement, now: datetime) -> datetime | None:
        return movement.data


class RuleRegistry:
    def __init__(self, rules: Iterable[DeadlineRule] = ()):
        self._rules: dict[str, DeadlineRule] = {}
        for rule in rules:
            self.register(rule)

    def register(self, rule: DeadlineRule) -> None:
        self._rules[rule.name] = rule
        logger.debug("Registered deadline rule: %s -> %s", rule.name, rule.field)

    def unregister(self, name: str) -> None:
        self._rules.pop(name, None)

    def __iter__(self):
        return iter(list(self._rules.values()))

    def names(self) -> list[str]:
        return list(self._rules.keys())


def default_registry() -> RuleRegistry:
    return RuleRegistry(
        [
            FutureDateRule("appeal", "prazo_recurso", ("recurso",)),
            FutureDateRule("embargo", "prazo_embargos", ("embargos",)),
            FutureDateRule("hearing", "proxima_audiencia", ("audiência", "audiencia")),
            MovementDateRule("sentence", "data_sentenca", ("sentença", "sentenca")),
        ]
    )


@dataclass
class DeadlineUpdate:
    """Field values inferred from a batch of movements."""

    fields: dict[str, datetime] = field(default_factory=dict)
    matched_rules: list[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.fields)


def interpret_movements(
    movements: Iterable[Movement],
    now: datetime,
    registry: RuleRegistry | None = None,
) -> DeadlineUpdate:
    """Fold every rule over every movement.

    Later movements overwrite earlier ones, except ``data_sentenca`` which
    keeps the most recent sentence date. A sentence also implies appeal and
    embargo deadlines counted in business days, unless the same movements
    named those deadlines explicitly.
    """
    registry = registry or default_registry()
    update = DeadlineUpdate()

    for movement in movements:
        text = movement.movimento
        if not text:
            continue
        for rule in registry:
            if not rule.applies_to(text):
                continue
            value = rule.value_for(movement, now)
            if value is None:
                continue
            if rule.keep_latest:
                current = update.fields.get(rule.field)
                if current is not None and current >= value:
                    continue
            update.fields[rule.field] = value
            update.matched_rules.append(rule.name)

    sentence = update.fields.get("data_sentenca")
    if sentence is not None:
        update.fields.setdefault("prazo_recurso", appeal_deadline(sentence))
        update.fields.setdefault("prazo_embargos", embargo_deadline(sentence))

    return update
