"""Unit tests for movement-based deadline inference."""

import unittest
from datetime import datetime

from juris.tests.fixtures import NOW

from juris.api.app.pje.deadline_rules import (
    FutureDateRule,
    default_registry,
    future_dates,
    interpret_movements,
)
from juris.api.app.pje.notification_types import Movement


def mov(text, data=datetime(2026, 10, 15, 9, 0)):
    return Movement(data=data, movimento=text)


class TestFutureDates(unittest.TestCase):
    def test_only_strictly_future_dates_in_order(self):
        text = "de 01/01/2020 até 30/10/2026, prorrogado para 05/11/2026"
        self.assertEqual(
            future_dates(text, NOW), [datetime(2026, 10, 30), datetime(2026, 11, 5)]
        )

    def test_invalid_tokens_ignored(self):
        self.assertEqual(future_dates("prazo 31/02/2027", NOW), [])


class TestInterpretMovements(unittest.TestCase):
    def test_appeal_deadline_uses_last_future_date(self):
        update = interpret_movements(
            [mov("Prazo para recurso até 30/10/2026 ou 06/11/2026")], NOW
        )
        self.assertEqual(update.fields, {"prazo_recurso": datetime(2026, 11, 6)})
        self.assertEqual(update.matched_rules, ["appeal"])

    def test_past_dates_leave_fields_alone(self):
        update = interpret_movements([mov("Recurso interposto em 01/09/2026")], NOW)
        self.assertFalse(update)
        self.assertEqual(update.fields, {})

    def test_hearing_keyword_with_and_without_accent(self):
        for text in (
            "Audiência designada para 20/11/2026",
            "AUDIENCIA redesignada para 20/11/2026",
        ):
            update = interpret_movements([mov(text)], NOW)
            self.assertEqual(
                update.fields, {"proxima_audiencia": datetime(2026, 11, 20)}
            )

    def test_rules_are_not_exclusive(self):
        update = interpret_movements(
            [mov("Prazo comum para embargos e recurso: 05/11/2026")], NOW
        )
        self.assertEqual(update.fields["prazo_recurso"], datetime(2026, 11, 5))
        self.assertEqual(update.fields["prazo_embargos"], datetime(2026, 11, 5))

    def test_later_movement_overwrites_earlier(self):
        update = interpret_movements(
            [
                mov("Audiência designada para 20/11/2026"),
                mov("Audiência redesignada para 27/11/2026"),
            ],
            NOW,
        )
        self.assertEqual(update.fields["proxima_audiencia"], datetime(2026, 11, 27))

    def test_movement_without_text_is_ignored(self):
        update = interpret_movements([Movement(data=NOW, movimento=None)], NOW)
        self.assertEqual(update.fields, {})


class TestSentenceDeadlines(unittest.TestCase):
    def test_sentence_derives_business_day_deadlines(self):
        # Friday 16/10/2026 15:00
        sentence_at = datetime(2026, 10, 16, 15, 0)
        update = interpret_movements(
            [mov("Sentença proferida. Julgado procedente.", sentence_at)], NOW
        )
        self.assertEqual(update.fields["data_sentenca"], sentence_at)
        self.assertEqual(update.fields["prazo_recurso"], datetime(2026, 10, 30, 15, 0))
        self.assertEqual(update.fields["prazo_embargos"], datetime(2026, 10, 23, 15, 0))

    def test_explicit_deadline_wins_over_derived(self):
        update = interpret_movements(
            [
                mov("Prazo de recurso até 10/12/2026"),
                mov("Sentenca registrada", datetime(2026, 10, 16, 15, 0)),
            ],
            NOW,
        )
        self.assertEqual(update.fields["prazo_recurso"], datetime(2026, 12, 10))
        self.assertEqual(update.fields["prazo_embargos"], datetime(2026, 10, 23, 15, 0))

    def test_most_recent_sentence_is_kept(self):
        newer = datetime(2026, 10, 16, 15, 0)
        update = interpret_movements(
            [
                mov("Sentença proferida", newer),
                mov("Sentença anterior anulada", datetime(2026, 8, 3, 10, 0)),
            ],
            NOW,
        )
        self.assertEqual(update.fields["data_sentenca"], newer)


class TestRegistry(unittest.TestCase):
    def test_default_rules(self):
        self.assertEqual(
            default_registry().names(), ["appeal", "embargo", "hearing", "sentence"]
        )

    def test_unregistered_rule_is_skipped(self):
        registry = default_registry()
        registry.unregister("hearing")
        update = interpret_movements(
            [mov("Audiência designada para 20/11/2026")], NOW, registry
        )
        self.assertEqual(update.fields, {})

    def test_custom_rule(self):
        registry = default_registry()
        registry.register(
            FutureDateRule("perícia", "proxima_audiencia", ("perícia", "pericia"))
        )
        update = interpret_movements(
            [mov("Perícia médica agendada para 03/12/2026")], NOW, registry
        )
        self.assertEqual(update.fields["proxima_audiencia"], datetime(2026, 12, 3))
        self.assertIn("perícia", update.matched_rules)


if __name__ == "__main__":
    unittest.main()
