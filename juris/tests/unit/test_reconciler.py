"""Unit tests for applying parsed notifications to process records."""

import unittest
from datetime import datetime

from juris.tests.fixtures import (
    NOW,
    PROCESS_NUMBER,
    FakeAlertStore,
    FakeCaseStore,
    FakeIngestionLog,
    fixed_clock,
    pje_email,
)

from juris.api.app.models import AlertType, CaseStatus, Processo
from juris.api.app.pje.notification_types import Movement, ParsedNotification
from juris.api.app.pje.parser import parse_notification
from juris.api.app.pje.reconciler import (
    EMAIL_UPDATES_BANNER,
    NOT_INFORMED,
    CaseReconciler,
    append_audit_block,
)

OWNER = 7


def existing_case(**overrides):
    fields = dict(
        id=1,
        numero=PROCESS_NUMBER,
        classe="Classe antiga",
        assunto="Assunto antigo",
        tribunal="TRF1",
        comarca="Comarca antiga",
        status=CaseStatus.ARCHIVED,
        observacoes="Notas do advogado",
        user_id=OWNER,
    )
    fields.update(overrides)
    return Processo(**fields)


class ReconcilerTestCase(unittest.TestCase):
    def setUp(self):
        self.cases = FakeCaseStore()
        self.alerts = FakeAlertStore()
        self.log = FakeIngestionLog()
        self.reconciler = CaseReconciler(
            self.cases, self.alerts, self.log, clock=fixed_clock
        )
        self.parsed = parse_notification(pje_email(received_at=NOW))


class TestCreatePath(ReconcilerTestCase):
    def test_unknown_number_creates_case(self):
        result = self.reconciler.reconcile(self.parsed, OWNER)

        self.assertTrue(result.success)
        self.assertTrue(result.created)
        self.assertEqual(result.message, "Processo criado com sucesso")
        self.assertEqual(result.movements_processed, 2)
        self.assertEqual(result.alerts_created, 2)

        processo = self.cases.rows[0]
        self.assertEqual(result.case_id, processo.id)
        self.assertEqual(processo.user_id, OWNER)
        self.assertEqual(processo.classe, "PROCEDIMENTO DO JUIZADO ESPECIAL CÍVEL")
        self.assertEqual(processo.tribunal, "TRF1")
        self.assertEqual(
            processo.comarca, "1ª Vara Federal Cível e Criminal da SSJ de Barreiras-BA"
        )
        self.assertEqual(processo.status, CaseStatus.ACTIVE)
        self.assertEqual(processo.data_distribuicao, datetime(2025, 6, 19))
        self.assertEqual(processo.proxima_audiencia, datetime(2026, 11, 20))
        self.assertTrue(
            processo.observacoes.startswith(
                "Processo criado automaticamente via email do TRF1 em 17/10/2026 10:00"
            )
        )
        self.assertIn("- Polo Ativo: MARIA DA SILVA", processo.observacoes)

    def test_missing_fields_get_placeholders(self):
        parsed = ParsedNotification(numero=PROCESS_NUMBER)
        result = self.reconciler.reconcile(parsed, OWNER)

        self.assertTrue(result.success)
        processo = self.cases.rows[0]
        self.assertEqual(processo.classe, NOT_INFORMED)
        self.assertEqual(processo.assunto, NOT_INFORMED)
        self.assertEqual(processo.comarca, NOT_INFORMED)
        self.assertIsNone(processo.data_distribuicao)
        self.assertEqual(result.alerts_created, 0)

    def test_dispatch_alert_per_movement(self):
        self.reconciler.reconcile(self.parsed, OWNER)

        self.assertEqual(len(self.alerts.rows), 2)
        alert = self.alerts.rows[1]
        self.assertEqual(alert.tipo, AlertType.DISPATCH)
        self.assertEqual(alert.titulo, "Nova Movimentação")
        self.assertEqual(alert.data_vencimento, datetime(2026, 10, 15, 14, 10))
        self.assertEqual(alert.data_notificacao, NOW)
        self.assertFalse(alert.lido)
        self.assertTrue(alert.mensagem.startswith("Movimentação em 15/10/2026: "))

    def test_ingestion_event_recorded(self):
        self.reconciler.reconcile(self.parsed, OWNER)

        self.assertEqual(len(self.log.events), 1)
        event = self.log.events[0]
        self.assertTrue(event["created_case"])
        self.assertEqual(event["movements_count"], 2)
        self.assertEqual(event["received_at"], NOW)
        self.assertIn("MOVIMENTAÇÕES ENCONTRADAS: 2", event["summary"])


class TestUpdatePath(ReconcilerTestCase):
    def test_known_number_is_merged_and_reactivated(self):
        self.cases.rows.append(existing_case())
        result = self.reconciler.reconcile(self.parsed, OWNER)

        self.assertTrue(result.success)
        self.assertFalse(result.created)
        self.assertEqual(result.message, "Processo atualizado com sucesso")
        self.assertEqual(len(self.cases.rows), 1)

        processo = self.cases.rows[0]
        self.assertEqual(processo.status, CaseStatus.ACTIVE)
        self.assertEqual(processo.classe, "PROCEDIMENTO DO JUIZADO ESPECIAL CÍVEL")
        self.assertEqual(processo.tribunal, processo.comarca)
        self.assertEqual(processo.data_distribuicao, datetime(2025, 6, 19))

    def test_absent_fields_do_not_overwrite(self):
        self.cases.rows.append(existing_case())
        parsed = ParsedNotification(numero=PROCESS_NUMBER, subject="s")
        self.reconciler.reconcile(parsed, OWNER)

        processo = self.cases.rows[0]
        self.assertEqual(processo.classe, "Classe antiga")
        self.assertEqual(processo.assunto, "Assunto antigo")
        self.assertEqual(processo.comarca, "Comarca antiga")

    def test_notes_are_appended_under_a_single_banner(self):
        self.cases.rows.append(existing_case())
        self.reconciler.reconcile(self.parsed, OWNER)
        self.reconciler.reconcile(self.parsed, OWNER)

        notes = self.cases.rows[0].observacoes
        self.assertTrue(notes.startswith("Notas do advogado"))
        self.assertEqual(notes.count(EMAIL_UPDATES_BANNER), 1)
        self.assertEqual(notes.count("EMAIL RECEBIDO DO TRF1"), 2)
        self.assertIn("Documento: Ata de audiência", notes)

    def test_redelivery_does_not_duplicate_alerts(self):
        self.cases.rows.append(existing_case())
        first = self.reconciler.reconcile(self.parsed, OWNER)
        second = self.reconciler.reconcile(self.parsed, OWNER)

        self.assertEqual(first.alerts_created, 2)
        self.assertEqual(second.alerts_created, 0)
        self.assertEqual(len(self.alerts.rows), 2)
        self.assertEqual(len(self.log.events), 2)

    def test_notes_untouched_when_audit_append_disabled(self):
        self.cases.rows.append(existing_case())
        reconciler = CaseReconciler(
            self.cases, self.alerts, clock=fixed_clock, append_audit_to_notes=False
        )
        reconciler.reconcile(self.parsed, OWNER)
        self.assertEqual(self.cases.rows[0].observacoes, "Notas do advogado")

    def test_explicit_appeal_date_replaces_stored_deadline(self):
        self.cases.rows.append(existing_case(prazo_recurso=datetime(2026, 12, 1)))
        parsed = ParsedNotification(
            numero=PROCESS_NUMBER,
            movimentacoes=[
                Movement(
                    data=datetime(2026, 10, 16, 9, 0),
                    movimento="Prazo para interposição de recurso até 05/11/2026",
                )
            ],
        )
        self.reconciler.reconcile(parsed, OWNER)
        self.assertEqual(self.cases.rows[0].prazo_recurso, datetime(2026, 11, 5))

    def test_sentence_recomputes_existing_deadlines(self):
        self.cases.rows.append(
            existing_case(
                prazo_recurso=datetime(2027, 1, 15),
                prazo_embargos=datetime(2027, 1, 8),
            )
        )
        parsed = ParsedNotification(
            numero=PROCESS_NUMBER,
            movimentacoes=[
                Movement(data=datetime(2026, 10, 16), movimento="Sentença publicada")
            ],
        )
        self.reconciler.reconcile(parsed, OWNER)

        processo = self.cases.rows[0]
        self.assertEqual(processo.data_sentenca, datetime(2026, 10, 16))
        self.assertEqual(processo.prazo_recurso, datetime(2026, 10, 30))
        self.assertEqual(processo.prazo_embargos, datetime(2026, 10, 23))

    def test_other_owner_gets_separate_case(self):
        self.cases.rows.append(existing_case(user_id=OWNER + 1))
        result = self.reconciler.reconcile(self.parsed, OWNER)
        self.assertTrue(result.created)
        self.assertEqual(len(self.cases.rows), 2)


class TestFailures(ReconcilerTestCase):
    def test_lookup_failure_is_reported(self):
        self.cases.fail_on = "find_one"
        result = self.reconciler.reconcile(self.parsed, OWNER)

        self.assertFalse(result.success)
        self.assertEqual(result.message, "Erro interno ao buscar processo")
        self.assertEqual(result.error, "find_one failed")
        self.assertEqual(result.to_dict()["processNumber"], PROCESS_NUMBER)
        self.assertNotIn("caseId", result.to_dict())

    def test_create_failure_is_reported(self):
        self.cases.fail_on = "create"
        with self.assertLogs("juris.api.app.pje.reconciler", level="ERROR"):
            result = self.reconciler.reconcile(self.parsed, OWNER)
        self.assertFalse(result.success)
        self.assertEqual(result.message, "Erro interno ao criar processo")
        self.assertEqual(self.alerts.rows, [])

    def test_event_log_failure_keeps_the_case_and_alerts(self):
        self.log.fail = True
        with self.assertLogs("juris.api.app.pje.reconciler", level="ERROR"):
            result = self.reconciler.reconcile(self.parsed, OWNER)

        self.assertTrue(result.success)
        self.assertTrue(result.created)
        self.assertEqual(result.case_id, self.cases.rows[0].id)
        self.assertEqual(result.alerts_created, 2)
        self.assertEqual(self.log.events, [])

    def test_alert_failure_does_not_fail_reconciliation(self):
        self.alerts.fail = True
        result = self.reconciler.reconcile(self.parsed, OWNER)
        self.assertTrue(result.success)
        self.assertEqual(result.alerts_created, 0)


class TestResultShape(ReconcilerTestCase):
    def test_success_dict(self):
        payload = self.reconciler.reconcile(self.parsed, OWNER).to_dict()
        self.assertEqual(
            payload,
            {
                "success": True,
                "message": "Processo criado com sucesso",
                "processNumber": PROCESS_NUMBER,
                "caseId": 1,
                "created": True,
                "movementsProcessed": 2,
                "alertsCreated": 2,
            },
        )


class TestAppendAuditBlock(unittest.TestCase):
    def test_empty_notes_get_banner(self):
        notes = append_audit_block(None, "bloco")
        self.assertIn(EMAIL_UPDATES_BANNER, notes)
        self.assertTrue(notes.rstrip().endswith("bloco"))


if __name__ == "__main__":
    unittest.main()
