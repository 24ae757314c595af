import unittest
import asyncio

from helpers import make_search_client

from evidentia.pipeline.orchestrator import MISSING_KEY_MESSAGE, run_analysis
from evidentia.report_module.fallback import build_demo_report, build_error_report
from evidentia.resources.demo_scenarios import DEMO_SCENARIOS, get_demo_scenario
from evidentia.shared.llm_client import ModelGateway
from evidentia.shared.schemas import AnalysisOptions, EvidenceInput, NormalizedEvidence

SCAM_TEXT = "URGENT: your inheritance is ready. Send a wire transfer fee today to release the funds."


class TestDemoReport(unittest.TestCase):

    def test_scam_pattern(self):
        report = build_demo_report([NormalizedEvidence(type="text", text=SCAM_TEXT)])

        self.assertEqual(report.verdict, "Manipulated/Deceptive")
        self.assertEqual(report.confidence, 88)
        self.assertEqual(report.scores.scam_risk, 95)
        self.assertEqual(report.source, "demo")
        self.assertFalse(report.external_verification.enabled)
        self.assertTrue(report.timeline.events)

    def test_neutral_text(self):
        report = build_demo_report([NormalizedEvidence(type="text", text="We met for coffee on Tuesday.")])

        self.assertEqual(report.verdict, "Mixed/Unclear")
        self.assertEqual(report.confidence, 58)

    def test_every_scenario_builds(self):
        for scenario in DEMO_SCENARIOS:
            items = [NormalizedEvidence(type=ev.type, text=ev.raw_text or "") for ev in scenario.payload]
            report = build_demo_report(items, scenario.id)
            self.assertEqual(len(report.evidence_ledger), len(items))

    def test_scenario_lookup(self):
        self.assertIsNotNone(get_demo_scenario("scam-email"))
        self.assertIsNone(get_demo_scenario("does-not-exist"))


class TestErrorReport(unittest.TestCase):

    def test_preserves_ledger(self):
        items = [NormalizedEvidence(type="text", text="hello"), NormalizedEvidence(type="pdf", filename="a.pdf", text="doc")]

        report = build_error_report(items, "Service Unavailable", 503)

        self.assertEqual(report.source, "live")
        self.assertEqual(report.error.code, "gemini_error")
        self.assertEqual(report.error.status_code, 503)
        self.assertEqual([e.id for e in report.evidence_ledger], ["e1", "e2"])
        self.assertEqual(len(report.timeline.events), 2)


class TestRunAnalysisWithoutModel(unittest.TestCase):

    def test_missing_key_demo_report(self):
        """모델 미설정 -> 사기 패턴 데모 리포트와 missing_key 에러"""
        result = asyncio.run(run_analysis(
            [EvidenceInput(type="text", raw_text=SCAM_TEXT)],
            gateway=ModelGateway(None),
            search=make_search_client(configured=False),
        ))

        self.assertEqual(result.source, "demo")
        self.assertEqual(result.report.verdict, "Manipulated/Deceptive")
        self.assertEqual(result.report.confidence, 88)
        self.assertEqual(result.report.scores.scam_risk, 95)
        self.assertEqual(result.error.code, "missing_key")
        self.assertEqual(result.error.message, MISSING_KEY_MESSAGE)

    def test_explicit_demo_mode_has_no_error(self):
        result = asyncio.run(run_analysis(
            [EvidenceInput(type="text", raw_text=SCAM_TEXT)],
            AnalysisOptions(mode="demo", scenario_id="scam-email"),
            gateway=ModelGateway(None),
            search=make_search_client(configured=False),
        ))

        self.assertEqual(result.source, "demo")
        self.assertIsNone(result.error)
        self.assertIsNone(result.report.error)


if __name__ == '__main__':
    unittest.main()
