import unittest
from unittest.mock import patch
import asyncio
import os
import shutil
import tempfile
import time

from helpers import (
    CLAIMS_MARKER,
    MANIPULATION_MARKER,
    SYNTHESIS_MARKER,
    VERIFICATION_MARKER,
    count_calls,
    make_gateway,
    make_search_client,
    prompt_of,
)

from evidentia.pipeline.orchestrator import get_status, run_analysis
from evidentia.shared.errors import AnalysisTimeoutError, InvalidInputError
from evidentia.shared.llm_client import ModelGateway
from evidentia.shared.schemas import EvidenceInput
from evidentia.text_module.adversarial import generate_adversarial_content
from evidentia.text_module.verifier import NOT_CONFIGURED_NOTE

INPUTS = [
    EvidenceInput(type="text", raw_text="The city council approved the new budget on March 3."),
    EvidenceInput(type="link", url="https://news.example.com/budget", raw_text="<p>Budget passed with 7 votes.</p>"),
]

CLAIMS_RESPONSE = {
    "claims": [
        {"text": "The city council approved the budget", "checkability": "checkable", "sourceEvidenceIds": ["e1"]},
        {"text": "The vote was 7 in favor", "checkability": "checkable", "sourceEvidenceIds": ["e2"]},
    ]
}

MANIPULATION_RESPONSE = {
    "aiLikelihood": 20,
    "signals": ["formal tone"],
    "flaggedSegments": [{"modality": "text", "snippet": "approved the new budget", "reason": "unsourced", "confidence": 40}],
}

VERIFICATION_RESPONSE = {
    "perClaim": [
        {"claimIndex": 0, "status": "Supported", "notes": "Matches council minutes.",
         "citations": [{"title": "Council minutes", "link": "https://www.city.gov/minutes", "snippet": "approved"}]},
        {"claimIndex": 1, "status": "NotFound", "citations": []},
    ],
    "reliabilityNote": "Official municipal source.",
}


def _synthesis_response(confidence=95, verdict="Likely True"):
    return {
        "executiveSummary": {
            "verdict": verdict,
            "confidence": confidence,
            "why": ["Official records confirm the vote."],
            "whatToDoNext": ["Read the council minutes."],
        },
        "claims": [{"id": "c1", "text": "The city council approved the budget", "checkability": "checkable"}],
        "evidenceLedger": [
            {"id": "x", "type": "text", "name": "pasted", "keyFacts": ["Budget approved March 3"]},
            {"id": "y", "type": "link", "name": "article", "keyFacts": ["7 votes"]},
        ],
        "externalVerification": {"enabled": True, "perClaim": [{"claimId": "c1", "status": "Disputed"}]},
        "timeline": {"events": []},
        "scores": {"consistency": 85},
    }


def _router(synthesis=None, claims=None):
    def route(prompt):
        if CLAIMS_MARKER in prompt:
            return claims if claims is not None else CLAIMS_RESPONSE
        if MANIPULATION_MARKER in prompt:
            return MANIPULATION_RESPONSE
        if VERIFICATION_MARKER in prompt:
            return VERIFICATION_RESPONSE
        if SYNTHESIS_MARKER in prompt:
            return synthesis if synthesis is not None else _synthesis_response()
        return ValueError(f"unexpected prompt: {prompt[:40]}")
    return route


class TestStageOrchestrator(unittest.TestCase):

    def test_full_pipeline(self):
        gateway = make_gateway(_router())
        search = make_search_client()

        result = asyncio.run(run_analysis(INPUTS, gateway=gateway, search=search))
        report = result.report

        self.assertEqual(result.source, "live")
        self.assertIsNone(result.error)
        self.assertEqual(report.verdict, "Likely True")
        self.assertEqual(report.confidence, 95)

        # 외부 검증은 모델 합성 결과가 아닌 3단계 결과를 사용
        verification = report.external_verification
        self.assertTrue(verification.enabled)
        self.assertEqual([v.status for v in verification.per_claim], ["Supported", "NotFound"])
        self.assertEqual(verification.per_claim[0].citations[0].domain, "city.gov")
        self.assertEqual(search.search.await_count, 2)

        self.assertEqual([e.id for e in report.evidence_ledger], ["e1", "e2"])
        self.assertEqual(report.evidence_ledger[0].key_facts, ["Budget approved March 3"])
        self.assertEqual(report.evidence_ledger[1].metadata, {"url": "https://news.example.com/budget"})

        self.assertEqual(len(report.manipulation_analysis.flagged_segments), 1)
        # 합성 결과에 조작 분석이 없으면 2단계 점수가 두 점수 모두에 반영
        self.assertEqual(report.manipulation_analysis.ai_likelihood, 20)
        self.assertEqual(report.scores.ai_likelihood, 20)
        self.assertEqual(report.scores.manipulation_risk, 20)
        self.assertEqual(report.timeline.events[0].t, "T0")
        self.assertEqual(report.transparency.analyzed, ["text: pasted", "link: https://news.example.com/budget"])

        for marker in (CLAIMS_MARKER, MANIPULATION_MARKER, VERIFICATION_MARKER, SYNTHESIS_MARKER):
            self.assertEqual(count_calls(gateway, marker), 1)

    def test_synthesis_retry_exhaustion_returns_error_report(self):
        """합성 호출이 3번 모두 503으로 실패 -> source=live, gemini_error, 원장 유지"""
        error = Exception("503 Service Unavailable")
        error.status_code = 503
        gateway = make_gateway(_router(synthesis=error))

        result = asyncio.run(run_analysis(INPUTS, gateway=gateway, search=make_search_client()))

        self.assertEqual(count_calls(gateway, SYNTHESIS_MARKER), 3)
        self.assertEqual(result.source, "live")
        self.assertEqual(result.error.code, "gemini_error")
        self.assertEqual(result.error.status_code, 503)
        self.assertIn("503", result.error.message)
        self.assertEqual([e.id for e in result.report.evidence_ledger], ["e1", "e2"])
        self.assertEqual(result.report.evidence_ledger[1].name, "https://news.example.com/budget")
        self.assertTrue(result.report.timeline.events)

    def test_schema_violation_returns_error_report(self):
        gateway = make_gateway(_router(synthesis={"executiveSummary": {"verdict": "Definitely", "confidence": "high"}}))

        result = asyncio.run(run_analysis(INPUTS, gateway=gateway, search=make_search_client()))

        self.assertEqual(result.error.code, "gemini_error")
        self.assertIsNone(result.error.status_code)
        self.assertEqual(result.report.confidence, 0)

    def test_verification_limited_to_first_six_claims(self):
        claims = {"claims": [{"text": f"claim number {i}", "checkability": "checkable"} for i in range(8)]}
        gateway = make_gateway(_router(claims=claims))
        search = make_search_client()

        asyncio.run(run_analysis(INPUTS, gateway=gateway, search=search))

        self.assertEqual(search.search.await_count, 6)
        queries = [c.args[0] for c in search.search.await_args_list]
        self.assertEqual(queries, [f"claim number {i}" for i in range(6)])

    def test_no_search_backend_caps_confidence(self):
        gateway = make_gateway(_router(synthesis=_synthesis_response(confidence=97)))
        search = make_search_client(configured=False)

        result = asyncio.run(run_analysis(INPUTS, gateway=gateway, search=search))
        report = result.report

        self.assertFalse(report.external_verification.enabled)
        self.assertLessEqual(report.confidence, 65)
        self.assertIn(NOT_CONFIGURED_NOTE, report.transparency.limitations)
        self.assertEqual(count_calls(gateway, VERIFICATION_MARKER), 0)
        search.search.assert_not_awaited()

    def test_claims_failure_degrades(self):
        gateway = make_gateway(_router(claims="this is not json"))
        search = make_search_client()

        result = asyncio.run(run_analysis(INPUTS, gateway=gateway, search=search))

        self.assertIsNone(result.error)
        self.assertFalse(result.report.external_verification.enabled)
        self.assertTrue(any("Claim extraction failed" in l for l in result.report.transparency.limitations))
        self.assertLessEqual(result.report.confidence, 65)
        search.search.assert_not_awaited()

    def test_empty_inputs_rejected(self):
        with self.assertRaises(InvalidInputError):
            asyncio.run(run_analysis([], gateway=ModelGateway(None)))

    @patch('evidentia.pipeline.orchestrator.Config.ANALYSIS_TIMEOUT_SEC', 0.05)
    def test_timeout(self):
        gateway = make_gateway(_router())

        async def slow_create(**params):
            await asyncio.sleep(5)

        gateway.client.chat.completions.create.side_effect = slow_create

        with self.assertRaises(AnalysisTimeoutError):
            asyncio.run(run_analysis(INPUTS, gateway=gateway, search=make_search_client()))

    @patch('evidentia.pipeline.orchestrator.Config.ANALYSIS_TIMEOUT_SEC', 0.2)
    @patch('evidentia.evidence_module.extractors.extract_video_audio', return_value=None)
    @patch('evidentia.evidence_module.extractors.extract_video_keyframes')
    @patch('evidentia.evidence_module.extractors.is_ffmpeg_available', return_value=True)
    def test_timeout_during_video_normalization_removes_keyframes(self, mock_ffmpeg, mock_keyframes, mock_audio):
        """영상 정규화 중 시간 초과 -> 추출된 키프레임 디렉터리가 남지 않음"""
        video_dir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, video_dir, ignore_errors=True)
        path = os.path.join(video_dir, "clip.mp4")
        with open(path, "wb") as f:
            f.write(b"\x00\x00")
        out_dirs = []

        def slow_keyframes(file_path, out_dir, deadline):
            out_dirs.append(out_dir)
            frame = os.path.join(out_dir, "frame_0001.jpg")
            with open(frame, "wb") as f:
                f.write(b"\xff\xd8")
            time.sleep(0.6)
            return [frame]

        mock_keyframes.side_effect = slow_keyframes

        with self.assertRaises(AnalysisTimeoutError):
            asyncio.run(run_analysis(
                [EvidenceInput(type="video", location_ref=path)],
                gateway=make_gateway(_router()),
                search=make_search_client(),
            ))

        self.assertEqual(len(out_dirs), 1)
        self.assertFalse(os.path.exists(out_dirs[0]))
        self.assertFalse(os.path.exists(os.path.dirname(out_dirs[0])))
        self.assertTrue(os.path.exists(path))

    def test_status_reports_booleans_only(self):
        status = get_status(ModelGateway(None), make_search_client(configured=True))
        self.assertEqual(status, {"model": False, "search": True})


class TestAdversarialContent(unittest.TestCase):

    def test_generates_content_and_warnings(self):
        gateway = make_gateway(lambda prompt: {
            "content": "Your account is locked. Verify now.",
            "warnings": ["Urgency", "Impersonation"],
        })

        content = asyncio.run(generate_adversarial_content("fake bank alert", gateway))

        self.assertEqual(content.content, "Your account is locked. Verify now.")
        self.assertIsNone(content.script)
        self.assertEqual(content.warnings, ["Urgency", "Impersonation"])
        self.assertIn("fake bank alert", prompt_of(gateway.client.chat.completions.create.await_args.kwargs))

    def test_empty_template_rejected(self):
        with self.assertRaises(ValueError):
            asyncio.run(generate_adversarial_content("  ", make_gateway(lambda prompt: {})))


if __name__ == '__main__':
    unittest.main()
