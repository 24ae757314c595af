import unittest
from unittest.mock import patch
import os
import shutil
import tempfile
from pathlib import Path

import helpers  # noqa: F401
from helpers import make_search_client

from fastapi.testclient import TestClient

from evidentia.config import Config
from evidentia.main import app
from evidentia.shared.llm_client import ModelGateway


class TestApi(unittest.TestCase):

    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()
        self.patchers = [
            patch('evidentia.main.gateway', ModelGateway(None)),
            patch('evidentia.main.search_client', make_search_client(configured=False)),
            patch.object(Config, "UPLOAD_DIR", Path(self.tmp_dir)),
        ]
        for p in self.patchers:
            p.start()
        self.client = TestClient(app)

    def tearDown(self):
        for p in self.patchers:
            p.stop()
        shutil.rmtree(self.tmp_dir, ignore_errors=True)

    def test_status(self):
        response = self.client.get("/api/status")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"model": False, "search": False})

    def test_analyze_empty_inputs(self):
        response = self.client.post("/api/analyze", json={"inputs": []})

        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()["success"])

    def test_analyze_demo_report_is_camel_case(self):
        response = self.client.post("/api/analyze", json={
            "inputs": [{"type": "text", "rawText": "URGENT wire transfer needed for your inheritance"}],
        })

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["source"], "demo")
        self.assertEqual(body["error"]["code"], "missing_key")
        report = body["report"]
        self.assertEqual(report["executiveSummary"]["confidence"], 88)
        self.assertEqual(report["scores"]["scamRisk"], 95)
        self.assertIn("evidenceLedger", report)

    def test_analyze_scenario_payload(self):
        response = self.client.post("/api/analyze", json={"inputs": [], "mode": "demo", "scenarioId": "relationship-screenshots"})

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertIsNone(body["error"])
        self.assertEqual(len(body["report"]["evidenceLedger"]), 3)

    def test_uploaded_file_is_deleted_after_analysis(self):
        upload = self.client.post(
            "/api/upload",
            files={"file": ("notes.pdf", b"not really a pdf", "application/pdf")},
            data={"type": "pdf"},
        )
        key = upload.json()["key"]
        self.assertTrue(os.path.exists(os.path.join(self.tmp_dir, key)))

        response = self.client.post("/api/analyze", json={"inputs": [{"type": "pdf", "locationRef": key}]})

        self.assertEqual(response.status_code, 200)
        self.assertFalse(os.path.exists(os.path.join(self.tmp_dir, key)))

    @patch('evidentia.main.fetch_url_html', return_value="<html><body><p>Fetched article</p></body></html>")
    def test_fetch(self, mock_fetch):
        response = self.client.post("/api/fetch", json={"url": "https://example.com/a"})

        self.assertEqual(response.json()["text"], "Fetched article")
        mock_fetch.assert_called_once_with("https://example.com/a")

    @patch('evidentia.main.fetch_url_html', side_effect=OSError("connection refused"))
    def test_link_fetch_failure_does_not_abort(self, mock_fetch):
        response = self.client.post("/api/analyze", json={"inputs": [{"type": "link", "url": "https://example.com/down"}]})

        self.assertEqual(response.status_code, 200)
        ledger = response.json()["report"]["evidenceLedger"]
        self.assertEqual(ledger[0]["extractedTextPreview"], "[Failed to fetch URL]")

    def test_demo_scenarios(self):
        scenarios = self.client.get("/api/demo/scenarios").json()

        self.assertEqual({s["id"] for s in scenarios},
                         {"scam-email", "viral-news", "relationship-screenshots", "ai-media-clip"})
        self.assertIn("rawText", scenarios[0]["payload"][0])

    def test_adversarial_without_model(self):
        response = self.client.post("/api/adversarial/generate", json={"template": "fake bank alert"})

        body = response.json()
        self.assertIn("Configure OPENAI_API_KEY", body["content"])
        self.assertEqual(body["warnings"], ["No API key configured."])


if __name__ == '__main__':
    unittest.main()
