import unittest
from unittest.mock import patch
import os
import shutil
import subprocess
import tempfile
import time

import helpers  # noqa: F401

from evidentia.config import Config
from evidentia.evidence_module import extractors
from evidentia.evidence_module.normalizer import (
    IMAGE_UNREADABLE_PLACEHOLDER,
    LINK_EMPTY_PLACEHOLDER,
    PDF_MISSING_PLACEHOLDER,
    cleanup_scratch,
    combine_evidence_text,
    create_scratch_root,
    normalize_evidence,
)
from evidentia.shared.schemas import EvidenceInput, NormalizedEvidence


class TestEvidenceInput(unittest.TestCase):

    def test_content_source_required(self):
        with self.assertRaises(ValueError):
            EvidenceInput(type="text")
        with self.assertRaises(ValueError):
            EvidenceInput(type="video")
        with self.assertRaises(ValueError):
            EvidenceInput(type="link")

    def test_camel_case_aliases(self):
        evidence = EvidenceInput.model_validate({"type": "pdf", "locationRef": "doc.pdf"})
        self.assertEqual(evidence.location_ref, "doc.pdf")


class TestNormalizeEvidence(unittest.TestCase):

    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmp_dir, ignore_errors=True)

    def test_text_is_truncated(self):
        evidence = EvidenceInput(type="text", raw_text="a" * (Config.TEXT_MAX_CHARS + 50))

        item = normalize_evidence(evidence)

        self.assertEqual(len(item.text), Config.TEXT_MAX_CHARS)

    def test_normalization_is_idempotent(self):
        evidence = EvidenceInput(type="link", url="https://example.com", raw_text="<p>Same   input</p>")

        first = normalize_evidence(evidence)
        second = normalize_evidence(evidence)

        self.assertEqual(first.text, second.text)
        self.assertEqual(first.text, "Same input")

    def test_link_html_extraction(self):
        html = (
            "<html><head><style>p {color: red}</style></head>"
            "<body><script>var x = 1;</script><h1>Title</h1><p>Body &amp; text</p></body></html>"
        )
        item = normalize_evidence(EvidenceInput(type="link", url="https://example.com/a", raw_text=html))

        self.assertEqual(item.text, "Title Body & text")
        self.assertEqual(item.url, "https://example.com/a")

    def test_link_without_content_gets_placeholder(self):
        item = normalize_evidence(EvidenceInput(type="link", url="https://example.com/empty"))
        self.assertEqual(item.text, LINK_EMPTY_PLACEHOLDER)

    def test_missing_pdf_gets_placeholder(self):
        path = os.path.join(self.tmp_dir, "missing.pdf")
        item = normalize_evidence(EvidenceInput(type="pdf", location_ref=path))

        self.assertEqual(item.text, PDF_MISSING_PLACEHOLDER)
        self.assertEqual(item.filename, "missing.pdf")

    def test_corrupt_pdf_gets_failure_placeholder(self):
        path = os.path.join(self.tmp_dir, "broken.pdf")
        with open(path, "wb") as f:
            f.write(b"this is not a pdf")

        item = normalize_evidence(EvidenceInput(type="pdf", location_ref=path))

        self.assertEqual(item.text, extractors.PDF_FAILED_PLACEHOLDER)

    def test_image_is_inlined(self):
        path = os.path.join(self.tmp_dir, "photo.png")
        with open(path, "wb") as f:
            f.write(b"\x89PNG fake")

        item = normalize_evidence(EvidenceInput(type="image", location_ref=path))

        self.assertEqual(item.inline_image.mime_type, "image/png")
        self.assertTrue(item.inline_image.base64_data)

    def test_unreadable_image_gets_placeholder(self):
        item = normalize_evidence(EvidenceInput(type="image", location_ref=os.path.join(self.tmp_dir, "none.jpg")))

        self.assertIsNone(item.inline_image)
        self.assertEqual(item.text, IMAGE_UNREADABLE_PLACEHOLDER)

    @patch('evidentia.evidence_module.extractors.is_ffmpeg_available', return_value=False)
    def test_video_without_ffmpeg(self, mock_ffmpeg):
        """코덱 도구가 없으면 키프레임 0개와 안내 문구로 정규화"""
        path = os.path.join(self.tmp_dir, "clip.mp4")
        with open(path, "wb") as f:
            f.write(b"\x00\x00")

        item = normalize_evidence(EvidenceInput(type="video", location_ref=path))

        self.assertEqual(item.keyframe_paths, [])
        self.assertIsNone(item.scratch_dir)
        self.assertIn("Keyframe extraction not available", item.text)
        self.assertTrue(os.path.exists(path))

    @patch('evidentia.evidence_module.extractors.extract_video_audio', return_value=None)
    @patch('evidentia.evidence_module.extractors.extract_video_keyframes')
    @patch('evidentia.evidence_module.extractors.is_ffmpeg_available', return_value=True)
    def test_video_scratch_dir_is_cleaned_up(self, mock_ffmpeg, mock_keyframes, mock_audio):
        path = os.path.join(self.tmp_dir, "clip.mp4")
        with open(path, "wb") as f:
            f.write(b"\x00\x00")
        mock_keyframes.side_effect = lambda file_path, out_dir, deadline: [os.path.join(out_dir, "frame_0001.jpg")]
        scratch_root = create_scratch_root()

        item = normalize_evidence(EvidenceInput(type="video", location_ref=path), scratch_root)

        self.assertEqual(len(item.keyframe_paths), 1)
        self.assertIn("1 keyframe(s) extracted", item.text)
        self.assertTrue(os.path.isdir(item.scratch_dir))
        self.assertEqual(os.path.dirname(item.scratch_dir), scratch_root)

        cleanup_scratch(scratch_root)
        self.assertFalse(os.path.exists(item.scratch_dir))
        self.assertFalse(os.path.exists(scratch_root))

    def test_audio_path(self):
        path = os.path.join(self.tmp_dir, "voice.mp3")
        with open(path, "wb") as f:
            f.write(b"ID3")

        item = normalize_evidence(EvidenceInput(type="audio", location_ref=path))

        self.assertEqual(item.audio_path, path)


class TestFfmpegDeadline(unittest.TestCase):

    @patch('evidentia.evidence_module.extractors.subprocess.run')
    def test_timeout_bounded_by_deadline(self, mock_run):
        extractors._run_ffmpeg(["-i", "clip.mp4", "out.mp3"], deadline=time.monotonic() + 5)

        timeout = mock_run.call_args.kwargs["timeout"]
        self.assertGreater(timeout, 0)
        self.assertLessEqual(timeout, 5)

    @patch('evidentia.evidence_module.extractors.subprocess.run')
    def test_expired_deadline_skips_ffmpeg(self, mock_run):
        with self.assertRaises(subprocess.TimeoutExpired):
            extractors._run_ffmpeg(["-i", "clip.mp4", "out.mp3"], deadline=time.monotonic() - 1)

        mock_run.assert_not_called()

    @patch('evidentia.evidence_module.extractors.subprocess.run')
    @patch('evidentia.evidence_module.extractors.is_ffmpeg_available', return_value=True)
    def test_keyframes_after_deadline_are_empty(self, mock_ffmpeg, mock_run):
        tmp_dir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, tmp_dir, ignore_errors=True)
        path = os.path.join(tmp_dir, "clip.mp4")
        with open(path, "wb") as f:
            f.write(b"\x00\x00")

        frames = extractors.extract_video_keyframes(path, tmp_dir, deadline=time.monotonic() - 1)

        self.assertEqual(frames, [])
        mock_run.assert_not_called()


class TestCombineEvidenceText(unittest.TestCase):

    def test_headers(self):
        items = [
            NormalizedEvidence(type="text", text="first"),
            NormalizedEvidence(type="pdf", filename="report.pdf", text="second"),
        ]

        combined = combine_evidence_text(items)

        self.assertIn("--- Evidence e1 (text) ---\nfirst", combined)
        self.assertIn("--- Evidence e2 (pdf: report.pdf) ---\nsecond", combined)


if __name__ == '__main__':
    unittest.main()
