import unittest
from unittest.mock import AsyncMock, MagicMock, call
import asyncio

from helpers import make_completion

from evidentia.shared.errors import EmptyResponseError, ModelNotConfiguredError
from evidentia.shared.llm_client import (
    ModelGateway,
    compute_retry_wait,
    is_transient_error,
    parse_json_response,
    to_message_part,
)
from evidentia.shared.schemas import ContentPart


def _gateway_with_responses(*responses):
    client = MagicMock()
    client.chat.completions.create = AsyncMock(side_effect=list(responses))
    gateway = ModelGateway(client, model="test-model")
    gateway.sleep = AsyncMock()
    return gateway


class TestRetryPolicy(unittest.TestCase):

    def test_transient_error_is_retried(self):
        """429 오류 후 재시도하여 성공"""
        gateway = _gateway_with_responses(Exception("Error 429: Too Many Requests"), make_completion("ok"))

        result = asyncio.run(gateway.generate_text("hello"))

        self.assertEqual(result, "ok")
        self.assertEqual(gateway.client.chat.completions.create.await_count, 2)
        gateway.sleep.assert_awaited_once_with(1.0)

    def test_retry_exhaustion_raises_after_three_attempts(self):
        gateway = _gateway_with_responses(*[Exception("503 Service temporarily unavailable")] * 3)

        with self.assertRaises(Exception):
            asyncio.run(gateway.generate_text("hello"))

        self.assertEqual(gateway.client.chat.completions.create.await_count, 3)
        self.assertEqual(gateway.sleep.await_args_list, [call(1.0), call(2.0)])

    def test_retry_hint_is_honored_and_capped(self):
        gateway = _gateway_with_responses(
            Exception("Quota exceeded. Please retry in 120s."),
            make_completion("ok"),
        )

        asyncio.run(gateway.generate_text("hello"))

        gateway.sleep.assert_awaited_once_with(60.0)

    def test_retry_after_header_takes_precedence(self):
        error = Exception("rate limit reached, retry in 30s")
        error.response = MagicMock(headers={"retry-after": "7"})

        self.assertEqual(compute_retry_wait(error, 1), 7.0)

    def test_non_transient_error_propagates_without_retry(self):
        gateway = _gateway_with_responses(ValueError("invalid request: unknown parameter"))

        with self.assertRaises(ValueError):
            asyncio.run(gateway.generate_text("hello"))

        self.assertEqual(gateway.client.chat.completions.create.await_count, 1)
        gateway.sleep.assert_not_awaited()

    def test_empty_response_is_retried(self):
        gateway = _gateway_with_responses(make_completion("   "), make_completion("filled"))

        self.assertEqual(asyncio.run(gateway.generate_text("hello")), "filled")

    def test_empty_response_exhaustion_raises_empty_response_error(self):
        gateway = _gateway_with_responses(*[make_completion("")] * 3)

        with self.assertRaises(EmptyResponseError):
            asyncio.run(gateway.generate_text("hello"))

    def test_missing_credentials(self):
        gateway = ModelGateway(None)

        self.assertFalse(gateway.is_configured)
        with self.assertRaises(ModelNotConfiguredError):
            asyncio.run(gateway.generate_json("hello"))

    def test_status_code_classification(self):
        error = Exception("backend failure")
        error.status_code = 503
        self.assertTrue(is_transient_error(error))
        self.assertFalse(is_transient_error(Exception("permission denied")))


class TestRequestShape(unittest.TestCase):

    def test_json_mode_and_parts(self):
        gateway = _gateway_with_responses(make_completion('```json\n{"a": 1}\n```'))
        part = ContentPart(mime_type="image/png", base64_data="AAAA")

        result = asyncio.run(gateway.generate_json("describe", parts=[part]))

        self.assertEqual(result, {"a": 1})
        params = gateway.client.chat.completions.create.await_args.kwargs
        self.assertEqual(params["model"], "test-model")
        self.assertEqual(params["response_format"], {"type": "json_object"})
        content = params["messages"][0]["content"]
        self.assertEqual(content[0], {"type": "text", "text": "describe"})
        self.assertEqual(content[1]["image_url"]["url"], "data:image/png;base64,AAAA")

    def test_audio_part(self):
        part = to_message_part(ContentPart(mime_type="audio/mpeg", base64_data="BBBB"))
        self.assertEqual(part, {"type": "input_audio", "input_audio": {"data": "BBBB", "format": "mp3"}})


class TestParseJsonResponse(unittest.TestCase):

    def test_strips_code_fences(self):
        self.assertEqual(parse_json_response('```json\n{"claims": []}\n```'), {"claims": []})
        self.assertEqual(parse_json_response('{"x": true}'), {"x": True})

    def test_invalid_json_raises_value_error(self):
        with self.assertRaises(ValueError):
            parse_json_response("not json at all")


if __name__ == '__main__':
    unittest.main()
