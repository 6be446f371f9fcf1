"""Tests for extraction payload parsing and the chat-completions client.

The module also includes a live test that sends a receipt image to the real
endpoint; it is skipped without OPENAI_API_KEY and POS_LIVE_RECEIPT_IMAGE.
"""

import os

import pytest
import requests

from pos_analytics.config import AppConfig
from pos_analytics.exceptions import ConfigError, ExternalServiceError, ExtractionFormatError
from pos_analytics.ingestion.extraction import VisionExtractor, parse_extraction_payload
from pos_analytics.llm import ChatCompletionsClient


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON")
        return self._payload


class FakeSession:
    """Records posted bodies and replays canned responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def post(self, url, json=None, headers=None):
        self.requests.append({"url": url, "json": json, "headers": headers})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def chat_response(content: str) -> FakeResponse:
    return FakeResponse(payload={"choices": [{"message": {"role": "assistant", "content": content}}]})


@pytest.fixture
def llm_config() -> AppConfig:
    return AppConfig(llm_api_key="test-key", llm_base_url="https://llm.example/v1/")


class TestParseExtractionPayload:
    def test_bare_json(self) -> None:
        assert parse_extraction_payload('{"total_amount": 5000}') == {"total_amount": 5000}

    def test_json_wrapped_in_prose(self) -> None:
        text = 'Here is the data:\n{"items": [], "total_amount": 0}\nLet me know!'
        assert parse_extraction_payload(text)["total_amount"] == 0

    def test_json_in_code_block(self) -> None:
        text = '```json\n{"business_date": "2025-12-02", "transactions": []}\n```'
        assert parse_extraction_payload(text)["business_date"] == "2025-12-02"

    def test_no_json_keeps_raw_text(self) -> None:
        with pytest.raises(ExtractionFormatError) as exc_info:
            parse_extraction_payload("Sorry, I cannot read this receipt.")
        assert exc_info.value.raw_text == "Sorry, I cannot read this receipt."

    def test_invalid_json_keeps_raw_text(self) -> None:
        text = '{"total_amount": 50,000}'
        with pytest.raises(ExtractionFormatError) as exc_info:
            parse_extraction_payload(text)
        assert exc_info.value.raw_text == text


class TestChatCompletionsClient:
    def test_requires_api_key(self) -> None:
        with pytest.raises(ConfigError):
            ChatCompletionsClient(AppConfig(llm_api_key=None))

    def test_returns_first_message(self, llm_config) -> None:
        session = FakeSession(chat_response("안녕하세요"))
        client = ChatCompletionsClient(llm_config, session=session)

        message = client.complete([{"role": "user", "content": "hi"}])

        assert message["content"] == "안녕하세요"
        sent = session.requests[0]
        assert sent["url"] == "https://llm.example/v1/chat/completions"
        assert sent["json"]["model"] == llm_config.llm_model
        assert sent["headers"]["Authorization"] == "Bearer test-key"
        assert "tools" not in sent["json"]

    def test_non_2xx_raises_external_service_error(self, llm_config) -> None:
        session = FakeSession(FakeResponse(status_code=503, text="overloaded"))
        client = ChatCompletionsClient(llm_config, session=session)
        with pytest.raises(ExternalServiceError) as exc_info:
            client.complete([{"role": "user", "content": "hi"}])
        assert exc_info.value.status_code == 503
        assert exc_info.value.retryable

    def test_transport_error_raises_external_service_error(self, llm_config) -> None:
        session = FakeSession(requests.ConnectionError("connection refused"))
        client = ChatCompletionsClient(llm_config, session=session)
        with pytest.raises(ExternalServiceError):
            client.complete([{"role": "user", "content": "hi"}])

    def test_bad_envelope_raises_external_service_error(self, llm_config) -> None:
        session = FakeSession(FakeResponse(payload={"choices": []}))
        client = ChatCompletionsClient(llm_config, session=session)
        with pytest.raises(ExternalServiceError):
            client.complete([{"role": "user", "content": "hi"}])


class TestVisionExtractor:
    def test_extract_receipt_sends_image_and_parses_reply(self, llm_config) -> None:
        session = FakeSession(chat_response('```json\n{"items": [], "total_amount": 0}\n```'))
        extractor = VisionExtractor(llm_config, session=session)

        payload = extractor.extract_receipt("data:image/jpeg;base64,AAAA")

        assert payload == {"items": [], "total_amount": 0}
        content = session.requests[0]["json"]["messages"][0]["content"]
        assert content[1]["image_url"]["url"] == "data:image/jpeg;base64,AAAA"
        assert "식사류" in content[0]["text"]
        assert "{categories}" not in content[0]["text"]

    def test_unparseable_reply_raises_format_error(self, llm_config) -> None:
        session = FakeSession(chat_response("I can't see a receipt."))
        extractor = VisionExtractor(llm_config, session=session)
        with pytest.raises(ExtractionFormatError):
            extractor.extract_transaction_history("data:image/jpeg;base64,AAAA")


@pytest.mark.live
def test_extract_receipt_live() -> None:
    """Live test: extract a real receipt image.

    Prerequisites:
        - OPENAI_API_KEY: API key (required)
        - POS_LIVE_RECEIPT_IMAGE: path to a receipt image (required)

    The test will be skipped if either is not available.
    """
    image = os.environ.get("POS_LIVE_RECEIPT_IMAGE")
    if not os.environ.get("OPENAI_API_KEY") or not image:
        pytest.skip("Live test skipped: OPENAI_API_KEY and POS_LIVE_RECEIPT_IMAGE required")

    from pos_analytics.ingestion.extraction import encode_image
    from pos_analytics.ingestion.normalize import normalize_receipt

    extractor = VisionExtractor(AppConfig.from_env())
    payload = extractor.extract_receipt(encode_image(image))
    receipt = normalize_receipt(payload, business_date="2025-12-02")

    assert receipt.items
    assert receipt.total_amount > 0
