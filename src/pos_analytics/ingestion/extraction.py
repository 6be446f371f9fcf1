"""Vision extraction: receipt image → best-effort structured payload.

The model is asked for JSON only but frequently wraps it in prose or a
fenced code block. :func:`parse_extraction_payload` recovers the object or
raises :class:`ExtractionFormatError` carrying the raw text, so the upload is
never lost silently.
"""

from __future__ import annotations

import base64
import json
import logging
import mimetypes
import re
from pathlib import Path
from typing import Any

import requests

from pos_analytics.config import AppConfig
from pos_analytics.exceptions import ExtractionFormatError
from pos_analytics.llm import ChatCompletionsClient

logger = logging.getLogger(__name__)

_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_CODE_BLOCK_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")

RECEIPT_PROMPT = """
You are a data extraction assistant. Extract ALL information from this Korean restaurant receipt image.

Return a JSON object with this EXACT structure:
{
    "items": [
        {
            "name": "item name in Korean",
            "quantity": number,
            "unit_price": number,
            "total_price": number,
            "category": "one of: {categories}"
        }
    ],
    "total_amount": number,
    "item_count": number
}

- Subtotal lines (e.g. "식사류 합계") are not items; the final total is usually "전체합계".
- Return ONLY valid JSON. All prices are plain numbers without commas.
"""

TRANSACTION_HISTORY_PROMPT = """
You are a data extraction assistant. Extract ALL transactions from this Korean transaction history receipt (거래내역).

Return a JSON object with this EXACT structure:
{
    "business_date": "YYYY-MM-DD",
    "transactions": [
        {"time": "HH:MM:SS", "amount": number, "payment_type": "카드 or 카반"}
    ],
    "total_amount": number,
    "transaction_count": number
}

- The business date is "조회일자", not the print time "출력시간".
- Keep refunds (카반) negative. Times are 24-hour.
- Return ONLY valid JSON. All amounts are plain numbers without commas.
"""


def parse_extraction_payload(text: str) -> dict[str, Any]:
    """Recover the JSON object from a model response.

    Tries a bare ``{...}`` span first, then the contents of a fenced code block.

    Args:
        text: Raw model output.

    Returns:
        Parsed JSON object.

    Raises:
        ExtractionFormatError: If no JSON object can be recovered.

    Examples:
        >>> parse_extraction_payload('Here you go: {"total_amount": 5000}')
        {'total_amount': 5000}
    """
    match = _OBJECT_RE.search(text or "")
    if match is None:
        block = _CODE_BLOCK_RE.search(text or "")
        if block:
            match = _OBJECT_RE.search(block.group(1))
    if match is None:
        logger.error("Could not find a JSON object in extraction response")
        raise ExtractionFormatError("Failed to extract JSON from response", raw_text=text or "")

    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        logger.error("JSON parse error in extraction response: %s", e)
        raise ExtractionFormatError(f"Failed to parse JSON: {e}", raw_text=text) from e

    if not isinstance(data, dict):
        raise ExtractionFormatError("Extraction response is not a JSON object", raw_text=text)
    return data


def encode_image(path: str | Path) -> str:
    """Read an image file into a base64 data URL."""
    path = Path(path)
    mime, _ = mimetypes.guess_type(path.name)
    payload = base64.b64encode(path.read_bytes()).decode("ascii")
    return f"data:{mime or 'image/jpeg'};base64,{payload}"


class VisionExtractor:
    """Sends receipt images to a vision-capable chat model.

    Args:
        config: AppConfig with LLM settings and the category list.
        session: Optional requests session (tests inject fakes here).
    """

    def __init__(self, config: AppConfig, session: requests.Session | None = None) -> None:
        self.config = config
        self.client = ChatCompletionsClient(config, session=session)

    def extract_receipt(self, image: str) -> dict[str, Any]:
        """Extract line items and totals from a receipt image (data URL)."""
        prompt = RECEIPT_PROMPT.replace("{categories}", ", ".join(self.config.categories))
        return self._extract(prompt, image, "receipt")

    def extract_transaction_history(self, image: str) -> dict[str, Any]:
        """Extract timestamped transactions from a transaction-history image."""
        return self._extract(TRANSACTION_HISTORY_PROMPT, image, "transaction history")

    def _extract(self, prompt: str, image: str, kind: str) -> dict[str, Any]:
        message = self.client.complete(
            [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {"type": "image_url", "image_url": {"url": image}},
                    ],
                }
            ],
            max_completion_tokens=16000,
        )
        content = message.get("content") or ""
        logger.debug("Raw %s extraction response: %s", kind, content)
        return parse_extraction_payload(content)
