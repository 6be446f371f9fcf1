"""HTTP client for the OpenAI-compatible chat-completions endpoint.

Both the receipt extractor and the analytics assistant talk to the same
endpoint. Failures surface as :class:`ExternalServiceError`; the client does
no application-level retrying (transport retries are opt-in through
``AppConfig.llm_retries`` and default to zero).
"""

from __future__ import annotations

import logging
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from pos_analytics.config import AppConfig
from pos_analytics.exceptions import ConfigError, ExternalServiceError

logger = logging.getLogger(__name__)


def make_session(timeout: float, retries: int = 0) -> requests.Session:
    """Create a requests Session with optional retry logic and a default timeout.

    Args:
        timeout: Default timeout in seconds for all requests.
        retries: Number of transport retry attempts (0 disables retrying).

    Returns:
        Configured requests.Session object.

    """
    s = requests.Session()
    retry = Retry(
        total=retries,
        connect=retries,
        read=retries,
        status=retries,
        backoff_factor=0.8,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=frozenset({"POST"}),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    s.mount("http://", adapter)
    s.mount("https://", adapter)
    orig_request = s.request

    def timed_request(method: str, url: str, **kwargs: Any) -> requests.Response:
        kwargs.setdefault("timeout", timeout)
        return orig_request(method, url, **kwargs)

    s.request = timed_request  # type: ignore[method-assign,assignment]
    return s


class ChatCompletionsClient:
    """Minimal chat-completions client.

    Args:
        config: AppConfig with ``llm_base_url``, ``llm_api_key`` and ``llm_model``.
        session: Optional pre-built session (tests inject fakes here).

    Raises:
        ConfigError: If no API key is configured.
    """

    def __init__(self, config: AppConfig, session: requests.Session | None = None) -> None:
        if not config.llm_api_key:
            raise ConfigError("OPENAI_API_KEY is not set; extraction and assistant calls need it")
        self.config = config
        self.session = session or make_session(config.llm_timeout, config.llm_retries)
        self.url = config.llm_base_url.rstrip("/") + "/chat/completions"

    def complete(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        **options: Any,
    ) -> dict[str, Any]:
        """Send one chat-completions request and return the first choice's message.

        Raises:
            ExternalServiceError: On transport errors, non-2xx responses or an
                unexpected response envelope.
        """
        body: dict[str, Any] = {"model": self.config.llm_model, "messages": messages, **options}
        if tools:
            body["tools"] = tools
            body["tool_choice"] = "auto"

        try:
            resp = self.session.post(
                self.url,
                json=body,
                headers={"Authorization": f"Bearer {self.config.llm_api_key}"},
            )
        except requests.RequestException as e:
            logger.error("Chat-completions request failed: %s", e)
            raise ExternalServiceError(f"Chat-completions request failed: {e}") from e

        if not (200 <= resp.status_code < 300):
            logger.error("Chat-completions returned HTTP %s: %s", resp.status_code, resp.text[:400])
            raise ExternalServiceError(
                f"Chat-completions returned HTTP {resp.status_code}: {resp.text[:400]}",
                status_code=resp.status_code,
            )

        try:
            message = resp.json()["choices"][0]["message"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ExternalServiceError(f"Unexpected chat-completions response: {e}") from e
        if not isinstance(message, dict):
            raise ExternalServiceError("Unexpected chat-completions response: message is not an object")
        return message
