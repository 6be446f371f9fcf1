"""Tool-calling analytics assistant.

One request/response round: the model sees the conversation and the
read-only tool definitions; any tool calls it makes are executed through
:class:`AssistantToolbox`, the results are sent back, and the model's final
answer is returned. External failures surface as
:class:`~pos_analytics.exceptions.ExternalServiceError`.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any

from pos_analytics.assistant.tools import TOOL_DEFINITIONS, AssistantToolbox
from pos_analytics.exceptions import ExternalServiceError, ToolNotAllowedError, ValidationError
from pos_analytics.llm import ChatCompletionsClient

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a helpful AI assistant for a restaurant. You help analyze sales data and provide business insights and patterns.

Use the available tools to fetch data from the database before answering questions. Always use tools to get current data rather than making assumptions.

When presenting data:
- Use Korean Won (₩) for currency
- Be concise and actionable
- Highlight important trends or anomalies
- The restaurant is closed on Sundays, so that data is excluded

Respond in a friendly, professional manner. Keep responses brief but insightful in the user's initial language."""


class AnalyticsAssistant:
    """Answers analytics questions with the read-only tools.

    Args:
        client: Chat-completions client.
        toolbox: Toolbox that executes tool calls.
        system_prompt: System message prepended to every conversation.
    """

    def __init__(
        self,
        client: ChatCompletionsClient,
        toolbox: AssistantToolbox,
        system_prompt: str = SYSTEM_PROMPT,
    ) -> None:
        self.client = client
        self.toolbox = toolbox
        self.system_prompt = system_prompt

    def ask(self, question: str, history: Sequence[dict[str, Any]] = ()) -> str:
        """Answer a single question, optionally after earlier turns."""
        return self.reply([*history, {"role": "user", "content": question}])

    def reply(self, messages: Sequence[dict[str, Any]]) -> str:
        """Produce the assistant's next message for a conversation.

        Raises:
            ExternalServiceError: If the endpoint fails or returns no content.
        """
        conversation = [{"role": "system", "content": self.system_prompt}, *messages]
        first = self.client.complete(conversation, tools=TOOL_DEFINITIONS)

        tool_calls = first.get("tool_calls") or []
        if not tool_calls:
            return self._content(first)

        logger.info("Assistant requested %d tool call(s)", len(tool_calls))
        results = [self._run_tool_call(call) for call in tool_calls]
        final = self.client.complete([*conversation, first, *results])
        return self._content(final)

    def _run_tool_call(self, call: dict[str, Any]) -> dict[str, Any]:
        function = call.get("function") or {}
        name = function.get("name", "")
        try:
            result = self.toolbox.execute(name, function.get("arguments"))
        except (ToolNotAllowedError, ValidationError) as e:
            # Reported back to the model so it can correct itself
            logger.warning("Tool call %s rejected: %s", name, e)
            result = {"error": str(e)}
        return {
            "role": "tool",
            "tool_call_id": call.get("id"),
            "content": json.dumps(result, ensure_ascii=False),
        }

    @staticmethod
    def _content(message: dict[str, Any]) -> str:
        content = message.get("content")
        if not isinstance(content, str) or not content.strip():
            raise ExternalServiceError("Assistant response had no text content")
        return content
