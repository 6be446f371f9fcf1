"""Read-only assistant tool surface.

Example:
    >>> from pos_analytics.assistant import AnalyticsAssistant, AssistantToolbox
    >>> assistant = AnalyticsAssistant(ChatCompletionsClient(config), AssistantToolbox(service))
    >>> print(assistant.ask("지난주 매출은?"))
"""

from pos_analytics.assistant.chat import AnalyticsAssistant
from pos_analytics.assistant.tools import TOOL_DEFINITIONS, AssistantToolbox

__all__ = ["TOOL_DEFINITIONS", "AnalyticsAssistant", "AssistantToolbox"]
