"""Example: Asking the analytics assistant

The assistant answers questions by calling read-only tools (sales summary,
top items, category breakdown, daily revenue) and never writes data.

Prerequisites:
- Set OPENAI_API_KEY (and optionally OPENAI_BASE_URL, POS_LLM_MODEL)
- Optionally set POS_DATABASE_URL to a store that already holds uploads
"""

from pos_analytics import AnalyticsService, AppConfig
from pos_analytics.assistant import AnalyticsAssistant, AssistantToolbox
from pos_analytics.llm import ChatCompletionsClient
from pos_analytics.store import StoreGateway, create_engine_from_config, create_session_factory

config = AppConfig.from_env()
engine = create_engine_from_config(config)
gateway = StoreGateway(create_session_factory(engine), config.location, config.channel_location)
service = AnalyticsService(gateway, config=config)

assistant = AnalyticsAssistant(ChatCompletionsClient(config), AssistantToolbox(service))

questions = [
    "How did sales go over the last 7 days?",  # MODIFY AS NEEDED
    "이번 달 가장 많이 팔린 메뉴 5개는?",
]
for question in questions:
    print(f"Q: {question}")
    print(f"A: {assistant.ask(question)}\n")

engine.dispose()
