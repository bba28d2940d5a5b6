"""
Topic redirect from raw history to decision.

Runs ContextAnalyzer.analyze_conversation_flow into the real decision engine
with the registered scenarios, so topic stability comes from the windowed
classification rather than a hand-built FlowAnalysis.
"""

import pytest

from src.core.config import AnalyzerConfig, DecisionConfig
from src.domain.models.enums import InterventionType, Priority
from src.services.context_analyzer import ContextAnalyzer
from src.services.decision import InterventionDecisionEngine


def lunch_topic(text: str) -> str:
    return "off_topic" if "lunch" in text else "valuation"


def lunch_relevance(text: str) -> float:
    return 0.1 if "lunch" in text else 0.9


@pytest.mark.parametrize(
    "window_size,on_topic,off_topic",
    [
        # Five messages need windows of two to yield two full windows.
        (2, 2, 3),
        # The default window of five needs ten messages for the same split.
        (5, 5, 5),
    ],
)
async def test_drifting_history_yields_redirect(
    fake_analyzer, make_context, make_message, clock, window_size, on_topic, off_topic
):
    fake_analyzer.topic = lunch_topic
    fake_analyzer.relevance = lunch_relevance
    analyzer = ContextAnalyzer(
        fake_analyzer, AnalyzerConfig(stability_window_size=window_size)
    )
    engine = InterventionDecisionEngine(DecisionConfig(), clock=clock)

    messages = [make_message(f"The valuation looks high {i}") for i in range(on_topic)]
    messages += [
        make_message(f"Where should we get lunch {i}", user_id="u2")
        for i in range(off_topic)
    ]
    clock.set(messages[-1].timestamp)
    context = make_context(messages=messages)

    flow = await analyzer.analyze_conversation_flow(context.message_history)
    decision = engine.should_intervene(context, flow)

    assert flow.topic_stability == 0.5
    assert flow.messages_off_topic == off_topic
    assert decision.should_respond is True
    assert decision.intervention_type == InterventionType.TOPIC_REDIRECT
    assert decision.confidence >= 0.6
    assert decision.priority == Priority.HIGH


async def test_single_window_history_is_stable(fake_analyzer, make_message):
    fake_analyzer.topic = lunch_topic
    analyzer = ContextAnalyzer(fake_analyzer, AnalyzerConfig())
    messages = [make_message("The valuation looks high") for _ in range(2)]
    messages += [make_message("Where should we get lunch") for _ in range(3)]

    flow = await analyzer.analyze_conversation_flow(messages)

    assert flow.topic_stability == 1.0
