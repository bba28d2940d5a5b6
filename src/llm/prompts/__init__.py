# noqa
from src.llm.prompts.analysis import (
    ANALYSIS_SYSTEM_PROMPT,
    get_drift_prompt,
    get_focus_prompt,
    get_information_gaps_prompt,
    get_productivity_prompt,
    get_redirection_prompt,
    get_relevance_prompt,
    get_topic_prompt,
    parse_json_array,
    parse_json_object,
    parse_score,
    parse_topic_label,
)

__all__ = [
    "ANALYSIS_SYSTEM_PROMPT",
    "get_drift_prompt",
    "get_focus_prompt",
    "get_information_gaps_prompt",
    "get_productivity_prompt",
    "get_redirection_prompt",
    "get_relevance_prompt",
    "get_topic_prompt",
    "parse_json_array",
    "parse_json_object",
    "parse_score",
    "parse_topic_label",
]
