"""
Prompt templates for FeedbackPulse.
"""

from prompts.prompt_sentiment import SENTIMENT_SYSTEM_PROMPT
from prompts.prompt_themes import THEMES_PROMPT
from prompts.prompt_urgency import URGENCY_PROMPT
from prompts.prompt_summary import SUMMARY_PROMPT

__all__ = [
    "SENTIMENT_SYSTEM_PROMPT",
    "THEMES_PROMPT",
    "URGENCY_PROMPT",
    "SUMMARY_PROMPT",
]
