"""
Classification provider: the external model the classifiers delegate to.

Responses are untrusted. Callers validate everything they get back and
handle every exception raised here.
"""

from typing import Optional

from langchain_anthropic import ChatAnthropic

from settings import CLASSIFICATION_MODEL, SENTIMENT_MODEL, PROVIDER_MAX_TOKENS
from src.models import SentimentAssessment
from prompts import SENTIMENT_SYSTEM_PROMPT


def _message_text(message) -> str:
    """Plain text of a chat model response (content may be a list of blocks)."""
    content = getattr(message, "content", message)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
        return "".join(parts)
    return str(content or "")


class ClassificationProvider:
    """Thin wrapper around the Anthropic chat models."""

    def __init__(self, llm=None, sentiment_llm=None):
        self._llm = llm or ChatAnthropic(model=CLASSIFICATION_MODEL, max_tokens=PROVIDER_MAX_TOKENS)
        base = sentiment_llm or ChatAnthropic(model=SENTIMENT_MODEL, max_tokens=PROVIDER_MAX_TOKENS)
        self._sentiment_llm = base.with_structured_output(SentimentAssessment)

    def complete(self, prompt: str, system: Optional[str] = None) -> str:
        """Send a single prompt and return the raw text answer."""
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return _message_text(self._llm.invoke(messages)).strip()

    def assess_sentiment(self, text: str) -> SentimentAssessment:
        return self._sentiment_llm.invoke([
            {"role": "system", "content": SENTIMENT_SYSTEM_PROMPT},
            {"role": "user", "content": text},
        ])
