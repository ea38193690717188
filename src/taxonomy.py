"""
Fixed taxonomies and weight tables used by the classifiers and the scorer.

Everything here is immutable and injected at construction time, so tests can
swap in alternate taxonomies without touching module state.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping


FALLBACK_THEME = "general"


def _frozen(mapping: dict) -> Mapping:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class ThemeTaxonomy:
    """Theme tags in declaration order, each with its case-insensitive keywords."""
    keywords: Mapping[str, tuple[str, ...]]
    max_themes: int = 3
    fallback: str = FALLBACK_THEME

    @property
    def themes(self) -> tuple[str, ...]:
        return tuple(self.keywords)

    def match(self, text: str) -> list[str]:
        """Themes whose keywords appear in the text, in declaration order."""
        lowered = text.lower()
        return [
            theme for theme, words in self.keywords.items()
            if any(word in lowered for word in words)
        ]


@dataclass(frozen=True)
class UrgencyRules:
    critical_keywords: tuple[str, ...]
    high_keywords: tuple[str, ...]
    escalated_tier: str = "enterprise"
    levels: tuple[str, ...] = ("critical", "high", "medium", "low")
    default: str = "medium"


@dataclass(frozen=True)
class ScoringWeights:
    """Weight tables and coefficients of the priority formula."""
    tier: Mapping[str, float]
    severity: Mapping[str, float]
    sentiment: Mapping[str, float]
    tier_default: float = 1
    severity_default: float = 4
    sentiment_default: float = 5
    tier_factor: float = 0.4
    severity_factor: float = 0.3
    sentiment_factor: float = 0.2
    age_factor: float = 0.1
    age_per_day: float = 0.5
    age_cap: float = 5


DEFAULT_THEMES = ThemeTaxonomy(keywords=_frozen({
    "documentation": ("docs", "documentation", "guide", "tutorial", "example", "readme", "outdated", "confusing"),
    "reliability": ("down", "outage", "error", "fail", "crash", "broken", "unstable", "503", "500", "timeout"),
    "performance": ("slow", "latency", "speed", "fast", "performance", "cold start", "response time", "millisecond"),
    "developer-experience": ("developer experience", "wrangler", "cli", "sdk", "api", "typescript", "tooling", "debug"),
    "pricing": ("price", "cost", "billing", "expensive", "cheap", "free tier", "credits", "charge"),
    "features": ("feature", "request", "would be", "should", "wish", "need", "want", "missing"),
    "support": ("support", "help", "response", "ticket", "customer service", "resolved"),
    "security": ("security", "auth", "permission", "403", "401", "access", "credential", "token"),
}))

DEFAULT_URGENCY_RULES = UrgencyRules(
    critical_keywords=("urgent", "down", "outage", "production", "critical", "emergency", "asap", "immediately", "sla"),
    high_keywords=("broken", "fail", "error", "blocked", "cannot", "stuck", "alternative", "leaving"),
)

DEFAULT_WEIGHTS = ScoringWeights(
    tier=_frozen({"enterprise": 10, "pro": 5, "free": 1}),
    severity=_frozen({"critical": 10, "high": 7, "medium": 4, "low": 1}),
    sentiment=_frozen({"negative": 10, "neutral": 5, "positive": 1}),
)

# Annual recurring revenue proxy per customer tier
TIER_ARR: Mapping[str, int] = _frozen({"enterprise": 50000, "pro": 5000, "free": 0})


def arr_for_tier(tier: str) -> int:
    return TIER_ARR.get(tier, 0)
