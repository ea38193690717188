import math
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from src.models import EnrichmentState, STEP_STATUS, Step
from src.taxonomy import ScoringWeights, DEFAULT_WEIGHTS

SECONDS_PER_DAY = 24 * 60 * 60


def _round_half_up(value: float, places: str = "0.1") -> float:
    # repr() keeps 9.05 as "9.05" so it rounds to 9.1, not 9.0
    return float(Decimal(repr(value)).quantize(Decimal(places), rounding=ROUND_HALF_UP))


def parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class PriorityScorer:
    """
    Weighted-sum priority score.

        score = tier_w * 0.4 + severity_w * 0.3 + sentiment_w * 0.2 + min(days * 0.5, 5) * 0.1

    rounded half-up to one decimal. Unknown categorical inputs use the
    mid-range defaults (tier 1, severity 4, sentiment 5).
    """

    def __init__(self, weights: ScoringWeights = DEFAULT_WEIGHTS):
        self.weights = weights

    def age_weight(self, age_days: float) -> float:
        return min(age_days * self.weights.age_per_day, self.weights.age_cap)

    def score(self, tier: Optional[str], severity: Optional[str],
              sentiment: Optional[str], age_days: float) -> float:
        w = self.weights
        tier_w = w.tier.get((tier or "").strip().lower(), w.tier_default)
        severity_w = w.severity.get(severity or "", w.severity_default)
        sentiment_w = w.sentiment.get(sentiment or "", w.sentiment_default)

        total = (
            tier_w * w.tier_factor
            + severity_w * w.severity_factor
            + sentiment_w * w.sentiment_factor
            + self.age_weight(age_days) * w.age_factor
        )
        return _round_half_up(total)

    @staticmethod
    def age_in_days(created_at: str, now: Optional[datetime] = None) -> int:
        """Whole days since creation, at least 1."""
        now = now or datetime.now(timezone.utc)
        try:
            elapsed = (now - parse_timestamp(created_at)).total_seconds()
        except (TypeError, ValueError):
            return 1
        return max(1, math.floor(elapsed / SECONDS_PER_DAY))


def calculate_priority(state: EnrichmentState, scorer: PriorityScorer,
                       now: Optional[datetime] = None) -> dict:
    """Step 5: deterministic priority from tier, urgency, sentiment and age."""
    feedback = state["feedback"]
    age_days = scorer.age_in_days(feedback["created_at"], now)
    score = scorer.score(feedback.get("customer_tier"), state["urgency"], state["sentiment"], age_days)

    return {
        "priority_score": score,
        "status": STEP_STATUS[Step.CALCULATE_PRIORITY],
    }
