from src.models import EnrichmentState, Outcome, STEP_STATUS, Step
from src.taxonomy import UrgencyRules, DEFAULT_URGENCY_RULES
from prompts import URGENCY_PROMPT
from settings import CLASSIFY_INPUT_CHARS
from src.logger import log


class UrgencyClassifier:
    """
    Rule-first, tier-aware urgency tagger.

    Precedence (first match wins):
      1. critical keyword + escalated tier  -> critical
      2. critical keyword                   -> critical if escalated tier else high
      3. high keyword                       -> high if escalated tier else medium
      4. provider answer restricted to the urgency levels, default medium
    """

    def __init__(self, provider, rules: UrgencyRules = DEFAULT_URGENCY_RULES,
                 max_chars: int = CLASSIFY_INPUT_CHARS):
        self.provider = provider
        self.rules = rules
        self.max_chars = max_chars

    def classify(self, text: str, tier: str) -> Outcome[str]:
        lowered = text.lower()
        tier = (tier or "").strip().lower()
        escalated = tier == self.rules.escalated_tier

        has_critical = any(word in lowered for word in self.rules.critical_keywords)
        has_high = any(word in lowered for word in self.rules.high_keywords)

        if has_critical and escalated:
            return Outcome.ok("critical")
        if has_critical:
            return Outcome.ok("critical" if escalated else "high")
        if has_high:
            return Outcome.ok("high" if escalated else "medium")

        levels = ", ".join(self.rules.levels)
        prompt = URGENCY_PROMPT.format(levels=levels, tier=tier, content=text[:self.max_chars])
        try:
            response = self.provider.complete(prompt)
        except Exception as e:
            return Outcome.default(self.rules.default, error=f"{type(e).__name__}: {str(e)[:200]}")

        answer = str(response or "").strip().lower().strip(".\"'")
        if answer not in self.rules.levels:
            return Outcome.default(self.rules.default, error=f"Invalid urgency response: {str(response)[:100]!r}")
        return Outcome.ok(answer)


def classify_urgency(state: EnrichmentState, classifier: UrgencyClassifier) -> dict:
    """Step 3: exactly one urgency level."""
    feedback = state["feedback"]
    outcome = classifier.classify(feedback["content"], feedback.get("customer_tier", "free"))
    update = {
        "urgency": outcome.value,
        "status": STEP_STATUS[Step.CLASSIFY_URGENCY],
    }
    if outcome.fallback:
        log(f"  Urgency fell back to {outcome.value} for {feedback['id']}: {outcome.error}")
        update["fallbacks"] = state.get("fallbacks", []) + [Step.CLASSIFY_URGENCY.value]
    return update
