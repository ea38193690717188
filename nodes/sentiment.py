from src.models import EnrichmentState, Outcome, Sentiment, SENTIMENTS, STEP_STATUS, Step
from settings import SENTIMENT_INPUT_CHARS
from src.logger import log

NEUTRAL = Sentiment(label="neutral", score=0.0)


class SentimentAnalyzer:
    """Label + score from the provider's structured sentiment answer."""

    def __init__(self, provider, max_chars: int = SENTIMENT_INPUT_CHARS):
        self.provider = provider
        self.max_chars = max_chars

    def analyze(self, text: str) -> Outcome[Sentiment]:
        try:
            result = self.provider.assess_sentiment(text[:self.max_chars])
            label = str(result.sentiment).strip().lower()
            score = float(result.score)
        except Exception as e:
            return Outcome.default(NEUTRAL, error=f"{type(e).__name__}: {str(e)[:200]}")

        if label not in SENTIMENTS or score != score:  # NaN check
            return Outcome.default(NEUTRAL, error=f"Invalid sentiment response: {label!r} {score!r}")

        score = max(-1.0, min(1.0, score))
        return Outcome.ok(Sentiment(label=label, score=round(score, 2)))


def analyze_sentiment(state: EnrichmentState, analyzer: SentimentAnalyzer) -> dict:
    """
    Step 1: sentiment label and score.

    Degrades to neutral / 0.0 when the provider fails or answers nonsense.
    """
    outcome = analyzer.analyze(state["feedback"]["content"])
    update = {
        "sentiment": outcome.value.label,
        "sentiment_score": outcome.value.score,
        "status": STEP_STATUS[Step.ANALYZE_SENTIMENT],
    }
    if outcome.fallback:
        log(f"  Sentiment fell back to neutral for {state['feedback']['id']}: {outcome.error}")
        update["fallbacks"] = state.get("fallbacks", []) + [Step.ANALYZE_SENTIMENT.value]
    return update
