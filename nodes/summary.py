from src.models import EnrichmentState, Outcome, STEP_STATUS, Step
from prompts import SUMMARY_PROMPT
from settings import SUMMARY_INPUT_CHARS, SUMMARY_MAX_CHARS, SUMMARY_FALLBACK_CHARS
from src.logger import log


class Summarizer:
    def __init__(self, provider, max_chars: int = SUMMARY_MAX_CHARS,
                 input_chars: int = SUMMARY_INPUT_CHARS,
                 fallback_chars: int = SUMMARY_FALLBACK_CHARS):
        self.provider = provider
        self.max_chars = max_chars
        self.input_chars = input_chars
        self.fallback_chars = fallback_chars

    def truncate(self, text: str) -> str:
        return text[:self.fallback_chars] + "..."

    def summarize(self, text: str) -> Outcome[str]:
        try:
            response = self.provider.complete(SUMMARY_PROMPT.format(content=text[:self.input_chars]))
        except Exception as e:
            return Outcome.default(self.truncate(text), error=f"{type(e).__name__}: {str(e)[:200]}")

        summary = str(response or "")[:self.max_chars].strip()
        if not summary:
            return Outcome.default(self.truncate(text), error="Empty summary response")
        return Outcome.ok(summary)


def generate_summary(state: EnrichmentState, summarizer: Summarizer) -> dict:
    """Step 4: one-line summary, falls back to the truncated text."""
    outcome = summarizer.summarize(state["feedback"]["content"])
    update = {
        "summary": outcome.value,
        "status": STEP_STATUS[Step.GENERATE_SUMMARY],
    }
    if outcome.fallback:
        log(f"  Summary fell back to truncation for {state['feedback']['id']}: {outcome.error}")
        update["fallbacks"] = state.get("fallbacks", []) + [Step.GENERATE_SUMMARY.value]
    return update
