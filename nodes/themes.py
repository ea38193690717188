from src.models import EnrichmentState, Outcome, STEP_STATUS, Step
from src.taxonomy import ThemeTaxonomy, DEFAULT_THEMES
from prompts import THEMES_PROMPT
from settings import CLASSIFY_INPUT_CHARS
from src.logger import log


class ThemeClassifier:
    """
    Keyword-first theme tagger with a provider fallback.

    Keyword matches are returned in taxonomy order (up to max_themes). Only
    text with no keyword hit goes to the provider, whose answer is filtered
    to known themes. Nothing usable -> the fallback theme.
    """

    def __init__(self, provider, taxonomy: ThemeTaxonomy = DEFAULT_THEMES,
                 max_chars: int = CLASSIFY_INPUT_CHARS):
        self.provider = provider
        self.taxonomy = taxonomy
        self.max_chars = max_chars

    def classify(self, text: str) -> Outcome[list[str]]:
        matched = self.taxonomy.match(text)
        if matched:
            return Outcome.ok(matched[:self.taxonomy.max_themes])

        prompt = THEMES_PROMPT.format(
            themes=", ".join(self.taxonomy.themes),
            content=text[:self.max_chars],
        )
        try:
            response = self.provider.complete(prompt)
        except Exception as e:
            return Outcome.default([self.taxonomy.fallback], error=f"{type(e).__name__}: {str(e)[:200]}")

        themes = self.parse(response)
        if not themes:
            return Outcome.default([self.taxonomy.fallback], error=f"No valid themes in {str(response)[:100]!r}")
        return Outcome.ok(themes)

    def parse(self, response) -> list[str]:
        """Comma-separated tags, unknown and repeated tags dropped."""
        themes = []
        for tag in str(response or "").lower().split(","):
            tag = tag.strip().strip(".\"'")
            if tag in self.taxonomy.keywords and tag not in themes:
                themes.append(tag)
        return themes[:self.taxonomy.max_themes]


def extract_themes(state: EnrichmentState, classifier: ThemeClassifier) -> dict:
    """Step 2: 1-3 theme tags, never empty."""
    outcome = classifier.classify(state["feedback"]["content"])
    update = {
        "themes": outcome.value,
        "status": STEP_STATUS[Step.EXTRACT_THEMES],
    }
    if outcome.fallback:
        log(f"  Themes fell back to {outcome.value} for {state['feedback']['id']}: {outcome.error}")
        update["fallbacks"] = state.get("fallbacks", []) + [Step.EXTRACT_THEMES.value]
    return update
