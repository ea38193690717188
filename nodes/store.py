from src.models import EnrichmentState, STEP_STATUS, Step
from src.logger import log


def store_results(state: EnrichmentState, repository) -> dict:
    """
    Step 6: persist all enrichment fields and processed_at in a single write.

    Storage errors are not caught here: they fail the run (the graph's retry
    policy covers transient ones) and are surfaced to whoever waits on it.
    """
    feedback = state["feedback"]
    processed_at = repository.save_enrichment(
        feedback["id"],
        sentiment=state["sentiment"],
        sentiment_score=state["sentiment_score"],
        urgency=state["urgency"],
        themes=state["themes"],
        summary=state["summary"],
        priority_score=state["priority_score"],
    )

    log(f"✓ Stored: {feedback['id']} → {state['urgency']} / {state['sentiment']} "
        f"{state['themes']} (priority {state['priority_score']})")
    return {
        "processed_at": processed_at,
        "status": STEP_STATUS[Step.STORE_RESULTS],
    }
