from functools import partial
from typing import Optional

from langgraph.graph import StateGraph, START, END
from langgraph.checkpoint.memory import InMemorySaver
from langgraph.types import RetryPolicy
from sqlalchemy.exc import OperationalError

from settings import STORE_MAX_ATTEMPTS
from src.models import EnrichmentState, Step
from nodes.sentiment import analyze_sentiment, SentimentAnalyzer
from nodes.themes import extract_themes, ThemeClassifier
from nodes.urgency import classify_urgency, UrgencyClassifier
from nodes.summary import generate_summary, Summarizer
from nodes.prioritize import calculate_priority, PriorityScorer
from nodes.store import store_results


def create_graph(
    sentiment: SentimentAnalyzer,
    themes: ThemeClassifier,
    urgency: UrgencyClassifier,
    summarizer: Summarizer,
    scorer: PriorityScorer,
    repository,
    checkpointer=None,
    store_retry: Optional[RetryPolicy] = None,
):
    """
    Create the enrichment workflow graph.

    analyze_sentiment → extract_themes → classify_urgency → generate_summary
    → calculate_priority → store_results

    Every node's output is checkpointed under the run's thread_id, so a run
    interrupted mid-way resumes at the first step without a checkpoint.
    """
    workflow = StateGraph(EnrichmentState)

    workflow.add_node(Step.ANALYZE_SENTIMENT.value, partial(analyze_sentiment, analyzer=sentiment))
    workflow.add_node(Step.EXTRACT_THEMES.value, partial(extract_themes, classifier=themes))
    workflow.add_node(Step.CLASSIFY_URGENCY.value, partial(classify_urgency, classifier=urgency))
    workflow.add_node(Step.GENERATE_SUMMARY.value, partial(generate_summary, summarizer=summarizer))
    workflow.add_node(Step.CALCULATE_PRIORITY.value, partial(calculate_priority, scorer=scorer))
    workflow.add_node(
        Step.STORE_RESULTS.value,
        partial(store_results, repository=repository),
        retry_policy=store_retry or RetryPolicy(max_attempts=STORE_MAX_ATTEMPTS, retry_on=OperationalError),
    )

    # Strictly sequential: priority needs both sentiment and urgency
    steps = [step.value for step in Step]
    workflow.add_edge(START, steps[0])
    for current, following in zip(steps, steps[1:]):
        workflow.add_edge(current, following)
    workflow.add_edge(steps[-1], END)

    return workflow.compile(checkpointer=checkpointer or InMemorySaver())
