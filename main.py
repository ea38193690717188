import json
import os
import sys

from dotenv import load_dotenv

load_dotenv()

from settings import database_url, checkpoint_db, WORKFLOW_MAX_WORKERS, SCHEDULED_IMPORT_HOUR_UTC
from src.errors import ConfigurationError, DuplicateFeedbackError
from src.logger import log, log_session_start, log_session_end


def require_api_key() -> None:
    """Exit with instructions when the provider key is missing."""
    if not os.environ.get("ANTHROPIC_API_KEY"):
        log("Error: ANTHROPIC_API_KEY environment variable not set")
        log("\nPlease set your API key:")
        log("  export ANTHROPIC_API_KEY=your_key_here")
        log("\nOr add to .env file:")
        log("  ANTHROPIC_API_KEY=your_key_here")
        sys.exit(1)


def build_services(max_workers: int = WORKFLOW_MAX_WORKERS):
    """Repository, durable workflow and intake wired from the environment."""
    from src.provider import ClassificationProvider
    from src.storage import FeedbackRepository
    from src.workflow import EnrichmentWorkflow, sqlite_checkpointer
    from src.importer import FeedbackIntake

    repository = FeedbackRepository.from_url(database_url())
    workflow = EnrichmentWorkflow.build(
        ClassificationProvider(),
        repository,
        checkpointer=sqlite_checkpointer(checkpoint_db()),
        max_workers=max_workers,
    )
    return repository, workflow, FeedbackIntake(repository, workflow)


def cmd_serve(args) -> None:
    import uvicorn
    from src.api import create_app

    repository, workflow, _ = build_services()
    log(f"Serving on http://{args.host}:{args.port}")
    try:
        uvicorn.run(create_app(repository, workflow), host=args.host, port=args.port)
    finally:
        workflow.shutdown()


def cmd_submit(args) -> None:
    repository, workflow, intake = build_services()
    try:
        record, run_id = intake.submit(
            source=args.source,
            content=args.content,
            author=args.author,
            customer_tier=args.tier,
        )
    except DuplicateFeedbackError as e:
        log(f"Already stored as {e.existing_id}")
        workflow.shutdown()
        sys.exit(1)

    log(f"Submitted {record.id} (run {run_id})")
    result = workflow.wait(run_id)
    workflow.shutdown()
    log(json.dumps({k: result.get(k) for k in (
        "sentiment", "sentiment_score", "themes", "urgency", "summary", "priority_score", "processed_at"
    )}, indent=2))


def cmd_import(args) -> None:
    from src.importer import IngestionImporter, require_sheets_source

    try:
        source = require_sheets_source()
    except ConfigurationError as e:
        log(f"Error: {e}")
        sys.exit(1)

    _, workflow, intake = build_services()
    result = IngestionImporter(intake, source).import_all()
    # Let the enqueued runs finish before the process exits
    workflow.shutdown(wait=True)
    log(json.dumps(result.to_dict(), indent=2))


def cmd_scheduled_import(args) -> None:
    """
    Entry point for cron, e.g. daily at 09:00 UTC:

        0 9 * * * cd /path/to/feedbackpulse && python main.py scheduled-import
    """
    from src.importer import run_scheduled_import, sheets_credentials

    if sheets_credentials() is None:
        return
    require_api_key()
    _, workflow, intake = build_services()
    run_scheduled_import(intake)
    workflow.shutdown(wait=True)


def cmd_resume(args) -> None:
    _, workflow, _ = build_services()
    try:
        workflow.resume(args.run_id)
        result = workflow.wait(args.run_id)
    except KeyError as e:
        log(f"Error: {e}")
        sys.exit(1)
    finally:
        workflow.shutdown()
    log(f"Run {args.run_id}: {workflow.status(args.run_id)} (processed_at {result.get('processed_at')})")


def cmd_insights(args) -> None:
    from src.insights import InsightsAggregator
    from src.storage import FeedbackRepository

    repository = FeedbackRepository.from_url(database_url())
    log(json.dumps(InsightsAggregator(repository).build(), indent=2, default=str))


def main():
    import argparse

    parser = argparse.ArgumentParser(
        description="Ingest customer feedback and enrich it with sentiment, themes, urgency, summary and priority",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Examples:
  # Run the API
  python main.py serve --port 8000

  # Enrich one item and print the result
  python main.py submit "Production is down!" --tier enterprise --source support

  # Import from the configured spreadsheet
  python main.py import

  # Cron entry point (no-op without SPREADSHEET_ID / SHEETS_API_KEY),
  # scheduled daily at {SCHEDULED_IMPORT_HOUR_UTC:02d}:00 UTC
  python main.py scheduled-import

  # Continue an interrupted run from its last completed step
  python main.py resume <run_id>
        """
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.set_defaults(func=cmd_serve, needs_provider=True)

    submit = subparsers.add_parser("submit", help="Submit one feedback item and wait for enrichment")
    submit.add_argument("content")
    submit.add_argument("--source", default="manual",
                        choices=["support", "discord", "github", "twitter", "manual"])
    submit.add_argument("--author", default=None)
    submit.add_argument("--tier", default="free")
    submit.set_defaults(func=cmd_submit, needs_provider=True)

    importer = subparsers.add_parser("import", help="Import new rows from the spreadsheet")
    importer.set_defaults(func=cmd_import, needs_provider=True)

    scheduled = subparsers.add_parser("scheduled-import", help="Cron entry point for the daily import")
    scheduled.set_defaults(func=cmd_scheduled_import, needs_provider=False)

    resume = subparsers.add_parser("resume", help="Resume an interrupted run")
    resume.add_argument("run_id")
    resume.set_defaults(func=cmd_resume, needs_provider=True)

    insights = subparsers.add_parser("insights", help="Print dashboard aggregates")
    insights.set_defaults(func=cmd_insights, needs_provider=False)

    args = parser.parse_args()

    log_session_start()
    if args.needs_provider:
        require_api_key()
    args.func(args)
    log_session_end()


if __name__ == "__main__":
    main()
