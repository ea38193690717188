"""HTTP API over the feedback store and the enrichment workflow."""

from typing import Callable, Optional

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from settings import FEEDBACK_LIST_LIMIT
from src.errors import ConfigurationError, DuplicateFeedbackError, FeedbackPipelineError
from src.importer import FeedbackIntake, IngestionImporter, require_sheets_source
from src.insights import InsightsAggregator
from src.logger import log
from src.models import FeedbackSubmission, STATUS_UNKNOWN


def create_app(repository, workflow,
               importer_factory: Optional[Callable[[FeedbackIntake], IngestionImporter]] = None) -> FastAPI:
    """
    Build the API.

    Args:
        importer_factory: builds the importer for POST /api/import; defaults to
            the Google Sheets source and raises ConfigurationError without credentials.
    """
    app = FastAPI(title="FeedbackPulse")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    intake = FeedbackIntake(repository, workflow)
    insights = InsightsAggregator(repository)

    def default_importer(intake: FeedbackIntake) -> IngestionImporter:
        return IngestionImporter(intake, require_sheets_source())

    build_importer = importer_factory or default_importer

    @app.exception_handler(ConfigurationError)
    async def configuration_error(request: Request, exc: ConfigurationError):
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(DuplicateFeedbackError)
    async def duplicate_error(request: Request, exc: DuplicateFeedbackError):
        return JSONResponse(status_code=409, content={"error": str(exc), "id": exc.existing_id})

    @app.exception_handler(FeedbackPipelineError)
    async def pipeline_error(request: Request, exc: FeedbackPipelineError):
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        log(f" API error on {request.url.path}: {type(exc).__name__}: {exc}")
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.get("/api/feedback")
    def list_feedback(
        source: Optional[str] = None,
        urgency: Optional[str] = None,
        sentiment: Optional[str] = None,
        theme: Optional[str] = None,
    ):
        records = repository.list_feedback(
            source=source, urgency=urgency, sentiment=sentiment, theme=theme,
            limit=FEEDBACK_LIST_LIMIT,
        )
        return [r.to_dict() for r in records]

    @app.post("/api/feedback")
    def submit_feedback(body: FeedbackSubmission):
        record, run_id = intake.submit(
            source=body.source,
            content=body.content,
            author=body.author,
            customer_tier=body.customer_tier,
        )
        return {"id": record.id, "run_handle": run_id, "status": "processing"}

    @app.get("/api/runs/{run_id}")
    def run_status(run_id: str):
        status = workflow.status(run_id)
        if status == STATUS_UNKNOWN:
            return JSONResponse(status_code=404, content={"error": f"Unknown run: {run_id}"})
        return {"run_handle": run_id, "status": status, "completed_steps": workflow.completed_steps(run_id)}

    @app.post("/api/import")
    def import_feedback():
        result = build_importer(intake).import_all()
        return {"success": True, "message": f"Imported {result.imported} items", **result.to_dict()}

    @app.get("/api/insights")
    def get_insights():
        return insights.build()

    @app.get("/api/themes")
    def feedback_by_theme(theme: Optional[str] = Query(None)):
        if not theme:
            return JSONResponse(status_code=400, content={"error": "Theme parameter required"})
        return [r.to_dict() for r in repository.list_by_theme(theme)]

    @app.post("/api/clear")
    def clear_feedback():
        deleted = repository.clear()
        log(f"Cleared {deleted} feedback rows")
        return {"success": True, "deleted": deleted}

    return app
