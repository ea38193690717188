"""
Configuration for the FeedbackPulse project.
"""

import os

# Model configuration
CLASSIFICATION_MODEL = "claude-haiku-4-5-20251001"  # Themes, urgency and summaries are short constrained answers, Haiku is enough
SENTIMENT_MODEL = "claude-haiku-4-5-20251001"
PROVIDER_MAX_TOKENS = 256

# Storage (overridable via environment / .env)
DEFAULT_DATABASE_URL = "sqlite:///feedback.db"
DEFAULT_CHECKPOINT_DB = "checkpoints.db"

# Provider input budgets (characters sent to the model)
SENTIMENT_INPUT_CHARS = 512
CLASSIFY_INPUT_CHARS = 300
SUMMARY_INPUT_CHARS = 400

# Summary output budget
SUMMARY_MAX_CHARS = 120
SUMMARY_FALLBACK_CHARS = 100

# Workflow execution
WORKFLOW_MAX_WORKERS = 4
STORE_MAX_ATTEMPTS = 3
FAILED_RUNS_RETAINED = 100  # recent failures kept so wait() can re-raise them

# API
FEEDBACK_LIST_LIMIT = 100

# Spreadsheet import: sheet name -> feedback source
SHEET_SOURCES = {
    "Support": "support",
    "Discord": "discord",
    "GitHub": "github",
    "Twitter": "twitter",
}
SHEETS_API_URL = "https://sheets.googleapis.com/v4/spreadsheets"
SHEETS_TIMEOUT_SECONDS = 30.0

# Scheduled import runs once a day at this UTC hour (see main.py scheduled-import)
SCHEDULED_IMPORT_HOUR_UTC = 9


def database_url() -> str:
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


def checkpoint_db() -> str:
    return os.environ.get("CHECKPOINT_DB", DEFAULT_CHECKPOINT_DB)
