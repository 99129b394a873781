"""Questionnaire engine constants shared across the SDK.

These values are referenced by the validation engine, the conditional logic
evaluator, the session store and the autosave coordinator.

Several constants can be overridden via environment variables so that
deployments can tune timing without code changes.
"""

import os

# Every question type the catalog may declare.  Types outside this set are
# still loaded (with a warning) and simply skip type-specific validation.
QUESTION_TYPES: set[str] = {
    "text",
    "textarea",
    "email",
    "phone",
    "number",
    "date",
    "date_picker",
    "single_choice",
    "multiple_choice",
    "checkbox",
    "file_upload",
    "photo_upload",
    "photo_grid",
    "rating",
    "slider",
    "pain_scale",
    "tooth_chart",
    "budget_range",
}

# Periodic autosave interval.
# Overridable via AUTOSAVE_INTERVAL_SECONDS env var.
AUTOSAVE_INTERVAL_SECONDS = float(os.getenv("AUTOSAVE_INTERVAL_SECONDS", "30"))

# Upper bound for a single collaborator call (create / patch / complete /
# catalog fetch).  A timed-out call is treated as a network failure.
# Overridable via REQUEST_TIMEOUT_SECONDS env var.
REQUEST_TIMEOUT_SECONDS = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "10"))

# Key under which the session snapshot is written to session-scoped storage.
SESSION_STORAGE_KEY = os.getenv("SESSION_STORAGE_KEY", "questionnaire-session")

# Local submission ids carry this prefix until the server assigns a real id.
TEMP_ID_PREFIX = "temp_"

# Client-generated submission tokens carry this prefix.
SUBMISSION_TOKEN_PREFIX = "sub_"

# Analytics event emitted when a submission is completed.
COMPLETED_EVENT = "questionnaire_completed"
