"""questionnaire_server — FastAPI REST API for questionnaire templates and submissions.

Serves the catalog (templates, pages with questions), the submission
lifecycle (create, autosave patch, complete), analytics events and
read-only admin views, all under ``/api/v1``.
"""
