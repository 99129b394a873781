"""Database-level enumerations."""

import enum


class PageType(str, enum.Enum):
    """How a page is rendered.

    ``intro`` and ``summary`` pages usually carry no questions;
    ``photo_upload`` pages hold the upload widgets.
    """

    INTRO = "intro"
    STANDARD = "standard"
    PHOTO_UPLOAD = "photo_upload"
    SUMMARY = "summary"


class EventType(str, enum.Enum):
    """Analytics event names written by the server itself.

    Clients may post any event name; these are the ones the API emits.
    """

    QUESTIONNAIRE_STARTED = "questionnaire_started"
    QUESTIONNAIRE_COMPLETED = "questionnaire_completed"
