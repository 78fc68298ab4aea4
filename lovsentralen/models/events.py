from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventType(str, Enum):
    ANALYSIS_STARTED = "analysis_started"
    ISSUES_EXTRACTED = "issues_extracted"
    SEARCH_COMPLETED = "search_completed"
    PAGES_FETCHED = "pages_fetched"
    EVIDENCE_SAVED = "evidence_saved"
    SYNTHESIS_STARTED = "synthesis_started"
    QUALITY_PASS_COMPLETED = "quality_pass_completed"
    ANALYSIS_COMPLETE = "analysis_complete"
    ERROR = "error"


@dataclass
class SSEEvent:
    event: EventType
    data: dict[str, Any] = field(default_factory=dict)
