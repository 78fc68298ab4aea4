from __future__ import annotations


class LovsentralenError(Exception):
    """Base error for the analysis core."""


class CaseNotFoundError(LovsentralenError):
    def __init__(self, case_id: str):
        super().__init__(f"Case not found: {case_id}")
        self.case_id = case_id


class CaseBusyError(LovsentralenError):
    """Raised when an analysis run is already in progress for the case."""

    def __init__(self, case_id: str):
        super().__init__(f"Analysis already running for case {case_id}")
        self.case_id = case_id


class AnalysisSynthesisError(LovsentralenError):
    """The synthesizer produced no usable Q&A items."""


class SearchProviderError(LovsentralenError):
    """A web-search provider returned an error or an unusable payload."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
