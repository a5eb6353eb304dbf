from __future__ import annotations


class DailyWrapError(Exception):
    pass


class GenerationServiceError(DailyWrapError):
    """The text-generation service could not be reached or refused the call."""


class GenerationFormatError(DailyWrapError):
    """The text-generation service answered with something that is not the JSON we asked for."""


class PersistenceError(DailyWrapError):
    pass


class BriefingNotFound(DailyWrapError):
    def __init__(self, briefing_date) -> None:
        super().__init__(f"No briefing stored for {briefing_date}")
        self.briefing_date = briefing_date
