"""Errors raised while resolving beatmaps and processing queue items.

Absence of data (unknown beatmap, no stored attributes) is never an error:
it is reported as None and handled by eligibility logic.
"""


class ScoreProcessorError(RuntimeError):
    pass


class TransientFetchFailure(ScoreProcessorError):
    """Storage or network was unavailable while resolving data for an item."""


class ContentUnavailable(ScoreProcessorError):
    """Beatmap content fetch succeeded but returned nothing usable."""


class InvalidState(ScoreProcessorError):
    """A caller used the processor in a way its current mode does not allow."""
