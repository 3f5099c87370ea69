from __future__ import annotations


class DatasetError(Exception):
    """Base class for failures that make a dataset unavailable to the views."""


class LoadFailure(DatasetError):
    """The source could not be read (missing file, network error, bad status)."""


class ParseFailure(DatasetError):
    """The source was read but is not a well-formed table."""


class EmptyDatasetFailure(DatasetError):
    """The table parsed but holds zero data rows."""
