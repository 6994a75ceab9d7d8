class SearchError(Exception):
    """Base class for trip search failures"""


class InvalidQuery(SearchError):
    """Search parameters are missing or malformed; the caller can fix and retry"""


class SearchUnavailable(SearchError):
    """The route store could not be reached or failed while querying"""
