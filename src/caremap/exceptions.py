"""Custom exception hierarchy for caremap."""

from __future__ import annotations


class CareMapError(Exception):
    """Base exception for all caremap errors."""


class CareMapConfigError(CareMapError):
    """Invalid or missing configuration."""


class FetchError(CareMapError):
    """A data source could not be fetched (network, non-200, missing file)."""

    def __init__(
        self,
        message: str,
        *,
        source: str = "",
        status_code: int | None = None,
    ) -> None:
        self.source = source
        self.status_code = status_code
        super().__init__(message)


class ParseError(CareMapError):
    """A fetched document could not be decoded or does not match its schema."""

    def __init__(self, message: str, *, source: str = "") -> None:
        self.source = source
        super().__init__(message)


class LookupMiss(CareMapError):
    """No isochrone polygon is indexed under a facility's correlation key.

    Non-fatal: the interaction controller turns a miss into the removal
    transition of the isochrone layer and never lets it propagate.
    """

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"No isochrone found for {key!r}")


class MapStateError(CareMapError):
    """The map engine was asked for an inconsistent source/layer change."""
