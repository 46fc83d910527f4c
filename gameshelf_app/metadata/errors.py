"""
Failure kinds raised inside the metadata providers.

None of these leave the search pipeline: BaseMetadataProvider.fetch() catches
them, logs them (each at its own level) and returns an empty list.
"""


class MetadataError(Exception):
    """Base class for provider failures."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class SourceUnavailable(MetadataError):
    """Transport failure or non-success HTTP status."""


class NoMatch(MetadataError):
    """The source answered but had nothing relevant for the query."""


class MalformedUpstreamData(MetadataError):
    """The response did not have the structure the provider expects."""
