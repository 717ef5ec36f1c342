class TripAtlasError(Exception):
    """Base class for trip atlas errors"""


class NotFoundError(TripAtlasError):
    """A referenced trip, location or submitter does not exist"""

    def __init__(self, kind: str, identifier: str):
        super().__init__(f"{kind.capitalize()} not found: {identifier}")
        self.kind = kind
        self.identifier = identifier


class EnrichmentUnavailable(TripAtlasError):
    """Geocoding or knowledge-base lookup failed"""


class UploadFailure(TripAtlasError):
    """Media could not be written to storage"""
