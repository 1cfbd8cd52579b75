"""Exception types shared by the intake pipeline and the catalog."""


class FetchError(Exception):
    """Playlist or segment could not be fetched (network failure or non-200)."""


class ParseError(Exception):
    """Segment metadata does not follow the station's metadata grammar."""


class CatalogError(Exception):
    """Base class for catalog storage failures."""


class TrackNotFoundError(CatalogError):
    """No track with the requested id exists in the catalog."""


class CatalogIntegrityError(CatalogError):
    """A uniqueness, foreign-key or check constraint rejected a write."""


class EmptyAudioError(CatalogError):
    """A track was submitted without any audio bytes."""
