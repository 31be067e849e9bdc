"""Exception taxonomy and observable events for the recommendation pipeline."""

from typing import Any, Optional


class RecommendationError(Exception):
    """Base class for all pipeline errors."""


class InsufficientDataError(RecommendationError, ValueError):
    """A universe (users, artists or tags) became empty, or a user has no history."""


class DimensionMismatchError(RecommendationError, ValueError):
    """A record references an identifier outside its matrix universe."""


class UnknownArtistError(RecommendationError, KeyError):
    """Lookup of an artist that is not part of the reduced universe."""

    def __init__(self, artist_id: Any):
        super().__init__(f"Artist {artist_id!r} is not in the artist universe")
        self.artist_id = artist_id


class UnknownTagError(RecommendationError, KeyError):
    """Lookup of a genre tag that is not part of the reduced universe."""

    def __init__(self, tag_id: Any):
        super().__init__(f"Tag {tag_id!r} is not in the tag universe")
        self.tag_id = tag_id


class FallbackInvoked:
    """Record of a user whose recommendations came from the random fallback.

    Not an error. The selector collects these so callers can tell degraded
    recommendation sets apart from collaborative ones.
    """

    def __init__(self, user_id: Any, qualified_candidates: int, reason: Optional[str] = None):
        self.user_id = user_id
        self.qualified_candidates = qualified_candidates
        self.reason = reason or "too few unheard candidates"

    def __repr__(self) -> str:
        return (f"FallbackInvoked(user_id={self.user_id!r}, "
                f"qualified_candidates={self.qualified_candidates})")

    def __eq__(self, other) -> bool:
        if not isinstance(other, FallbackInvoked):
            return NotImplemented
        return (self.user_id, self.qualified_candidates) == (other.user_id, other.qualified_candidates)

    def __hash__(self) -> int:
        return hash((self.user_id, self.qualified_candidates))
