"""
Exceptions raised inside the rate reference service.

None of these reach callers of RateLookupService.lookup; the fetch
coordinator catches them and degrades the affected key to zero rows.
"""

from typing import Optional


class RateReferenceError(Exception):
    """Base exception for rate reference errors."""
    pass


class TransportError(RateReferenceError):
    """Raised when the dataset API cannot be reached or answers non-2xx."""
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedResponseError(RateReferenceError):
    """Raised when the dataset API payload is not a JSON array of row objects."""
    pass
