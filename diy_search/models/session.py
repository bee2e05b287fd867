# diy_search/models/session.py

"""Credential bundle for the authenticated retailer's search API."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Session:
    """Bearer token plus the cookie jar it was issued with.

    Frozen so a cached session can only ever be replaced as a whole.
    """

    token: str
    cookie_header: str
    expires_at: float  # epoch seconds

    def is_fresh(self, now: float, margin: float) -> bool:
        """True while the session has more than *margin* seconds left."""
        return self.expires_at > now + margin
