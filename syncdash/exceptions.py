"""Application-level exception types.

Convention:
- ``UpstreamError``: any failed call against the Syncthing REST API
  (transport failure, non-2xx status, undecodable body). The collector turns
  it into a degraded snapshot; it never reaches HTTP clients.
- ``ReadOnlyViolationError``: a request for a path outside the read-only
  allow-list. Raised before any network I/O happens.
- ``ValueError``: invalid configuration detected at startup.
"""

from __future__ import annotations


class UpstreamError(Exception):
    """Raised when the Syncthing API cannot provide a usable response."""


class ReadOnlyViolationError(UpstreamError):
    """Raised when a request targets a path that is not on the read-only allow-list."""
