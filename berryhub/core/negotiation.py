"""Accept-header negotiation for callers of the public API."""

from __future__ import annotations

from berryhub.core.errors import InvalidRequestError, UnacceptableError

JSON_MEDIA_TYPE = "application/json"


def _media_ranges(accept: str) -> list[tuple[str, float]]:
    ranges: list[tuple[str, float]] = []
    for part in accept.split(","):
        media_type, *params = (piece.strip() for piece in part.split(";"))
        if not media_type:
            continue
        quality = 1.0
        for param in params:
            name, _, value = param.partition("=")
            if name.strip().lower() == "q":
                try:
                    quality = float(value)
                except ValueError:
                    quality = 0.0
        ranges.append((media_type.lower(), quality))
    return ranges


def accepts_json(accept: str) -> bool:
    for media_type, quality in _media_ranges(accept):
        if quality <= 0:
            continue
        if media_type in ("*/*", "application/*", JSON_MEDIA_TYPE):
            return True
    return False


def require_json(accept: str | None) -> None:
    """Raise unless `accept` admits an ``application/json`` response."""
    if accept is None:
        raise InvalidRequestError("Client sent an invalid request")
    if not accepts_json(accept):
        raise UnacceptableError(f"Client doesn't accept {JSON_MEDIA_TYPE} response")
