from __future__ import annotations

import polyline

from heritage_routing.services.geodesy import Coordinate

POLYLINE_PRECISION = 5


def decode_polyline(encoded: str) -> list[Coordinate]:
    """Decode a Google encoded polyline (1e5 precision) into coordinates.

    Raises ValueError when the text is truncated or contains characters
    outside the encoding alphabet.
    """
    if not encoded:
        return []
    if any(not 63 <= ord(char) <= 126 for char in encoded):
        raise ValueError("Polyline contains characters outside the encoding alphabet")
    try:
        pairs = polyline.decode(encoded, POLYLINE_PRECISION)
    except (IndexError, TypeError) as exc:
        raise ValueError(f"Malformed polyline: {exc}") from exc
    return [Coordinate(latitude=lat, longitude=lng) for lat, lng in pairs]


def encode_polyline(coordinates: list[Coordinate]) -> str:
    return polyline.encode([(point.latitude, point.longitude) for point in coordinates], POLYLINE_PRECISION)
