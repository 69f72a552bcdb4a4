"""Encoded polyline helpers.

OpenRouteService returns optimization geometry in Google's encoded polyline
format with precision 5. Decoded points are (lat, lon).
"""

from __future__ import annotations

from typing import Iterable

PRECISION_FACTOR = 1e5


def _decode_value(polyline: str, index: int) -> tuple[int, int]:
    shift = 0
    result = 0
    while True:
        b = ord(polyline[index]) - 63
        index += 1
        result |= (b & 0x1f) << shift
        shift += 5
        if b < 0x20:
            break
    value = ~(result >> 1) if (result & 1) else (result >> 1)
    return value, index


def decode_polyline(polyline: str) -> list[tuple[float, float]]:
    """Decode Google polyline string to list of (lat, lon) coordinates."""
    coordinates = []
    index = 0
    lat = 0
    lon = 0

    while index < len(polyline):
        dlat, index = _decode_value(polyline, index)
        dlon, index = _decode_value(polyline, index)
        lat += dlat
        lon += dlon
        coordinates.append((lat / PRECISION_FACTOR, lon / PRECISION_FACTOR))

    return coordinates


def _encode_value(value: int) -> str:
    value = ~(value << 1) if value < 0 else (value << 1)
    chunks = []
    while value >= 0x20:
        chunks.append(chr((0x20 | (value & 0x1f)) + 63))
        value >>= 5
    chunks.append(chr(value + 63))
    return "".join(chunks)


def encode_polyline(coordinates: Iterable[tuple[float, float]]) -> str:
    """Encode (lat, lon) coordinates into a Google polyline string."""
    encoded = []
    prev_lat = 0
    prev_lon = 0
    for lat, lon in coordinates:
        lat_e5 = int(round(lat * PRECISION_FACTOR))
        lon_e5 = int(round(lon * PRECISION_FACTOR))
        encoded.append(_encode_value(lat_e5 - prev_lat))
        encoded.append(_encode_value(lon_e5 - prev_lon))
        prev_lat, prev_lon = lat_e5, lon_e5
    return "".join(encoded)
