from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Iterable

# u64 record count, then 10 x f32 per record (bincode layout, little-endian).
_COUNT = struct.Struct("<Q")
_RECORD = struct.Struct("<10f")


@dataclass(frozen=True)
class Transform:
    translation: tuple[float, float, float] = (0.0, 0.0, 0.0)
    # Quaternion as (x, y, z, w).
    rotation: tuple[float, float, float, float] = (0.0, 0.0, 0.0, 1.0)
    scale: tuple[float, float, float] = (1.0, 1.0, 1.0)


def encode_transforms(transforms: Iterable[Transform]) -> bytes:
    items = list(transforms)
    out = bytearray(_COUNT.pack(len(items)))
    for t in items:
        tx, ty, tz = t.translation
        rx, ry, rz, rw = t.rotation
        sx, sy, sz = t.scale
        out += _RECORD.pack(tx, ty, tz, rx, ry, rz, rw, sx, sy, sz)
    return bytes(out)


def decode_transforms(payload: bytes) -> list[Transform]:
    data = bytes(payload)
    if len(data) < _COUNT.size:
        raise ValueError("Snapshot payload too short for record count")
    (count,) = _COUNT.unpack_from(data, 0)
    expected = _COUNT.size + int(count) * _RECORD.size
    if len(data) != expected:
        raise ValueError(f"Snapshot payload size mismatch: got {len(data)} bytes, expected {expected}")

    out: list[Transform] = []
    for off in range(_COUNT.size, expected, _RECORD.size):
        v = _RECORD.unpack_from(data, off)
        out.append(Transform(translation=v[0:3], rotation=v[3:7], scale=v[7:10]))
    return out
