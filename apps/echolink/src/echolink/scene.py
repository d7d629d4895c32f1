from __future__ import annotations

from typing import Iterable

from echolink.net.serializer import Transform


def transform_from_node(np, relative_to) -> Transform:
    """Net transform of a Panda3D NodePath in `relative_to` space."""

    pos = np.getPos(relative_to)
    quat = np.getQuat(relative_to)
    scale = np.getScale(relative_to)
    return Transform(
        translation=(float(pos.x), float(pos.y), float(pos.z)),
        # Panda3D stores (r, i, j, k); the wire order is (x, y, z, w).
        rotation=(float(quat.getI()), float(quat.getJ()), float(quat.getK()), float(quat.getR())),
        scale=(float(scale.x), float(scale.y), float(scale.z)),
    )


def capture_snapshot(nodes: Iterable, relative_to) -> list[Transform]:
    out: list[Transform] = []
    for np in nodes:
        if np.isEmpty():
            continue
        out.append(transform_from_node(np, relative_to))
    return out
