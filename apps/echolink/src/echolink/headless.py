from __future__ import annotations

import logging
import time
from typing import Callable

from echolink.app_config import RunConfig
from echolink.net.link import EchoLink, link_from_config
from echolink.net.serializer import Transform

logger = logging.getLogger(__name__)

TICK_RATE = 60

# Stand-in for the physics scene: ground plane and a resting cube.
STATIC_SCENE = (
    Transform(translation=(0.0, 0.0, 0.0), rotation=(-0.70710677, 0.0, 0.0, 0.70710677), scale=(4.0, 4.0, 1.0)),
    Transform(translation=(0.0, 0.5, 0.0)),
)


def run_headless(
    cfg: RunConfig,
    *,
    link: EchoLink | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> EchoLink:
    """Trigger one connection and pump a static scene for cfg.headless_ticks frames."""

    link = link if link is not None else link_from_config(cfg)
    dt = 1.0 / float(TICK_RATE)
    link.trigger()
    try:
        for _ in range(int(cfg.headless_ticks)):
            link.tick(dt, lambda: STATIC_SCENE)
            sleep(dt)
    finally:
        logger.info("%s", link.status_text())
        link.shutdown()
    return link
