from __future__ import annotations

from direct.gui.OnscreenText import OnscreenText
from direct.showbase.ShowBase import ShowBase
from panda3d.bullet import BulletBoxShape, BulletPlaneShape, BulletRigidBodyNode, BulletWorld
from panda3d.core import (
    AmbientLight,
    CardMaker,
    ClockObject,
    LVector3f,
    LVector4,
    PointLight,
    TextNode,
    loadPrcFileData,
)

from echolink.app_config import RunConfig
from echolink.net.link import EchoLink, link_from_config
from echolink.scene import capture_snapshot


class EchoDemoApp(ShowBase):
    """Falling cube + perf overlay. Space opens a connection; every frame pumps it."""

    def __init__(self, cfg: RunConfig, *, link: EchoLink | None = None) -> None:
        loadPrcFileData("", "audio-library-name null")
        if cfg.smoke:
            loadPrcFileData("", "window-type offscreen")

        super().__init__()

        self.disableMouse()
        self.cfg = cfg
        self.link = link if link is not None else link_from_config(cfg)
        self._clock = ClockObject.getGlobalClock()
        # Node paths whose transforms go out with each snapshot.
        self._tracked = []

        self._setup_physics()
        self._setup_scene()
        self._setup_ui()

        self.accept("space", self._on_connect_pressed)
        self.accept("escape", self.userExit)
        self.taskMgr.add(self._update, "update-loop")

        if cfg.smoke:
            self._frames_left = 8
            self.taskMgr.add(self._smoke_task, "smoke-exit")

    def _setup_physics(self) -> None:
        self.bworld = BulletWorld()
        self.bworld.setGravity(LVector3f(0, 0, -9.81))

    def _setup_scene(self) -> None:
        # Static ground: infinite plane for physics, a 8x8 card for display.
        ground_node = BulletRigidBodyNode("ground")
        ground_node.addShape(BulletPlaneShape(LVector3f(0, 0, 1), 0))
        ground_np = self.render.attachNewNode(ground_node)
        self.bworld.attachRigidBody(ground_node)

        cm = CardMaker("ground-card")
        cm.setFrame(-4, 4, -4, 4)
        card = ground_np.attachNewNode(cm.generate())
        card.setP(-90)
        card.setColor(1, 1, 1, 1)
        self._tracked.append(ground_np)

        # Dynamic cube dropped from 2.5 units.
        cube_node = BulletRigidBodyNode("cube")
        cube_node.setMass(1.0)
        cube_node.addShape(BulletBoxShape(LVector3f(0.5, 0.5, 0.5)))
        cube_np = self.render.attachNewNode(cube_node)
        cube_np.setPos(0, 0, 2.5)
        cube_np.setHpr(15, 10, 5)
        self.bworld.attachRigidBody(cube_node)

        model = self.loader.loadModel("models/box")
        model.reparentTo(cube_np)
        # models/box spans 0..1, recentre it on the body.
        model.setPos(-0.5, -0.5, -0.5)
        model.setColor(124 / 255.0, 144 / 255.0, 1.0, 1.0)
        self._tracked.append(cube_np)

        ambient = AmbientLight("ambient")
        ambient.setColor(LVector4(0.25, 0.25, 0.25, 1))
        self.render.setLight(self.render.attachNewNode(ambient))

        lamp = PointLight("lamp")
        lamp.setColor(LVector4(0.9, 0.9, 0.9, 1))
        lamp_np = self.render.attachNewNode(lamp)
        lamp_np.setPos(4, 4, 8)
        self.render.setLight(lamp_np)

        self.camera.setPos(-2.5, -9.0, 4.5)
        self.camera.lookAt(0, 0, 0)

    def _setup_ui(self) -> None:
        self.setFrameRateMeter(True)
        self._status_text = OnscreenText(
            text="",
            parent=self.aspect2d,
            pos=(-1.32, 0.9),
            align=TextNode.ALeft,
            scale=0.045,
            fg=(1, 1, 1, 1),
            shadow=(0, 0, 0, 0.6),
        )

    def _on_connect_pressed(self) -> None:
        self.link.trigger()

    def _snapshot(self):
        return capture_snapshot(self._tracked, self.render)

    def _update(self, task):  # type: ignore[no-untyped-def]
        dt = min(self._clock.getDt(), 0.25)
        self.bworld.doPhysics(dt, 4, 1.0 / 120.0)
        self.link.tick(dt, self._snapshot)
        self._status_text.setText(f"{self.cfg.endpoint}\n{self.link.status_text()}")
        return task.cont

    def _smoke_task(self, task):  # type: ignore[no-untyped-def]
        self._frames_left -= 1
        if self._frames_left <= 0:
            self.userExit()
            return task.done
        return task.cont

    def userExit(self) -> None:  # noqa: N802 - ShowBase API name
        self.link.shutdown()
        super().userExit()


def run(cfg: RunConfig) -> None:
    app = EchoDemoApp(cfg)
    app.run()
