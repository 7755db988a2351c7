"""
Steppable, cancelable force simulation.

The simulation never blocks: callers drive it one ``tick()`` at a time (or
via ``run``/``run_async``) so a host event loop stays responsive. It stops
when kinetic energy drops below a threshold, when alpha cools below
``alpha_min``, or when the iteration cap is hit. Only the last case leaves
the layout unsettled.
"""

import asyncio
import logging
import math
import random
from typing import Dict, List, Optional, Sequence, Tuple

from ..config import LayoutConfig
from .forces import Body, Force

logger = logging.getLogger(__name__)

Position = Tuple[float, float]

INITIAL_RADIUS = 10.0
INITIAL_ANGLE = math.pi * (3 - math.sqrt(5))


def phyllotaxis(index: int, cx: float = 0.0, cy: float = 0.0) -> Position:
    """d3's deterministic sunflower placement for bodies without a position."""
    radius = INITIAL_RADIUS * math.sqrt(0.5 + index)
    angle = index * INITIAL_ANGLE
    return cx + radius * math.cos(angle), cy + radius * math.sin(angle)


class Simulation:
    """
    A tick-based force simulation over a fixed set of bodies.

    Dragging is modelled d3-style: ``pin`` fixes a body and reheats the
    simulation (``alpha_target``), ``unpin`` releases it and lets it cool.
    """

    def __init__(
        self,
        bodies: Sequence[Body],
        forces: Sequence[Force],
        config: Optional[LayoutConfig] = None,
        alpha: float = 1.0,
        seed: Optional[int] = None,
    ):
        self.config = config or LayoutConfig()
        self.bodies: List[Body] = list(bodies)
        self.forces: List[Force] = list(forces)
        self.alpha = alpha
        self.alpha_target = 0.0
        self.alpha_min = self.config.alpha_min
        self.alpha_decay = self.config.alpha_decay
        self.velocity_decay = self.config.velocity_decay

        self.iterations = 0
        self.energy = math.inf
        self.cancelled = False
        self.finished = False
        self.settled = False

        self._rng = random.Random(self.config.seed if seed is None else seed)
        self._by_id: Dict[str, Body] = {b.id: b for b in self.bodies}

        for i, body in enumerate(self.bodies):
            body.index = i
            if body.fx is not None:
                body.x = body.fx
            if body.fy is not None:
                body.y = body.fy
        for force in self.forces:
            force.initialize(self.bodies, self._rng)

        if not self.bodies:
            self.finished = True
            self.settled = True

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.finished)

    def tick(self) -> Optional[float]:
        """Advance one step. Returns kinetic energy, or None once inactive."""
        if not self.active:
            return None

        self.alpha += (self.alpha_target - self.alpha) * self.alpha_decay
        for force in self.forces:
            force(self.alpha)

        keep = 1 - self.velocity_decay
        energy = 0.0
        for body in self.bodies:
            if body.fx is None:
                body.vx *= keep
                body.x += body.vx
            else:
                body.x = body.fx
                body.vx = 0.0
            if body.fy is None:
                body.vy *= keep
                body.y += body.vy
            else:
                body.y = body.fy
                body.vy = 0.0
            energy += body.vx * body.vx + body.vy * body.vy

        self.energy = energy / len(self.bodies)
        self.iterations += 1
        self._check_done()
        return self.energy

    def _check_done(self) -> None:
        reheated = self.alpha_target > 0
        if not reheated and (self.alpha < self.alpha_min or self.energy < self.config.energy_threshold):
            self.finished = True
            self.settled = True
        elif self.iterations >= self.config.max_iterations:
            self.finished = True
            self.settled = False
            logger.debug(f"Simulation hit iteration cap ({self.iterations}), alpha={self.alpha:.4f}")

    def run(self, max_ticks: Optional[int] = None) -> int:
        """Tick until done (or ``max_ticks``). Returns the number of ticks taken."""
        ticks = 0
        while self.active and (max_ticks is None or ticks < max_ticks):
            self.tick()
            ticks += 1
        return ticks

    async def run_async(self, ticks_per_yield: int = 1) -> int:
        """Like ``run`` but yields to the event loop every ``ticks_per_yield`` ticks."""
        ticks = 0
        while self.active:
            self.tick()
            ticks += 1
            if ticks % ticks_per_yield == 0:
                await asyncio.sleep(0)
        return ticks

    def cancel(self) -> None:
        self.cancelled = True

    def pin(self, node_id: str, x: float, y: float) -> bool:
        body = self._by_id.get(node_id)
        if body is None:
            return False
        body.fx, body.fy = x, y
        body.x, body.y = x, y
        self.alpha_target = self.config.drag_alpha_target
        self._restart()
        return True

    def unpin(self, node_id: str) -> bool:
        body = self._by_id.get(node_id)
        if body is None:
            return False
        body.fx = body.fy = None
        self.alpha_target = 0.0
        return True

    def _restart(self) -> None:
        if self.cancelled:
            return
        if self.finished:
            self.finished = False
            self.settled = False
            self.iterations = 0
        self.alpha = max(self.alpha, self.alpha_target)

    def positions(self) -> Dict[str, Position]:
        return {b.id: (b.x, b.y) for b in self.bodies}

    def body(self, node_id: str) -> Optional[Body]:
        return self._by_id.get(node_id)
