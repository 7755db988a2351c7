"""
Force primitives for the layout simulation.

Each force follows d3-force semantics: it is initialized with the bodies it
acts on and, on every tick, adjusts body velocities scaled by the current
``alpha``. The centre force is the exception and translates positions
directly.

Forces:
- ``LinkForce``: springs along edges, per-link distance
- ``ManyBodyForce``: pairwise charge (negative strength repels)
- ``CenterForce``: keeps the mean position at a point
- ``CollisionForce``: separates overlapping circles
- ``PositionForce``: weak pull toward a fixed x or y coordinate
"""

import math
import random
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple


@dataclass
class Body:
    """Mutable simulation state for one node. ``fx``/``fy`` pin an axis."""
    id: str
    x: float = 0.0
    y: float = 0.0
    vx: float = 0.0
    vy: float = 0.0
    fx: Optional[float] = None
    fy: Optional[float] = None
    radius: float = 12.0
    importance: float = 0.0
    index: int = 0

    @property
    def is_pinned(self) -> bool:
        return self.fx is not None and self.fy is not None


def jiggle(rng: random.Random) -> float:
    return (rng.random() - 0.5) * 1e-6


class Force:
    """Base class. Subclasses implement ``apply``."""

    def __init__(self):
        self.bodies: List[Body] = []
        self.rng: random.Random = random.Random(0)

    def initialize(self, bodies: List[Body], rng: random.Random) -> None:
        self.bodies = bodies
        self.rng = rng

    def apply(self, alpha: float) -> None:
        raise NotImplementedError

    def __call__(self, alpha: float) -> None:
        self.apply(alpha)


class LinkForce(Force):
    """
    Springs between linked bodies.

    ``distance`` maps a link index to its rest length. Strength defaults to
    ``1 / min(degree(source), degree(target))`` and the correction is split by
    relative degree, as in d3.
    """

    def __init__(
        self,
        links: Sequence[Tuple[str, str]],
        distance: Callable[[int], float],
        iterations: int = 1,
    ):
        super().__init__()
        self.links = list(links)
        self.distance = distance
        self.iterations = iterations
        self._resolved: List[Tuple[Body, Body, float, float, float]] = []

    def initialize(self, bodies: List[Body], rng: random.Random) -> None:
        super().initialize(bodies, rng)
        by_id = {b.id: b for b in bodies}
        count: Dict[str, int] = {}
        for source, target in self.links:
            count[source] = count.get(source, 0) + 1
            count[target] = count.get(target, 0) + 1

        self._resolved = []
        for i, (source, target) in enumerate(self.links):
            if source not in by_id or target not in by_id or source == target:
                continue
            cs, ct = count[source], count[target]
            bias = cs / (cs + ct)
            strength = 1.0 / min(cs, ct)
            self._resolved.append((by_id[source], by_id[target], self.distance(i), strength, bias))

    def apply(self, alpha: float) -> None:
        for _ in range(self.iterations):
            for source, target, distance, strength, bias in self._resolved:
                x = target.x + target.vx - source.x - source.vx or jiggle(self.rng)
                y = target.y + target.vy - source.y - source.vy or jiggle(self.rng)
                length = math.sqrt(x * x + y * y)
                length = (length - distance) / length * alpha * strength
                x *= length
                y *= length
                target.vx -= x * bias
                target.vy -= y * bias
                source.vx += x * (1 - bias)
                source.vy += y * (1 - bias)


class ManyBodyForce(Force):
    """
    Pairwise charge. Exact O(n^2) evaluation with a distance cutoff; visible
    subgraphs are small enough that Barnes-Hut is not needed.
    """

    def __init__(
        self,
        strength: Callable[[Body], float],
        distance_min: float = 1.0,
        distance_max: float = math.inf,
    ):
        super().__init__()
        self.strength = strength
        self.distance_min2 = distance_min * distance_min
        self.distance_max2 = distance_max * distance_max
        self._strengths: Dict[str, float] = {}

    def initialize(self, bodies: List[Body], rng: random.Random) -> None:
        super().initialize(bodies, rng)
        self._strengths = {b.id: self.strength(b) for b in bodies}

    def apply(self, alpha: float) -> None:
        bodies = self.bodies
        for node in bodies:
            for other in bodies:
                if other is node:
                    continue
                x = other.x - node.x
                y = other.y - node.y
                if x == 0:
                    x = jiggle(self.rng)
                if y == 0:
                    y = jiggle(self.rng)
                dist2 = x * x + y * y
                if dist2 >= self.distance_max2:
                    continue
                if dist2 < self.distance_min2:
                    dist2 = math.sqrt(self.distance_min2 * dist2)
                w = self._strengths[other.id] * alpha / dist2
                node.vx += x * w
                node.vy += y * w


class CenterForce(Force):
    """Translates all bodies so their mean sits at ``(x, y)``."""

    def __init__(self, x: float, y: float, strength: float = 1.0):
        super().__init__()
        self.x = x
        self.y = y
        self.strength = strength

    def apply(self, alpha: float) -> None:
        if not self.bodies:
            return
        n = len(self.bodies)
        sx = (sum(b.x for b in self.bodies) / n - self.x) * self.strength
        sy = (sum(b.y for b in self.bodies) / n - self.y) * self.strength
        for body in self.bodies:
            body.x -= sx
            body.y -= sy


class CollisionForce(Force):
    """Pushes apart bodies closer than ``radius(a) + radius(b)``."""

    def __init__(self, radius: Callable[[Body], float], strength: float = 1.0, iterations: int = 1):
        super().__init__()
        self.radius = radius
        self.strength = strength
        self.iterations = iterations
        self._radii: Dict[str, float] = {}

    def initialize(self, bodies: List[Body], rng: random.Random) -> None:
        super().initialize(bodies, rng)
        self._radii = {b.id: self.radius(b) for b in bodies}

    def apply(self, alpha: float) -> None:
        bodies = self.bodies
        for _ in range(self.iterations):
            for i, node in enumerate(bodies):
                ri = self._radii[node.id]
                xi = node.x + node.vx
                yi = node.y + node.vy
                for other in bodies[i + 1:]:
                    rj = self._radii[other.id]
                    r = ri + rj
                    x = xi - other.x - other.vx
                    y = yi - other.y - other.vy
                    dist2 = x * x + y * y
                    if dist2 >= r * r:
                        continue
                    if x == 0:
                        x = jiggle(self.rng)
                        dist2 += x * x
                    if y == 0:
                        y = jiggle(self.rng)
                        dist2 += y * y
                    dist = math.sqrt(dist2)
                    overlap = (r - dist) / dist * self.strength
                    x *= overlap
                    y *= overlap
                    share = rj * rj / (ri * ri + rj * rj)
                    node.vx += x * share
                    node.vy += y * share
                    other.vx -= x * (1 - share)
                    other.vy -= y * (1 - share)


class PositionForce(Force):
    """Pulls bodies toward a target coordinate on one axis (``"x"`` or ``"y"``)."""

    def __init__(self, axis: str, target: Callable[[Body], float], strength: float = 0.1):
        super().__init__()
        if axis not in ("x", "y"):
            raise ValueError(f"axis must be 'x' or 'y', got {axis!r}")
        self.axis = axis
        self.target = target
        self.strength = strength

    def apply(self, alpha: float) -> None:
        for body in self.bodies:
            if self.axis == "x":
                body.vx += (self.target(body) - body.x) * self.strength * alpha
            else:
                body.vy += (self.target(body) - body.y) * self.strength * alpha
