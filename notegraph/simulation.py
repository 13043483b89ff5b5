import logging
import math
import random
from enum import Enum

from PyQt6.QtCore import QElapsedTimer, Qt, QTimer

from notegraph.config import LayoutConfig
from notegraph.forces import compute_forces

logger = logging.getLogger(__name__)


class Clock:
    """Recurring callback source. The callback receives the elapsed milliseconds since the last call."""

    def start(self, callback, interval_ms):
        raise NotImplementedError

    def stop(self):
        raise NotImplementedError

    @property
    def is_running(self):
        raise NotImplementedError


class QtClock(Clock):
    def __init__(self, parent=None):
        self._callback = None
        self._elapsed = QElapsedTimer()
        self._timer = QTimer(parent)
        self._timer.setTimerType(Qt.TimerType.PreciseTimer)
        self._timer.timeout.connect(self._on_timeout)

    def start(self, callback, interval_ms):
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        self._callback = callback
        self._elapsed.start()
        self._timer.start(max(1, round(interval_ms)))
        logger.debug(f"Qt clock started at {interval_ms:.2f} ms")

    def stop(self):
        self._callback = None
        if self._timer.isActive():
            self._timer.stop()
            logger.debug("Qt clock stopped")

    @property
    def is_running(self):
        return self._timer.isActive()

    def _on_timeout(self):
        # A timeout already queued when stop() ran must not reach the callback
        if self._callback is None:
            return
        self._callback(float(self._elapsed.restart()))


class ManualClock(Clock):
    """Single-stepped clock for tests and headless runs."""

    def __init__(self):
        self._callback = None
        self.interval_ms = None
        self.starts = 0

    def start(self, callback, interval_ms):
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive, got {interval_ms}")
        self._callback = callback
        self.interval_ms = interval_ms
        self.starts += 1

    def stop(self):
        self._callback = None

    @property
    def is_running(self):
        return self._callback is not None

    def tick(self, count=1):
        """Fires `count` nominal intervals; stops early once the callback stops the clock."""
        fired = 0
        for _ in range(count):
            if self._callback is None:
                break
            self._callback(self.interval_ms)
            fired += 1
        return fired

    def advance(self, elapsed_ms):
        if self._callback is not None:
            self._callback(elapsed_ms)


class SimState(Enum):
    IDLE = "idle"
    RUNNING = "running"


def seed_positions(nodes, config, rng=None):
    """Places nodes evenly on a circle around the canvas center with a small jitter; zeroes velocity."""
    rng = rng or random
    count = len(nodes)
    cx, cy = config.center

    for i, node in enumerate(nodes):
        angle = (i / max(count, 1)) * 2 * math.pi
        node.x = cx + math.cos(angle) * config.seed_radius + rng.uniform(-config.jitter, config.jitter)
        node.y = cy + math.sin(angle) * config.seed_radius + rng.uniform(-config.jitter, config.jitter)
        node.vx = 0.0
        node.vy = 0.0


class Simulation:
    def __init__(self, model, config=None, clock=None, on_tick=None, on_state_changed=None):
        self.model = model
        self.config = config or LayoutConfig()
        self.clock = clock or ManualClock()
        self.on_tick = on_tick
        self.on_state_changed = on_state_changed

        self.state = SimState.IDLE
        self.tick_count = 0
        self.last_movement = 0.0
        self._accumulated = 0.0
        self._run_ticks = 0

    @property
    def is_running(self):
        return self.state is SimState.RUNNING

    def start(self):
        """Idle -> Running. Returns False when already running or the graph is degenerate."""
        if self.state is SimState.RUNNING:
            return False
        if len(self.model.nodes) < 2:
            logger.debug(f"Not starting simulation for {len(self.model.nodes)} node(s)")
            return False

        self._accumulated = 0.0
        self._run_ticks = 0
        self._set_state(SimState.RUNNING)
        self.clock.start(self.advance, self.config.tick_interval_ms)
        return True

    def stop(self):
        self.clock.stop()
        self._accumulated = 0.0
        if self.state is SimState.RUNNING:
            self._set_state(SimState.IDLE)

    def advance(self, elapsed_ms):
        """Clock callback. Converts wall time into whole fixed steps; returns how many ran."""
        if self.state is not SimState.RUNNING:
            return 0

        interval = self.config.tick_interval_ms
        self._accumulated += elapsed_ms
        steps = int(self._accumulated // interval)
        if steps > self.config.max_catchup_ticks:
            # Too far behind (e.g. window was suspended): drop the backlog
            steps = self.config.max_catchup_ticks
            self._accumulated = 0.0
        else:
            self._accumulated -= steps * interval

        ran = 0
        for _ in range(steps):
            if self.state is not SimState.RUNNING:
                break
            self.step()
            ran += 1
        return ran

    def step(self):
        """Runs one tick and returns the total movement."""
        nodes = self.model.node_list()
        if len(nodes) < 2:
            if self.state is SimState.RUNNING:
                self.stop()
            return 0.0

        # 1. Forces
        forces = compute_forces(nodes, self.model.edges, self.config)

        # 2. Integration
        damping = self.config.damping
        max_speed = self.config.max_speed
        total_movement = 0.0
        for n in nodes:
            if n.pinned:
                n.vx = 0.0
                n.vy = 0.0
                continue

            fx, fy = forces[n.uid]
            n.vx = (n.vx + fx) * damping
            n.vy = (n.vy + fy) * damping

            speed = math.hypot(n.vx, n.vy)
            if speed > max_speed:
                n.vx *= max_speed / speed
                n.vy *= max_speed / speed

            n.x += n.vx
            n.y += n.vy

            # 3. Movement
            total_movement += abs(n.vx) + abs(n.vy)

        self.tick_count += 1
        self._run_ticks += 1
        self.last_movement = total_movement

        if self.on_tick:
            self.on_tick(total_movement)

        # 4. Convergence
        if total_movement < self.config.movement_threshold and self.state is SimState.RUNNING:
            logger.info(f"Layout converged after {self._run_ticks} ticks (movement {total_movement:.4f})")
            self.stop()

        return total_movement

    def _set_state(self, state):
        self.state = state
        if self.on_state_changed:
            self.on_state_changed(state)
