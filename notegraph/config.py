import os
import math
from dataclasses import dataclass, field


@dataclass
class LayoutConfig:
    # Physics constants
    repulsion_strength: float = 5000.0
    attraction_strength: float = 0.01
    center_strength: float = 0.005
    damping: float = 0.9
    min_distance: float = 100.0
    movement_threshold: float = 0.1
    # Stability limits for the explicit integrator
    max_spring_stiffness: float = 1.0
    max_speed: float = 50.0

    # Seeding
    seed_radius: float = 150.0
    jitter: float = 20.0
    canvas_width: float = 400.0
    canvas_height: float = 600.0

    # Clock
    tick_interval_ms: float = 1000.0 / 60
    max_catchup_ticks: int = 5

    def __post_init__(self):
        if self.tick_interval_ms <= 0:
            raise ValueError(f"tick_interval_ms must be positive, got {self.tick_interval_ms}")
        if not 0 < self.damping <= 1:
            raise ValueError(f"damping must be in (0, 1], got {self.damping}")
        if self.min_distance <= 0 or not math.isfinite(self.min_distance):
            raise ValueError(f"min_distance must be positive, got {self.min_distance}")
        if self.max_spring_stiffness <= 0 or self.max_speed <= 0:
            raise ValueError("max_spring_stiffness and max_speed must be positive")

    @property
    def target_distance(self):
        """Rest length of every edge spring."""
        return self.min_distance * 1.5

    @property
    def center(self):
        return (self.canvas_width / 2, self.canvas_height / 2)


def _env_int(name, default):
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _env_float(name, default):
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


@dataclass
class AppSettings:
    api_url: str = "http://localhost:8000"
    token: str = ""
    graph_depth: int = 2
    graph_limit: int = 100
    timeout: float = 15.0
    log_level: str = "INFO"
    layout: LayoutConfig = field(default_factory=LayoutConfig)

    @classmethod
    def from_env(cls):
        """Reads NOTEGRAPH_* environment variables, falling back to defaults."""
        defaults = cls()
        return cls(
            api_url=os.environ.get("NOTEGRAPH_API_URL", defaults.api_url).rstrip("/"),
            token=os.environ.get("NOTEGRAPH_TOKEN", defaults.token),
            graph_depth=_env_int("NOTEGRAPH_GRAPH_DEPTH", defaults.graph_depth),
            graph_limit=_env_int("NOTEGRAPH_GRAPH_LIMIT", defaults.graph_limit),
            timeout=_env_float("NOTEGRAPH_TIMEOUT", defaults.timeout),
            log_level=os.environ.get("NOTEGRAPH_LOG_LEVEL", defaults.log_level).upper(),
        )
