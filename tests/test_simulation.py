import math
import random

import pytest

from notegraph.config import LayoutConfig
from notegraph.graph_model import GraphModel
from notegraph.simulation import ManualClock, SimState, Simulation, seed_positions


def triangle_model(rng, config):
    model = GraphModel()
    model.load(
        [{"id": "a", "label": "A"}, {"id": "b", "label": "B"}, {"id": "c", "label": "C"}],
        [{"source": "a", "target": "b", "type": "related", "weight": 1.0}],
    )
    seed_positions(model.node_list(), config, rng)
    return model


def distance(n1, n2):
    return math.hypot(n1.x - n2.x, n1.y - n2.y)


def test_seed_positions_on_circle(config, rng):
    model = GraphModel()
    model.load([{"id": str(i)} for i in range(8)], [])
    nodes = model.node_list()
    nodes[0].vx = 5.0

    seed_positions(nodes, config, rng)

    cx, cy = config.center
    for i, node in enumerate(nodes):
        angle = i / 8 * 2 * math.pi
        assert abs(node.x - (cx + math.cos(angle) * 150)) <= 20
        assert abs(node.y - (cy + math.sin(angle) * 150)) <= 20
        assert (node.vx, node.vy) == (0.0, 0.0)


def test_start_is_noop_when_running(config, rng, clock):
    sim = Simulation(triangle_model(rng, config), config, clock)
    assert sim.start()
    assert not sim.start()
    assert clock.starts == 1
    assert sim.state is SimState.RUNNING


@pytest.mark.parametrize("count", [0, 1])
def test_degenerate_graph_never_runs(config, clock, count):
    model = GraphModel()
    model.load([{"id": f"n{i}"} for i in range(count)], [])
    sim = Simulation(model, config, clock)

    assert not sim.start()
    assert sim.state is SimState.IDLE
    assert not clock.is_running
    assert sim.step() == 0.0


def test_stop_is_idempotent(config, rng, clock):
    sim = Simulation(triangle_model(rng, config), config, clock)
    sim.stop()
    assert sim.state is SimState.IDLE

    sim.start()
    sim.stop()
    sim.stop()
    assert sim.state is SimState.IDLE
    assert not clock.is_running
    assert clock.tick(10) == 0


def test_converges_and_stays_idle(config, rng, clock):
    sim = Simulation(triangle_model(rng, config), config, clock)
    sim.start()

    fired = clock.tick(5000)

    assert fired < 5000
    assert sim.state is SimState.IDLE
    assert sim.last_movement < config.movement_threshold
    assert clock.tick(100) == 0
    assert sim.state is SimState.IDLE


def test_state_callbacks(config, rng, clock):
    states = []
    ticks = []
    sim = Simulation(
        triangle_model(rng, config), config, clock,
        on_tick=ticks.append, on_state_changed=states.append,
    )
    sim.start()
    clock.tick(3)
    sim.stop()

    assert states == [SimState.RUNNING, SimState.IDLE]
    assert len(ticks) == 3


def test_spring_shortens_stretched_edge():
    config = LayoutConfig(repulsion_strength=0.0, center_strength=0.0)
    model = GraphModel()
    model.load([{"id": "a"}, {"id": "b"}], [{"source": "a", "target": "b"}])
    a, b = model.node_list()
    a.x, a.y = 0.0, 0.0
    b.x, b.y = 400.0, 0.0

    sim = Simulation(model, config)
    before = distance(a, b)
    sim.step()
    assert config.target_distance < distance(a, b) < before


def test_spring_lengthens_compressed_edge():
    config = LayoutConfig(repulsion_strength=0.0, center_strength=0.0)
    model = GraphModel()
    model.load([{"id": "a"}, {"id": "b"}], [{"source": "a", "target": "b"}])
    a, b = model.node_list()
    a.x, a.y = 0.0, 0.0
    b.x, b.y = 60.0, 0.0

    sim = Simulation(model, config)
    sim.step()
    assert distance(a, b) > 60.0


def test_integration_applies_damping():
    config = LayoutConfig(repulsion_strength=0.0, center_strength=0.0)
    model = GraphModel()
    model.load([{"id": "a"}, {"id": "b"}], [{"source": "a", "target": "b"}])
    a, b = model.node_list()
    a.x, b.x = 0.0, 350.0

    Simulation(model, config).step()

    # F = (350 - 150) * 0.01 = 2.0; v = (0 + 2) * 0.9
    assert math.isclose(a.vx, 1.8)
    assert math.isclose(a.x, 1.8)
    assert math.isclose(b.vx, -1.8)


def test_pinned_node_does_not_move(config, rng):
    model = triangle_model(rng, config)
    pinned = model.get("a")
    pinned.pinned = True
    x, y = pinned.x, pinned.y

    sim = Simulation(model, config)
    for _ in range(20):
        sim.step()

    assert (pinned.x, pinned.y) == (x, y)
    assert (pinned.vx, pinned.vy) == (0.0, 0.0)


def test_fixed_step_ignores_frame_jitter():
    config = LayoutConfig(tick_interval_ms=10.0)

    steady_clock = ManualClock()
    steady = Simulation(triangle_model(random.Random(5), config), config, steady_clock)
    steady.start()
    steady_clock.tick(6)

    jittery_clock = ManualClock()
    jittery = Simulation(triangle_model(random.Random(5), config), config, jittery_clock)
    jittery.start()
    for elapsed in (3.0, 12.0, 25.0, 10.0, 7.0, 3.0):
        jittery_clock.advance(elapsed)

    assert steady.tick_count == jittery.tick_count == 6
    for uid in ("a", "b", "c"):
        s, j = steady.model.get(uid), jittery.model.get(uid)
        assert (s.x, s.y, s.vx, s.vy) == (j.x, j.y, j.vx, j.vy)


def test_advance_caps_catch_up(config, rng, clock):
    sim = Simulation(triangle_model(rng, config), config, clock)
    sim.start()
    assert sim.advance(10_000.0) == config.max_catchup_ticks
    # Backlog was dropped
    assert sim.advance(1.0) == 0


def test_advance_is_noop_when_idle(config, rng):
    sim = Simulation(triangle_model(rng, config), config)
    assert sim.advance(100.0) == 0
    assert sim.tick_count == 0


def test_manual_clock_rejects_bad_interval():
    with pytest.raises(ValueError):
        ManualClock().start(lambda elapsed: None, 0)


def test_triangle_end_to_end(config, rng, clock):
    model = triangle_model(rng, config)
    a, b, c = model.get("a"), model.get("b"), model.get("c")
    cx, cy = config.center

    initial_ab = distance(a, b)
    initial_c = math.hypot(c.x - cx, c.y - cy)

    sim = Simulation(model, config, clock)
    sim.start()
    clock.tick(5000)
    assert sim.state is SimState.IDLE

    final_ab = distance(a, b)
    assert abs(final_ab - config.target_distance) < abs(initial_ab - config.target_distance)

    final_c = math.hypot(c.x - cx, c.y - cy)
    drift = initial_c - final_c
    assert 0 < drift < initial_c

    for node in model.node_list():
        assert math.isfinite(node.x) and math.isfinite(node.y)


@pytest.mark.parametrize("weight", [150.0, 200.0, 300.0])
def test_heavy_chain_settles_with_finite_positions(config, rng, clock, weight):
    model = GraphModel()
    model.load(
        [{"id": "a"}, {"id": "b"}, {"id": "c"}],
        [{"source": "a", "target": "b", "weight": weight}, {"source": "b", "target": "c", "weight": weight}],
    )
    seed_positions(model.node_list(), config, rng)

    sim = Simulation(model, config, clock)
    sim.start()
    clock.tick(20000)

    assert sim.state is SimState.IDLE
    for node in model.node_list():
        assert math.isfinite(node.x) and math.isfinite(node.y)


def test_heavy_pair_settles_near_rest_length(config, rng, clock):
    model = GraphModel()
    model.load([{"id": "a"}, {"id": "b"}], [{"source": "a", "target": "b", "weight": 500.0}])
    seed_positions(model.node_list(), config, rng)

    sim = Simulation(model, config, clock)
    sim.start()
    clock.tick(20000)

    a, b = model.get("a"), model.get("b")
    assert sim.state is SimState.IDLE
    assert math.isfinite(a.x) and math.isfinite(b.y)
    assert abs(distance(a, b) - config.target_distance) < 20


def test_speed_is_clamped():
    config = LayoutConfig(max_speed=5.0)
    model = GraphModel()
    model.load([{"id": "a"}, {"id": "b"}], [])
    a, b = model.node_list()
    a.x, a.y = 200.0, 300.0
    b.x, b.y = 200.5, 300.0

    Simulation(model, config).step()

    for node in (a, b):
        assert math.hypot(node.vx, node.vy) <= 5.0 + 1e-9
