import asyncio

import pytest

from LifeMap.graph import GraphEdge, GraphNode, LayoutSimulation, SimulationStateError, SimulationStatus


def _simulation(settings, edges=(), **kwargs):
    nodes = [GraphNode(id=i, title=i) for i in ("a", "b", "c")]
    return LayoutSimulation(nodes, list(edges), settings=settings, seed=42, **kwargs)


def test_starts_cold(settings):
    sim = _simulation(settings)
    assert sim.status is SimulationStatus.COLD
    with pytest.raises(SimulationStateError):
        sim.tick()


def test_run_until_settled(settings):
    sim = _simulation(settings, [GraphEdge(source_id="a", target_id="b")])
    frame = sim.run()
    assert sim.status is SimulationStatus.SETTLED
    assert sim.alpha < settings.layout_alpha_min
    assert 290 <= sim.tick_count <= 310
    assert frame.tick == sim.tick_count
    assert set(frame.nodes) == {"a", "b", "c"}


def test_run_respects_max_ticks(settings):
    sim = _simulation(settings)
    sim.run(max_ticks=5)
    assert sim.tick_count == 5
    assert sim.status is SimulationStatus.RUNNING


def test_dangling_edges_never_simulated(settings):
    sim = _simulation(settings, [
        GraphEdge(source_id="a", target_id="b", reason="이어짐"),
        GraphEdge(source_id="a", target_id="deleted"),
    ])
    assert [(e.source_id, e.target_id) for e in sim.edges] == [("a", "b")]
    frame = sim.run(max_ticks=1)
    (segment,) = frame.edges
    assert segment.reason == "이어짐"
    assert (segment.x1, segment.y1) == frame.nodes["a"]
    assert (segment.x2, segment.y2) == frame.nodes["b"]


def test_tick_publishes_frames(settings):
    frames = []
    sim = _simulation(settings, on_tick=frames.append)
    sim.start()
    sim.tick()
    sim.tick()
    assert [f.tick for f in frames] == [1, 2]


def test_drag_pins_and_release_reheats(settings):
    sim = _simulation(settings)
    sim.run()
    assert sim.status is SimulationStatus.SETTLED

    sim.drag_start("a")
    assert sim.status is SimulationStatus.RUNNING
    sim.drag("a", 5.0, 7.0)
    sim.tick()
    assert sim.positions()["a"] == (5.0, 7.0)
    assert sim.alpha_target == settings.layout_drag_alpha_target

    sim.drag_end("a")
    assert sim.alpha_target == 0.0
    assert not sim.state.is_pinned("a")
    sim.run()
    assert sim.status is SimulationStatus.SETTLED


def test_release_after_settling_mid_drag_reheats(settings):
    sim = _simulation(settings)
    sim.run()
    sim.drag_start("b")
    sim.status = SimulationStatus.SETTLED
    sim.drag_end("b")
    assert sim.status is SimulationStatus.RUNNING
    assert sim.alpha >= settings.layout_drag_alpha_target


def test_drag_requires_drag_start(settings):
    sim = _simulation(settings)
    sim.start()
    with pytest.raises(SimulationStateError):
        sim.drag("a", 1.0, 1.0)


@pytest.mark.parametrize("action", [
    lambda sim: sim.drag_start("ghost"),
    lambda sim: sim.drag("ghost", 1.0, 1.0),
    lambda sim: sim.drag_end("ghost"),
])
def test_unknown_node_is_a_state_error(settings, action):
    sim = _simulation(settings)
    sim.start()
    with pytest.raises(SimulationStateError, match="ghost"):
        action(sim)


def test_releasing_one_node_keeps_reheat_while_another_is_held(settings):
    sim = _simulation(settings)
    sim.start()
    sim.drag_start("a")
    sim.drag_start("b")
    sim.drag_end("a")
    assert sim.state.is_pinned("b")
    assert sim.alpha_target == settings.layout_drag_alpha_target

    sim.drag_end("b")
    assert sim.alpha_target == 0.0

def test_torn_down_simulation_cannot_resume(settings):
    frames = []
    sim = _simulation(settings, on_tick=frames.append)
    sim.run(max_ticks=3)
    sim.stop()
    sim.stop()
    assert sim.status is SimulationStatus.TORN_DOWN
    with pytest.raises(SimulationStateError):
        sim.tick()
    with pytest.raises(SimulationStateError):
        sim.drag_start("a")
    with pytest.raises(SimulationStateError):
        sim.start()
    assert len(frames) == 3


@pytest.mark.asyncio
async def test_run_async_waits_while_settled_and_stops(settings):
    sim = _simulation(settings)
    task = asyncio.create_task(sim.run_async(frame_interval=0))

    async def until(status):
        while sim.status is not status:
            await asyncio.sleep(0)

    await asyncio.wait_for(until(SimulationStatus.SETTLED), timeout=10)
    settled_ticks = sim.tick_count
    await asyncio.sleep(0)
    assert sim.tick_count == settled_ticks

    sim.drag_start("c")
    sim.drag_end("c")
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    assert sim.tick_count > settled_ticks

    sim.stop()
    await asyncio.wait_for(task, timeout=1)
    assert sim.status is SimulationStatus.TORN_DOWN
