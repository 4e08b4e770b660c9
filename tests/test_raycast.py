import pytest

from stealthnav.constants import HitKind
from stealthnav.diagnostics import Diagnostics
from stealthnav.settings import EngineSettings, RaycastSettings
from stealthnav.world.raycast import reflect, trace_ray
from stealthnav.world.shapes import Rect

RIGHT_MIRROR = Rect(50, -10, 10, 20)
LEFT_MIRROR = Rect(-60, -10, 10, 20)


def test_reflect_mirrors_about_normal():
    assert reflect((1.0, 1.0), (0.0, -1.0)) == (1.0, -1.0)
    assert reflect((1.0, 0.0), (-1.0, 0.0)) == (-1.0, 0.0)


def test_shot_into_open_air():
    hits = trace_ray((0, 0), (1, 0), [], [])
    assert len(hits) == 1
    assert hits[0].target.kind is HitKind.AIR
    assert hits[0].target.index is None
    assert hits[0].pos == pytest.approx((1000.0, 0.0))


def test_zero_direction_traces_nothing():
    assert trace_ray((0, 0), (0, 0), [], [RIGHT_MIRROR]) == []


def test_shot_bounces_off_collider_then_flies_away():
    hits = trace_ray((0, 0), (2, 0), [], [RIGHT_MIRROR])
    assert len(hits) == 2
    bounce, tail = hits
    assert bounce.target.kind is HitKind.COLLIDER
    assert bounce.target.index == 0
    assert bounce.pos == pytest.approx((50.0, 0.0))
    assert bounce.normal == (-1.0, 0.0)
    assert bounce.direction == pytest.approx((-1.0, 0.0))
    assert tail.target.kind is HitKind.AIR
    assert tail.pos == pytest.approx((-951.0, 0.0))


def test_reflection_limit_ends_trace_on_next_collider():
    hits = trace_ray((0, 0), (1, 0), [], [RIGHT_MIRROR, LEFT_MIRROR])
    assert [h.target.index for h in hits] == [0, 1]
    assert hits[1].pos == pytest.approx((-50.0, 0.0))
    assert hits[1].direction == pytest.approx((1.0, 0.0))


def test_segment_limit_caps_legs():
    settings = EngineSettings(raycast=RaycastSettings(max_segments=3, max_reflections=10))
    hits = trace_ray((0, 0), (1, 0), [], [RIGHT_MIRROR, LEFT_MIRROR], settings=settings)
    assert len(hits) == 3
    assert all(h.target.kind is HitKind.COLLIDER for h in hits)


def test_agent_hit_ends_trace():
    agents = [Rect(30, -5, 10, 10)]
    hits = trace_ray((0, 0), (1, 0), agents, [RIGHT_MIRROR])
    assert len(hits) == 1
    assert hits[0].target.kind is HitKind.AGENT
    assert hits[0].target.index == 0
    assert hits[0].pos == pytest.approx((30.0, 0.0))


def test_ignored_agent_is_passed_through():
    agents = [Rect(30, -5, 10, 10)]
    hits = trace_ray((0, 0), (1, 0), agents, [RIGHT_MIRROR], ignore_agents={0})
    assert hits[0].target.kind is HitKind.COLLIDER


def test_legs_recorded_in_diagnostics():
    diagnostics = Diagnostics(enabled=True)
    hits = trace_ray((0, 0), (1, 0), [], [RIGHT_MIRROR], diagnostics=diagnostics)
    assert len(list(diagnostics.by_reason("ray-leg"))) == len(hits)
