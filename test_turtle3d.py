#!/usr/bin/env python3
import logging
from typing import Any

import numpy as np
import pytest

from grammar import Grammar
from options import TreeOptions
from turtle3d import TurtleInterpreter, clamp_iterations, generate
from variation import Variation


def quiet_options(**kw: Any) -> TreeOptions:
    """Options with every random and bending influence switched off."""
    base = dict(
        angle_randomness=0.0,
        length_randomness=0.0,
        radius_randomness=0.0,
        tropism=(0.0, 0.0, 0.0),
        branch_probability=1.0,
        seed=1,
    )
    base.update(kw)
    return TreeOptions(**base)


def run(axiom: str, rules: Any = None, iterations: int = 1, **kw: Any):
    opt = quiet_options(**kw)
    return generate(Grammar(axiom, rules or {}), opt, iterations)


class TestScenarios:
    def test_minimal_grammar(self) -> None:
        topo, _ = run("F", {"F": "F[+F][-F]F"}, iterations=1)
        # F [ +F ] [ -F ] F: the first segment plus three that grow out of it
        assert len(topo) == 4
        assert [s.parent for s in topo] == [-1, 0, 0, 0]
        assert topo[0].children == [1, 2, 3]
        for i in (1, 2, 3):
            assert np.allclose(topo[i].start, topo[0].end)

    def test_empty_rule_set(self) -> None:
        for iterations in (0, 1, 5, 10, 42):
            topo, _ = run("F", {}, iterations=iterations)
            assert len(topo) == 1

    def test_parameterized_segment(self) -> None:
        plain, _ = run("F", {})
        scaled, _ = run("F(2,0.5)", {})
        assert len(scaled) == 1
        assert scaled[0].end[1] == pytest.approx(2.0 * plain[0].end[1])
        assert scaled[0].start_radius == pytest.approx(0.5 * plain[0].start_radius)

    def test_parameterized_factor_is_scoped(self) -> None:
        opt = quiet_options(length_scale=0.5)
        topo, _ = generate(Grammar("F(2)F"), opt, 0)
        assert topo[0].length == pytest.approx(2.0 * opt.initial_length)
        # the factor and its length progression are undone after the token
        assert topo[1].length == pytest.approx(opt.initial_length)

    def test_nested_parameterization(self) -> None:
        topo, _ = run("A", {"A": "F(0.5)B", "B": "F"}, iterations=2, initial_length=4.0, length_scale=1.0)
        assert [round(s.length, 6) for s in topo] == [2.0, 4.0]


class TestLimits:
    def test_iteration_clamp(self, caplog: pytest.LogCaptureFixture) -> None:
        rules = {"A": "FA"}
        kw = dict(length_scale=1.0, radius_scale=1.0)
        ten, _ = run("A", rules, iterations=10, **kw)
        with caplog.at_level(logging.WARNING, logger="turtle3d"):
            fifteen, _ = run("A", rules, iterations=15, **kw)
        assert len(ten) == len(fifteen) == 10
        for a, b in zip(ten, fifteen):
            assert np.array_equal(a.end, b.end)
        assert "clamped" in caplog.text

    def test_clamp_iterations(self) -> None:
        assert clamp_iterations(3) == 3
        assert clamp_iterations(10) == 10
        assert clamp_iterations(11) == 10
        assert clamp_iterations(-2) == 0

    def test_segment_budget(self) -> None:
        topo, _ = run("A", {"A": "FA"}, iterations=10, length_scale=1.0, max_segments=3)
        assert len(topo) == 3

    def test_short_length_rejected(self) -> None:
        topo, _ = run("FFF", {}, initial_length=0.01)
        assert len(topo) == 0

    def test_thin_radius_rejected(self) -> None:
        topo, _ = run("FFF", {}, initial_radius=0.004)
        assert len(topo) == 0

    def test_shrinking_stops_growth(self) -> None:
        # lengths halve every step, so only a handful clear the 0.02 threshold
        topo, _ = run("F" * 50, {}, length_scale=0.5, initial_length=1.0)
        assert len(topo) == 6
        assert all(s.length >= 0.02 for s in topo)

    def test_branch_probability_zero(self) -> None:
        topo, _ = run("F[+F]F", {}, branch_probability=0.0)
        assert len(topo) == 0

    def test_branch_probability_partial(self) -> None:
        topo, _ = run("F" * 200, {}, branch_probability=0.5, length_scale=1.0, radius_scale=1.0)
        assert 0 < len(topo) < 200


class TestStack:
    def test_pop_empty_stack_is_ignored(self) -> None:
        topo, _ = run("]]F]", {})
        assert len(topo) == 1

    def test_pop_restores_parent_and_position(self) -> None:
        topo, _ = run("F[+F]F", {})
        assert topo[1].parent == 0
        assert topo[2].parent == 0
        assert np.allclose(topo[2].start, topo[0].end)
        # trunk continues straight up after the side branch
        assert topo[2].end[0] == pytest.approx(0.0)

    def test_branch_thinning(self) -> None:
        topo, _ = run("F[F]F", {})
        assert topo[1].start_radius == pytest.approx(topo[0].end_radius * 0.7)
        assert topo[2].start_radius == pytest.approx(topo[0].end_radius)

    def test_unbalanced_open_bracket(self) -> None:
        topo, _ = run("F[+F", {})
        assert len(topo) == 2


class TestGeometry:
    def test_tapering_without_randomness(self) -> None:
        topo, _ = run("F", {"F": "F[+F][-F][&F]F"}, iterations=4)
        assert len(topo) > 10
        for s in topo:
            assert s.end_radius <= s.start_radius
            assert s.end_radius >= 0.0

    def test_parents_precede_children(self) -> None:
        topo, _ = run("X", {"X": "F[+X][-X][&X][^X]FX"}, iterations=3)
        for i, s in enumerate(topo):
            assert s.parent < i
            for c in s.children:
                assert topo[c].parent == i

    def test_frame_stays_orthonormal(self) -> None:
        opt = quiet_options(angle_randomness=0.3, seed=5)
        interp = TurtleInterpreter(opt, Variation(5))
        turtle = interp.initial_state()
        for c in "+&\\-^/+&&\\":
            interp.interpret(c, turtle)
            d, r, u = turtle.direction, turtle.right, turtle.up
            for v in (d, r, u):
                assert np.linalg.norm(v) == pytest.approx(1.0)
            assert np.dot(d, r) == pytest.approx(0.0, abs=1e-9)
            assert np.dot(d, u) == pytest.approx(0.0, abs=1e-9)
            assert np.dot(r, u) == pytest.approx(0.0, abs=1e-9)

    def test_yaw_rotates_in_plane(self) -> None:
        topo, _ = run("+F", {}, branch_angle=90.0)
        # yaw around +Z turns the +Y heading into -X
        assert topo[0].end[0] == pytest.approx(-4.0)
        assert topo[0].end[1] == pytest.approx(0.0, abs=1e-9)

    def test_tropism_bends_heading(self) -> None:
        topo, _ = run("F", {}, tropism=(0.5, 0.0, 0.0))
        end = topo[0].end
        assert end[0] > 0.0
        assert np.linalg.norm(end) == pytest.approx(4.0)

    def test_opposite_tropism_does_not_degenerate(self) -> None:
        topo, _ = run("F", {}, tropism=(0.0, -1.0, 0.0))
        assert len(topo) == 1
        assert np.all(np.isfinite(topo[0].end))


class TestLeafSeeds:
    def test_seeds_respect_min_depth(self) -> None:
        _, seeds = run("FLFLFL", {}, min_leaf_depth=2, leaf_density=1.0)
        assert [s.depth for s in seeds] == [2, 3]

    def test_density_zero_records_nothing(self) -> None:
        _, seeds = run("FLFLFL", {}, min_leaf_depth=0, leaf_density=0.0)
        assert seeds == []


class TestDeterminism:
    def test_same_seed_same_tree(self) -> None:
        opt = TreeOptions(seed=99)
        g = Grammar(opt.axiom, opt.rules)
        a, _ = generate(g, opt, 3)
        b, _ = generate(g, opt, 3)
        assert len(a) == len(b)
        for sa, sb in zip(a, b):
            assert np.array_equal(sa.start, sb.start)
            assert np.array_equal(sa.end, sb.end)
            assert sa.start_radius == sb.start_radius

    def test_different_seed_different_tree(self) -> None:
        opt = TreeOptions()
        g = Grammar(opt.axiom, opt.rules)
        a, _ = generate(g, opt, 3, seed=1)
        b, _ = generate(g, opt, 3, seed=2)
        assert any(not np.array_equal(sa.end, sb.end) for sa, sb in zip(a, b))
