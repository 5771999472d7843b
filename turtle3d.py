# turtle3d.py
# 3D turtle that walks an L-system grammar and grows a BranchTopology.

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from geometry import orthonormalize, rotate_about, vec3
from grammar import Grammar, Token
from options import MAX_ITERATIONS, TreeOptions
from topology import BranchTopology
from variation import Variation

logger = logging.getLogger(__name__)

MIN_LENGTH = 0.02       # below this a forward command is dropped
MIN_RADIUS = 0.005
MIN_END_RADIUS = 0.01
BRANCH_THINNING = 0.7   # radius factor applied when a sub-branch opens


@dataclass
class TurtleState:
    position: np.ndarray
    direction: np.ndarray
    right: np.ndarray
    up: np.ndarray
    length: float
    radius: float
    depth: int

    def copy(self) -> "TurtleState":
        return TurtleState(self.position.copy(), self.direction.copy(), self.right.copy(),
                           self.up.copy(), self.length, self.radius, self.depth)

    def assign(self, other: "TurtleState") -> None:
        self.position = other.position
        self.direction = other.direction
        self.right = other.right
        self.up = other.up
        self.length = other.length
        self.radius = other.radius
        self.depth = other.depth


@dataclass
class LeafSeed:
    position: np.ndarray
    direction: np.ndarray
    depth: int


def clamp_iterations(iterations: int) -> int:
    if iterations > MAX_ITERATIONS:
        logger.warning("Iterations clamped from %d to %d", iterations, MAX_ITERATIONS)
        return MAX_ITERATIONS
    return max(0, iterations)


class TurtleInterpreter:
    """Depth-first grammar interpreter.

    Symbols are expanded recursively while depth < iterations and a rule
    exists, otherwise executed as turtle commands, so the fully expanded
    string never exists in memory.
    """

    def __init__(self, opt: TreeOptions, variation: Variation):
        self.opt = opt
        self.var = variation
        self.topology = BranchTopology()
        self.seeds: List[LeafSeed] = []
        self.stack: List[Tuple[TurtleState, int]] = []
        self.exhausted = False
        self.dropped = 0

    def initial_state(self) -> TurtleState:
        return TurtleState(
            position=np.array(self.opt.origin, dtype=float),
            direction=vec3(0.0, 1.0, 0.0),
            right=vec3(1.0, 0.0, 0.0),
            up=vec3(0.0, 0.0, 1.0),
            length=self.opt.initial_length,
            radius=self.opt.initial_radius,
            depth=0,
        )

    def generate(self, grammar: Grammar, iterations: Optional[int] = None) -> Tuple[BranchTopology, List[LeafSeed]]:
        iterations = clamp_iterations(self.opt.iterations if iterations is None else iterations)
        logger.debug("Interpreting %r with %d iterations", grammar, iterations)

        self.topology = BranchTopology()
        self.seeds = []
        self.stack = []
        self.exhausted = False
        self.dropped = 0

        turtle = self.initial_state()
        for tok in grammar.axiom_tokens:
            self._visit(grammar, tok, 0, iterations, turtle)

        if self.stack:
            logger.debug("%d branch(es) left open at end of grammar", len(self.stack))
        logger.info("Generated %d segments (%d dropped), %d leaf seeds",
                    len(self.topology), self.dropped, len(self.seeds))
        return self.topology, self.seeds

    # ---------- recursive expansion ----------
    def _visit(self, grammar: Grammar, tok: Token, depth: int, max_depth: int, turtle: TurtleState):
        if self.exhausted:
            return
        if not tok.scaled:
            self._visit_symbol(grammar, tok.symbol, depth, max_depth, turtle)
            return
        # F(len,radius): factors hold only while this token is being expanded
        saved_length, saved_radius = turtle.length, turtle.radius
        turtle.length *= tok.length_factor
        turtle.radius *= tok.radius_factor
        self._visit_symbol(grammar, tok.symbol, depth, max_depth, turtle)
        turtle.length, turtle.radius = saved_length, saved_radius

    def _visit_symbol(self, grammar: Grammar, symbol: str, depth: int, max_depth: int, turtle: TurtleState):
        repl = grammar.expansion(symbol)
        if depth < max_depth and repl is not None:
            for tok in repl:
                self._visit(grammar, tok, depth + 1, max_depth, turtle)
        else:
            self.interpret(symbol, turtle)

    # ---------- turtle commands ----------
    def interpret(self, c: str, turtle: TurtleState) -> None:
        if c in ("F", "X"):
            self._forward(turtle)
        elif c == "+":
            self._yaw(turtle, 1.0)
        elif c == "-":
            self._yaw(turtle, -1.0)
        elif c == "&":
            self._pitch(turtle, 1.0)
        elif c == "^":
            self._pitch(turtle, -1.0)
        elif c == "\\":
            self._roll(turtle, 1.0)
        elif c == "/":
            self._roll(turtle, -1.0)
        elif c == "[":
            self.stack.append((turtle.copy(), self.topology.active))
            turtle.radius *= self.var.jitter(BRANCH_THINNING, self.opt.radius_randomness)
        elif c == "]":
            if not self.stack:
                logger.debug("Ignoring ']' with empty stack")
                return
            state, active = self.stack.pop()
            turtle.assign(state)
            self.topology.active = active
        elif c == "L":
            if turtle.depth >= self.opt.min_leaf_depth and self.var.chance(self.opt.leaf_density):
                self.seeds.append(LeafSeed(turtle.position.copy(), turtle.direction.copy(), turtle.depth))
        # anything else is a no-op marker symbol

    def _forward(self, turtle: TurtleState) -> None:
        opt = self.opt
        if len(self.topology) >= opt.max_segments:
            logger.warning("Segment budget of %d reached, stopping interpretation", opt.max_segments)
            self.exhausted = True
            return
        if not self.var.chance(opt.branch_probability):
            self.dropped += 1
            return
        if turtle.length < MIN_LENGTH or turtle.radius < MIN_RADIUS:
            self.dropped += 1
            return

        length = self.var.jitter(turtle.length, opt.length_randomness)
        radius = self.var.jitter(turtle.radius, opt.radius_randomness)

        # tropism bends the heading before the step
        direction = self.var.blend(turtle.direction, np.asarray(opt.tropism, dtype=float))
        turtle.direction, turtle.right, turtle.up = orthonormalize(direction, turtle.right)

        end = turtle.position + turtle.direction * length
        end_radius = min(max(radius * opt.radius_scale, MIN_END_RADIUS), radius)

        self.topology.append(turtle.position, end, radius, end_radius, turtle.depth)

        turtle.position = end
        turtle.radius = end_radius
        turtle.length *= opt.length_scale
        turtle.depth += 1

    def _yaw(self, turtle: TurtleState, sign: float) -> None:
        a = sign * self.var.angle(self.opt.branch_angle, self.opt.angle_randomness)
        d = rotate_about(turtle.direction, a, turtle.up)
        r = rotate_about(turtle.right, a, turtle.up)
        turtle.direction, turtle.right, turtle.up = orthonormalize(d, r)

    def _pitch(self, turtle: TurtleState, sign: float) -> None:
        a = sign * self.var.angle(self.opt.branch_angle, self.opt.angle_randomness)
        d = rotate_about(turtle.direction, a, turtle.right)
        turtle.direction, turtle.right, turtle.up = orthonormalize(d, turtle.right)

    def _roll(self, turtle: TurtleState, sign: float) -> None:
        a = sign * self.var.angle(self.opt.branch_angle, self.opt.angle_randomness)
        r = rotate_about(turtle.right, a, turtle.direction)
        turtle.direction, turtle.right, turtle.up = orthonormalize(turtle.direction, r)


def generate(grammar: Grammar, opt: TreeOptions, iterations: Optional[int] = None,
             seed: Optional[int] = None) -> Tuple[BranchTopology, List[LeafSeed]]:
    variation = Variation(opt.seed if seed is None else seed)
    return TurtleInterpreter(opt, variation).generate(grammar, iterations)
