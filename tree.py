# tree.py
# Procedural L-system tree: grammar -> turtle -> branch mesh + leaf billboards.
# Run: python tree.py generate config.json tree.obj --seed 1337

import argparse
import dataclasses
import logging
import random
import sys
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from grammar import Grammar
from leaves import LeafInstance, LeafScatterer
from options import ConfigError, TreeOptions, default_options, load_options
from stitcher import Mesh, MeshStitcher
from topology import BranchTopology
from turtle3d import TurtleInterpreter, clamp_iterations
from variation import Variation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TreeResult:
    topology: BranchTopology
    mesh: Mesh
    leaves: Tuple[LeafInstance, ...]
    seed: int
    iterations: int

    @property
    def branch_count(self) -> int:
        return len(self.topology)

    @property
    def leaf_count(self) -> int:
        return len(self.leaves)

    def stats(self) -> Dict[str, int]:
        return {
            "branches": self.branch_count,
            "leaves": self.leaf_count,
            "vertices": len(self.mesh.vertices),
            "triangles": self.mesh.triangle_count,
            "rings": self.mesh.ring_count,
        }


class TreeGenerator:
    """Holds the options and the last published TreeResult.

    generate() builds a complete new result before replacing the old one, so a
    consumer never sees a half-built tree.
    """

    def __init__(self, opt: Optional[TreeOptions] = None):
        self.opt = (opt if opt is not None else default_options()).validate()
        self.grammar = Grammar(self.opt.axiom, self.opt.rules)
        self.result: Optional[TreeResult] = None

    # ---------- configuration ----------
    def configure(self, **changes) -> None:
        known = {f.name for f in dataclasses.fields(TreeOptions)}
        unknown = sorted(set(changes) - known)
        if unknown:
            raise ConfigError(f"unknown option(s): {', '.join(unknown)}")
        opt = dataclasses.replace(self.opt, **changes).validate()
        grammar = Grammar(opt.axiom, opt.rules)
        self.opt, self.grammar = opt, grammar

    def set_axiom(self, axiom: str) -> None:
        self.configure(axiom=axiom)

    def add_rule(self, symbol: str, replacement: str) -> None:
        rules = dict(self.opt.rules)
        rules[symbol] = replacement
        self.configure(rules=rules)

    def clear_rules(self) -> None:
        self.configure(rules={})

    # ---------- generation ----------
    def generate(self, iterations: Optional[int] = None, seed: Optional[int] = None) -> TreeResult:
        opt = self.opt
        if seed is None:
            seed = opt.seed
        if seed is None:
            seed = random.SystemRandom().randrange(1 << 31)
            logger.info("No seed given, using %d", seed)
        iterations = clamp_iterations(opt.iterations if iterations is None else iterations)

        variation = Variation(seed)
        topology, seeds = TurtleInterpreter(opt, variation).generate(self.grammar, iterations)
        mesh = MeshStitcher(opt.radial_segments, opt.quantize_precision).build(topology).freeze()
        scatterer = LeafScatterer(opt, variation)
        leaves = tuple(scatterer.scatter(topology) + scatterer.from_seeds(seeds))

        result = TreeResult(topology=topology, mesh=mesh, leaves=leaves, seed=seed, iterations=iterations)
        self.result = result
        logger.info("Tree generated: %d branches, %d leaves", result.branch_count, result.leaf_count)
        return result


def generate_tree(opt: Optional[TreeOptions] = None, iterations: Optional[int] = None,
                  seed: Optional[int] = None) -> TreeResult:
    return TreeGenerator(opt).generate(iterations, seed)


# ---------- CLI ----------
def build_argparser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="procedural-trees",
        description="Grow an L-system tree and export it as a mesh.",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    sub = p.add_subparsers(dest="cmd", required=True)

    pg = sub.add_parser("generate", help="Generate a tree and write it to a mesh file (.obj/.ply/.glb).")
    pg.add_argument("config", help="Path to the JSON options file.")
    pg.add_argument("output", help="Mesh file to write; format from extension.")
    pg.add_argument("--seed", type=int, default=None, help="Seed for repeatable randomness.")
    pg.add_argument("--iterations", type=int, default=None, help="Override the iteration count.")

    pv = sub.add_parser("validate", help="Validate a JSON options file and print a brief summary.")
    pv.add_argument("config", help="Path to the JSON options file.")

    pp = sub.add_parser("preview", help="Show the tree in a matplotlib window.")
    pp.add_argument("config", help="Path to the JSON options file.")
    pp.add_argument("--seed", type=int, default=None, help="Seed for repeatable randomness.")

    return p


def cmd_generate(config_path: str, output_path: str, seed: Optional[int], iterations: Optional[int]) -> None:
    from export import export_tree

    result = TreeGenerator(load_options(config_path)).generate(iterations, seed)
    if result.branch_count == 0:
        raise ConfigError("Config produces no branches")
    export_tree(result, output_path)
    stats = result.stats()
    print(f"seed: {result.seed}")
    print(" ".join(f"{k}={v}" for k, v in stats.items()))


def cmd_validate(config_path: str) -> None:
    opt = load_options(config_path)
    grammar = Grammar(opt.axiom, opt.rules)
    iterations = clamp_iterations(opt.iterations)

    print(f"axiom: {opt.axiom}")
    print(f"iterations: {iterations}")
    print(f"rules: {len(opt.rules)}")
    for symbol, replacement in opt.rules.items():
        print(f"  {symbol} -> {replacement}")

    # interpretation only; the mesh and leaves are not built
    seed = opt.seed if opt.seed is not None else 0
    interpreter = TurtleInterpreter(opt, Variation(seed))
    topology, seeds = interpreter.generate(grammar, iterations)
    print(f"segments: {len(topology)}")
    print(f"dropped commands: {interpreter.dropped}")
    print(f"leaf seeds: {len(seeds)}")
    if interpreter.exhausted:
        print(f"segment budget of {opt.max_segments} reached")
    if not len(topology):
        raise ConfigError("Config produces no branches")


def cmd_preview(config_path: str, seed: Optional[int]) -> None:
    from preview import plot_tree

    result = TreeGenerator(load_options(config_path)).generate(seed=seed)
    plot_tree(result)


def main(argv: Optional[List[str]] = None) -> int:
    ap = build_argparser()
    args = ap.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.cmd == "generate":
            cmd_generate(args.config, args.output, args.seed, args.iterations)
        elif args.cmd == "validate":
            cmd_validate(args.config)
        elif args.cmd == "preview":
            cmd_preview(args.config, args.seed)
        else:
            raise AssertionError("unreachable")
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 2
    except OSError as e:
        print(f"File error: {e}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
