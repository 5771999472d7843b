# options.py
# Generation options, their defaults and JSON config loading.

import json
import math
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional, Tuple, cast

MAX_ITERATIONS = 10


# ---------- Errors / validation ----------
class ConfigError(ValueError):
    pass


def _require(cond: bool, msg: str) -> None:
    if not cond:
        raise ConfigError(msg)


def _as_float(x: Any, path: str) -> float:
    _require(isinstance(x, (int, float)) and not isinstance(x, bool), f"{path} must be a number")
    _require(math.isfinite(x), f"{path} must be finite")
    return float(x)


def _as_int(x: Any, path: str) -> int:
    _require(isinstance(x, int) and not isinstance(x, bool), f"{path} must be an integer")
    return int(x)


def _as_str(x: Any, path: str) -> str:
    _require(isinstance(x, str), f"{path} must be a string")
    return cast(str, x)


def _as_dict(x: Any, path: str) -> Dict[str, Any]:
    _require(isinstance(x, dict), f"{path} must be an object")
    return cast(Dict[str, Any], x)


def _as_vec3(x: Any, path: str) -> Tuple[float, float, float]:
    _require(isinstance(x, (list, tuple)) and len(x) == 3, f"{path} must be a list of 3 numbers")
    return (_as_float(x[0], f"{path}[0]"), _as_float(x[1], f"{path}[1]"), _as_float(x[2], f"{path}[2]"))


_FLOATS = ("branch_angle", "length_scale", "radius_scale", "initial_length", "initial_radius",
           "angle_randomness", "length_randomness", "radius_randomness", "branch_probability",
           "leaf_size", "leaf_density")
_INTS = ("iterations", "max_segments", "radial_segments", "quantize_precision", "min_leaf_depth")
_VECS = ("tropism", "origin")


# ---------- Options ----------
@dataclass
class TreeOptions:
    # grammar
    axiom: str = "X"
    rules: Dict[str, str] = field(default_factory=lambda: {"X": "FTF[+XL][-XL][&XL][^XXL]FXL"})
    iterations: int = 4

    # turtle
    branch_angle: float = 25.0        # degrees
    length_scale: float = 0.90
    radius_scale: float = 0.88
    initial_length: float = 4.0
    initial_radius: float = 0.35
    angle_randomness: float = 0.15    # fraction of nominal angle
    length_randomness: float = 0.10   # fraction of nominal length
    radius_randomness: float = 0.05   # fraction of nominal radius
    tropism: Tuple[float, float, float] = (0.0, -0.2, 0.0)  # slight gravity
    branch_probability: float = 1.0
    origin: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    max_segments: int = 200_000

    # mesh
    radial_segments: int = 8
    quantize_precision: int = 3       # decimal digits of world-space distance

    # leaves
    leaf_size: float = 0.3
    leaf_density: float = 0.7         # 0..1
    min_leaf_depth: int = 3
    leaf_texture: Optional[str] = None  # passed through to the renderer, never loaded here

    seed: Optional[int] = None

    def validate(self) -> "TreeOptions":
        # field types before ranges
        for name in _FLOATS:
            _as_float(getattr(self, name), name)
        for name in _INTS:
            _as_int(getattr(self, name), name)
        for name in _VECS:
            _as_vec3(getattr(self, name), name)
        if self.seed is not None:
            _as_int(self.seed, "seed")
        if self.leaf_texture is not None:
            _as_str(self.leaf_texture, "leaf_texture")
        _as_str(self.axiom, "axiom")
        for k, v in _as_dict(self.rules, "rules").items():
            _require(isinstance(k, str) and len(k) == 1, "rules keys must be single-character strings")
            _as_str(v, f"rules['{k}']")
        _require(self.iterations >= 0, "iterations must be >= 0")
        _require(0.0 < self.length_scale <= 1.0, "length_scale must be in (0, 1]")
        _require(0.0 < self.radius_scale <= 1.0, "radius_scale must be in (0, 1]")
        _require(self.initial_length > 0.0, "initial_length must be > 0")
        _require(self.initial_radius > 0.0, "initial_radius must be > 0")
        for name in ("angle_randomness", "length_randomness", "radius_randomness"):
            value = getattr(self, name)
            _require(0.0 <= value < 1.0, f"{name} must be in [0, 1)")
        _require(0.0 <= self.branch_probability <= 1.0, "branch_probability must be in [0, 1]")
        _require(0.0 <= self.leaf_density <= 1.0, "leaf_density must be in [0, 1]")
        _require(self.leaf_size >= 0.0, "leaf_size must be >= 0")
        _require(self.radial_segments >= 3, "radial_segments must be >= 3")
        _require(0 <= self.quantize_precision <= 9, "quantize_precision must be between 0 and 9")
        _require(self.max_segments > 0, "max_segments must be > 0")
        return self


def default_options(seed=1234) -> TreeOptions:
    return TreeOptions(seed=seed)


def options_from_dict(obj: Dict[str, Any]) -> TreeOptions:
    obj = _as_dict(obj, "root")
    known = {f.name for f in fields(TreeOptions)}
    unknown = sorted(set(obj) - known)
    _require(not unknown, f"unknown option(s): {', '.join(unknown)}")

    kwargs: Dict[str, Any] = {}
    for key, value in obj.items():
        if key in _FLOATS:
            kwargs[key] = _as_float(value, key)
        elif key in _INTS:
            kwargs[key] = _as_int(value, key)
        elif key in _VECS:
            kwargs[key] = _as_vec3(value, key)
        elif key == "rules":
            kwargs[key] = {k: _as_str(v, f"rules['{k}']") for k, v in _as_dict(value, "rules").items()}
        elif key == "axiom":
            axiom = _as_str(value, "axiom")
            _require(len(axiom) > 0, "axiom must be non-empty")
            kwargs[key] = axiom
        elif key in ("seed", "leaf_texture"):
            if value is not None:
                value = _as_int(value, key) if key == "seed" else _as_str(value, key)
            kwargs[key] = value
    return TreeOptions(**kwargs).validate()


def load_options(path: str) -> TreeOptions:
    with open(path, encoding="utf-8") as f:
        try:
            obj = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {path}: {e}") from e
    return options_from_dict(obj)
