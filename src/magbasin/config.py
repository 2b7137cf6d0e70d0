# src/magbasin/config.py
"""
Run configuration loaded from TOML.

Every table is optional; missing keys take the defaults of the reference
run (three unit attractors on a circle, 0.1 resolution over [-7.5, 7.5)).
Paths or ``inline:`` TOML text are accepted.
"""
from __future__ import annotations
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping

from magbasin.analysis.basin import GridSpec
from magbasin.analysis.classify import ClassifierConfig
from magbasin.errors import ConfigError, ConfigNotFoundError
from magbasin.steppers.cash_karp import CashKarp54
from magbasin.systems.pendulum import Attractor, PendulumSystem

__all__ = ["RunConfig", "default_config", "load_config", "dump_config"]

INLINE_PREFIX = "inline:"

_SYSTEM_DEFAULTS: dict[str, float] = {
    "height": 0.05,
    "mass": 1.0,
    "gravity": 9.8,
    "drag": 0.2,
    "length": 10.0,
}

_DEFAULT_ATTRACTORS: tuple[Attractor, ...] = (
    Attractor(-0.5, 0.86602540378, 1.0),
    Attractor(-0.5, -0.86602540378, 1.0),
    Attractor(1.0, 0.0, 1.0),
)

_INTEGRATOR_KEYS = ("rel_tol", "abs_tol", "max_step_size", "safety", "min_factor", "max_factor", "grow_threshold")
_CLASSIFIER_KEYS = tuple(f.name for f in fields(ClassifierConfig))
_GRID_KEYS = ("resolution", "extent")
_ATTRACTOR_KEYS = ("x", "y", "force_coefficient")


def _default_system() -> PendulumSystem:
    return PendulumSystem(attractors=_DEFAULT_ATTRACTORS, **_SYSTEM_DEFAULTS)


@dataclass(frozen=True)
class RunConfig:
    system: PendulumSystem = field(default_factory=_default_system)
    integrator: CashKarp54 = field(default_factory=CashKarp54)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    grid: GridSpec = field(default_factory=GridSpec)
    output: Path = Path("fractal.png")


def default_config() -> RunConfig:
    """Configuration of the reference run."""
    return RunConfig()


def _load_toml(source: str | Path) -> dict[str, Any]:
    try:
        import tomllib
    except ImportError:
        import tomli as tomllib  # Python < 3.11

    if isinstance(source, str) and source.startswith(INLINE_PREFIX):
        try:
            return tomllib.loads(source[len(INLINE_PREFIX):])
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Failed to parse inline config: {e}") from e

    path = Path(source).expanduser()
    if not path.is_file():
        candidates = [str(path.resolve())]
        if not path.suffix:
            alt = path.with_suffix(".toml")
            if alt.is_file():
                path = alt
            else:
                candidates.append(str(alt.resolve()))
        if not path.is_file():
            raise ConfigNotFoundError(str(source), candidates)
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Failed to parse config {path}: {e}") from e


def _check_keys(table: Mapping[str, Any], allowed: tuple[str, ...], where: str) -> None:
    unknown = sorted(set(table) - set(allowed))
    if unknown:
        raise ConfigError(f"Unknown key(s) in [{where}]: {', '.join(unknown)}")


def _number(table: Mapping[str, Any], key: str, where: str) -> float:
    value = table[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"[{where}].{key} must be a number; got {value!r}")
    return float(value)


def _table(data: Mapping[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name, {})
    if not isinstance(value, dict):
        raise ConfigError(f"[{name}] must be a table")
    return value


def _parse_system(table: dict[str, Any]) -> PendulumSystem:
    _check_keys(table, tuple(_SYSTEM_DEFAULTS) + ("attractors",), "system")
    values = dict(_SYSTEM_DEFAULTS)
    for key in _SYSTEM_DEFAULTS:
        if key in table:
            values[key] = _number(table, key, "system")

    if "attractors" in table:
        raw = table["attractors"]
        if not isinstance(raw, list):
            raise ConfigError("[system].attractors must be an array of tables")
        attractors = []
        for i, entry in enumerate(raw):
            where = f"system.attractors[{i}]"
            if not isinstance(entry, dict):
                raise ConfigError(f"[{where}] must be a table")
            _check_keys(entry, _ATTRACTOR_KEYS, where)
            for key in ("x", "y"):
                if key not in entry:
                    raise ConfigError(f"[{where}] missing required key '{key}'")
            coeff = _number(entry, "force_coefficient", where) if "force_coefficient" in entry else 1.0
            attractors.append(Attractor(_number(entry, "x", where), _number(entry, "y", where), coeff))
        attr_tuple = tuple(attractors)
    else:
        attr_tuple = _DEFAULT_ATTRACTORS

    try:
        return PendulumSystem(attractors=attr_tuple, **values)
    except ValueError as e:
        raise ConfigError(f"[system] {e}") from e


def _parse_section(table: dict[str, Any], keys: tuple[str, ...], where: str, cls: type, *, ints: tuple[str, ...] = ()):
    _check_keys(table, keys, where)
    kwargs: dict[str, Any] = {}
    for key in keys:
        if key not in table:
            continue
        if key in ints:
            value = table[key]
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigError(f"[{where}].{key} must be an integer; got {value!r}")
            kwargs[key] = value
        else:
            kwargs[key] = _number(table, key, where)
    try:
        return cls(**kwargs)
    except ValueError as e:
        raise ConfigError(f"[{where}] {e}") from e


def load_config(source: str | Path) -> RunConfig:
    """
    Load a run configuration from a TOML path or ``inline:`` text.

    Raises:
        ConfigNotFoundError: path does not exist
        ConfigError: malformed TOML, unknown keys, wrong types, invalid values
    """
    data = _load_toml(source)
    _check_keys(data, ("system", "integrator", "classifier", "grid", "output"), "root")

    system = _parse_system(_table(data, "system"))
    integrator = _parse_section(_table(data, "integrator"), _INTEGRATOR_KEYS, "integrator", CashKarp54)
    classifier = _parse_section(
        _table(data, "classifier"), _CLASSIFIER_KEYS, "classifier", ClassifierConfig, ints=("max_trials",)
    )
    grid = _parse_section(_table(data, "grid"), _GRID_KEYS, "grid", GridSpec)

    output = _table(data, "output")
    _check_keys(output, ("path",), "output")
    out_path = output.get("path", "fractal.png")
    if not isinstance(out_path, str):
        raise ConfigError(f"[output].path must be a string; got {out_path!r}")

    return RunConfig(system=system, integrator=integrator, classifier=classifier, grid=grid, output=Path(out_path))


def dump_config(cfg: RunConfig) -> str:
    """Render ``cfg`` as TOML text accepted by :func:`load_config`."""
    s = cfg.system
    lines = ["[system]"]
    for key in _SYSTEM_DEFAULTS:
        lines.append(f"{key} = {getattr(s, key)!r}")
    for a in s.attractors:
        lines += [
            "",
            "[[system.attractors]]",
            f"x = {a.x_position!r}",
            f"y = {a.y_position!r}",
            f"force_coefficient = {a.force_coefficient!r}",
        ]
    lines += ["", "[integrator]"]
    lines += [f"{key} = {float(getattr(cfg.integrator, key))!r}" for key in _INTEGRATOR_KEYS]
    lines += ["", "[classifier]"]
    for key in _CLASSIFIER_KEYS:
        value = getattr(cfg.classifier, key)
        lines.append(f"{key} = {int(value) if key == 'max_trials' else float(value)!r}")
    lines += ["", "[grid]"]
    lines += [f"{key} = {float(getattr(cfg.grid, key))!r}" for key in _GRID_KEYS]
    lines += ["", "[output]", f'path = "{cfg.output.as_posix()}"', ""]
    return "\n".join(lines)
