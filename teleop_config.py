"""
Teleop configuration.

Config keys (top level of config.yaml):
  enable_mov                    : enable (dead-man) button index   (default 0)
  increment_velocity            : scale-up button index            (default -1, unassigned)
  decrement_velocity            : scale-down button index          (default -1, unassigned)
  axis_position_map             : {'x': idx, 'y': idx}             (default {})
  axis_orientation_map          : {'z': idx}                       (default {})
  max_displacement_in_a_second  : upper bound of the velocity scale (default 0.0)
  min_scale                     : lower bound of the velocity scale (default 0.1)
  reaction_time                 : pause after a scale step, seconds (default 0.5)
"""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

import yaml

logger = logging.getLogger(__name__)

UNASSIGNED = -1

DEFAULT_MIN_SCALE      = 0.1
DEFAULT_REACTION_DELAY = 0.5


def _frozen_map(raw=None) -> Mapping[str, int]:
    return MappingProxyType({str(k): int(v) for k, v in (raw or {}).items()})


@dataclass(frozen=True)
class RuntimeConfig:
    enable_button:        int = 0
    increment_button:     int = UNASSIGNED
    decrement_button:     int = UNASSIGNED
    axis_position_map:    Mapping[str, int] = field(default_factory=_frozen_map)
    axis_orientation_map: Mapping[str, int] = field(default_factory=_frozen_map)
    max_scale:            float = 0.0
    min_scale:            float = DEFAULT_MIN_SCALE
    reaction_delay:       float = DEFAULT_REACTION_DELAY

    def to_dict(self) -> dict:
        return {
            'enable_button':        self.enable_button,
            'increment_button':     self.increment_button,
            'decrement_button':     self.decrement_button,
            'axis_position_map':    dict(self.axis_position_map),
            'axis_orientation_map': dict(self.axis_orientation_map),
            'max_scale':            self.max_scale,
            'min_scale':            self.min_scale,
            'reaction_delay':       self.reaction_delay,
        }


def _get(cfg: dict, key: str, default):
    # an empty YAML value (`key:`) loads as None
    v = cfg.get(key)
    return default if v is None else v


def resolve_config(cfg: dict) -> RuntimeConfig:
    """Build the runtime config; missing or empty keys fall back to defaults."""
    min_scale = float(_get(cfg, 'min_scale', DEFAULT_MIN_SCALE))
    max_scale = float(_get(cfg, 'max_displacement_in_a_second', 0.0))
    if max_scale < min_scale:
        logger.warning(
            f'max_displacement_in_a_second={max_scale} is below '
            f'min_scale={min_scale} — raised to {min_scale}'
        )
        max_scale = min_scale

    return RuntimeConfig(
        enable_button        = int(_get(cfg, 'enable_mov',         0)),
        increment_button     = int(_get(cfg, 'increment_velocity', UNASSIGNED)),
        decrement_button     = int(_get(cfg, 'decrement_velocity', UNASSIGNED)),
        axis_position_map    = _frozen_map(cfg.get('axis_position_map')),
        axis_orientation_map = _frozen_map(cfg.get('axis_orientation_map')),
        max_scale            = max_scale,
        min_scale            = min_scale,
        reaction_delay       = float(_get(cfg, 'reaction_time', DEFAULT_REACTION_DELAY)),
    )


def load_config(path: str, overrides: dict) -> dict:
    cfg = {}
    p = Path(path)
    if p.exists():
        cfg = yaml.safe_load(p.read_text()) or {}
    else:
        logger.info(f'Config file {path} not found — using defaults')
    cfg.update({k: v for k, v in overrides.items() if v is not None})
    return cfg
