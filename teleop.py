"""
Joystick sample → omnidirectional velocity command.

Every input sample produces exactly one published command:
  enable button released         → zero command
  enable + increment/decrement   → scale step, previous command republished,
                                   then block for the reaction delay
  enable only                    → scale * (x, y, z) from the axis maps
"""
import logging
import threading
from typing import Mapping, Optional, Protocol

from state import ControllerState, InputSample, SharedState, VelocityCommand
from teleop_config import RuntimeConfig

logger = logging.getLogger(__name__)

SCALE_STEP = 1.2
INITIAL_SCALE = 0.5


class CommandSink(Protocol):
    def publish(self, command: VelocityCommand) -> None: ...


def resolve_axis(sample: InputSample, axis_map: Mapping[str, int], axis_name: str) -> float:
    idx = axis_map.get(axis_name)
    if idx is None or idx < 0 or idx >= len(sample.axes):
        return 0.0
    return sample.axes[idx]


def _pressed(sample: InputSample, idx: int) -> bool:
    # -1 means unassigned; never wrap around to the last button
    if idx < 0 or idx >= len(sample.buttons):
        return False
    return bool(sample.buttons[idx])


class ReactionDelay:
    """Blocking pause that can be cut short by cancel()."""

    def __init__(self, seconds: float):
        self.seconds = seconds
        self._cancelled = threading.Event()

    def wait(self) -> None:
        self._cancelled.wait(self.seconds)

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()


class TeleopController:
    def __init__(self, config: RuntimeConfig, sink: CommandSink,
                 status: Optional[SharedState] = None,
                 delay: Optional[ReactionDelay] = None):
        self.config = config
        self.sink = sink
        self.status = status
        self.delay = delay or ReactionDelay(config.reaction_delay)
        self.state = ControllerState(
            scale=min(max(INITIAL_SCALE, config.min_scale), config.max_scale),
        )

    @property
    def scale(self) -> float:
        return self.state.scale

    def handle_sample(self, sample: InputSample) -> VelocityCommand:
        cfg = self.config
        enabled = _pressed(sample, cfg.enable_button)

        if enabled:
            logger.info('Enable button pressed')
            if (_pressed(sample, cfg.increment_button)
                    or _pressed(sample, cfg.decrement_button)):
                self._modify_scale(sample)
            else:
                s = self.state.scale
                self.state.last_command = VelocityCommand(
                    linear_x=s * resolve_axis(sample, cfg.axis_position_map, 'x'),
                    linear_y=s * resolve_axis(sample, cfg.axis_position_map, 'y'),
                    angular_z=s * resolve_axis(sample, cfg.axis_orientation_map, 'z'),
                )
        else:
            self.state.last_command = VelocityCommand.zero()

        command = self.state.last_command
        self.sink.publish(command)
        self._log_command(command, 'Published velocity')

        if self.status is not None:
            self.status.update_teleop(enabled, self.state.scale, command)
        return command

    def _modify_scale(self, sample: InputSample):
        cfg = self.config
        if _pressed(sample, cfg.increment_button):
            self.state.scale = min(self.state.scale * SCALE_STEP, cfg.max_scale)
            logger.info(f'Velocity scale increased to {self.state.scale:f}')
        else:
            self.state.scale = max(self.state.scale / SCALE_STEP, cfg.min_scale)
            logger.info(f'Velocity scale decreased to {self.state.scale:f}')
        # operator reaction time, so a held button is one step not dozens
        self.delay.wait()

    @staticmethod
    def _log_command(cmd: VelocityCommand, label: str):
        logger.info(
            f'{label} - Lineal (x, y): ({cmd.linear_x:.5f}, {cmd.linear_y:.5f}), '
            f'Angular (z): ({cmd.angular_z:.5f})'
        )

    def stop(self):
        self.delay.cancel()
