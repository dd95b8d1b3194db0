"""
Local gamepad input source.

Polls a pygame joystick and hands one InputSample per poll to the teleop
controller, in the joystick thread. The controller may block (reaction
delay); polling resumes once it returns.

Config keys (`joystick:` section):
  index     : pygame joystick index   (default 0)
  deadzone  : axis deadzone           (default 0.05)
  poll_rate : polls per second        (default 50.0)
"""
import time
import threading
import logging
from typing import Callable, Optional

from state import InputSample, SharedState
from teleop_config import RuntimeConfig

logger = logging.getLogger(__name__)

try:
    import pygame
    _HAS_PYGAME = True
except ImportError:
    _HAS_PYGAME = False
    logger.warning('pygame not installed — joystick disabled')


class JoystickHandler:
    def __init__(self, on_sample: Callable[[InputSample], object], cfg: dict,
                 teleop_cfg: Optional[RuntimeConfig] = None,
                 state: Optional[SharedState] = None):
        self.on_sample  = on_sample
        self.teleop_cfg = teleop_cfg
        self.state      = state
        self.index      = cfg.get('index',     0)
        self.deadzone   = cfg.get('deadzone',  0.05)
        self.poll_rate  = cfg.get('poll_rate', 50.0)

        self._joystick: Optional[object] = None
        self._running = False
        self._thread: Optional[threading.Thread] = None

    def start(self):
        if not _HAS_PYGAME:
            return
        self._running = True
        self._thread = threading.Thread(target=self._run, name='joystick', daemon=True)
        self._thread.start()

    def stop(self):
        self._running = False
        if self._thread:
            self._thread.join(timeout=2.0)

    # ------------------------------------------------------------------

    def _run(self):
        pygame.init()
        pygame.joystick.init()
        period = 1.0 / max(1.0, self.poll_rate)

        while self._running:
            if self._joystick is None:
                self._try_connect()
                if self._joystick is None:
                    time.sleep(1.0)
                continue

            # event.pump() failing means the device is gone
            try:
                pygame.event.pump()
            except pygame.error as e:
                logger.warning(f'Joystick disconnected: {e}')
                self._on_disconnect()
                continue

            if pygame.joystick.get_count() == 0:
                logger.warning('Joystick disconnected')
                self._on_disconnect()
                continue

            self.on_sample(self.read_sample(self._joystick))
            time.sleep(period)

        pygame.quit()

    def read_sample(self, joy) -> InputSample:
        buttons = tuple(bool(joy.get_button(i)) for i in range(joy.get_numbuttons()))
        axes = tuple(self._apply_deadzone(float(joy.get_axis(i)))
                     for i in range(joy.get_numaxes()))
        return InputSample(buttons=buttons, axes=axes)

    def _try_connect(self):
        pygame.joystick.quit()
        pygame.joystick.init()
        if pygame.joystick.get_count() <= self.index:
            if self.state is not None:
                self.state.update_joystick_connected(False)
            return

        joy = pygame.joystick.Joystick(self.index)
        joy.init()
        self._joystick = joy
        logger.info(f'Joystick connected: {joy.get_name()}')

        self._check_indices(joy)
        if self.state is not None:
            self.state.update_joystick_connected(True)

    def _check_indices(self, joy):
        """Run once after connecting. Only warns: the controller reads missing inputs as idle."""
        if self.teleop_cfg is None:
            return
        num_axes    = joy.get_numaxes()
        num_buttons = joy.get_numbuttons()
        cfg = self.teleop_cfg

        for name, idx in (('enable_mov',         cfg.enable_button),
                          ('increment_velocity', cfg.increment_button),
                          ('decrement_velocity', cfg.decrement_button)):
            if idx >= num_buttons:
                logger.warning(
                    f'{name}={idx} out of range '
                    f'(joystick has {num_buttons} buttons) — button never pressed'
                )

        for map_name, axis_map in (('axis_position_map',    cfg.axis_position_map),
                                   ('axis_orientation_map', cfg.axis_orientation_map)):
            for axis, idx in axis_map.items():
                if idx >= num_axes:
                    logger.warning(
                        f'{map_name}.{axis}={idx} out of range '
                        f'(joystick has {num_axes} axes) — axis reads 0.0'
                    )

    def _on_disconnect(self):
        self._joystick = None
        if self.state is not None:
            self.state.update_joystick_connected(False)
        # released sample → controller publishes a zero command
        self.on_sample(InputSample.released())

    def _apply_deadzone(self, value: float) -> float:
        if abs(value) < self.deadzone:
            return 0.0
        sign = 1 if value > 0 else -1
        return sign * (abs(value) - self.deadzone) / (1.0 - self.deadzone)
