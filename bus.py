"""
Zenoh transport for the teleop node.

Topics:
  teleop/joy           ← input samples, JSON {"buttons": [...], "axes": [...]}
  teleop/cmd_base_vel  → velocity commands, one per processed sample
"""
import json
import logging
from typing import Callable, List, Optional, Union

import zenoh
from pydantic import BaseModel, ValidationError

from state import InputSample, VelocityCommand

logger = logging.getLogger(__name__)

DEFAULT_INPUT_KEY  = 'teleop/joy'
DEFAULT_OUTPUT_KEY = 'teleop/cmd_base_vel'


class JoyMessage(BaseModel):
    buttons: List[bool] = []
    axes:    List[float] = []


def parse_joy_payload(payload: Union[str, bytes]) -> Optional[InputSample]:
    """Decode one bus payload; None (and a warning) when it is malformed."""
    try:
        msg = JoyMessage.model_validate_json(payload)
    except ValidationError as e:
        logger.warning(f'Dropping malformed joy message: {e.error_count()} error(s)')
        return None
    return InputSample(buttons=tuple(msg.buttons), axes=tuple(msg.axes))


class ZenohBus:
    def __init__(self, input_key: str = DEFAULT_INPUT_KEY,
                 output_key: str = DEFAULT_OUTPUT_KEY,
                 queue_size: int = 1):
        self.input_key = input_key
        self.output_key = output_key
        self.queue_size = max(1, queue_size)
        self._session = None
        self._pub = None
        self._sub = None
        self._seq = 0

    def start(self, locator: str = '') -> None:
        conf = zenoh.Config()
        if locator:
            conf.insert_json5('connect/endpoints', json.dumps([locator]))
        self._session = zenoh.open(conf)
        self._pub = self._session.declare_publisher(self.output_key)
        logger.info(f'ZenohBus started → {locator or "auto-discovery"}  '
                    f'out={self.output_key}')

    def stop(self) -> None:
        if self._sub is not None:
            self._sub.undeclare()
            self._sub = None
        if self._pub is not None:
            self._pub.undeclare()
            self._pub = None
        if self._session:
            self._session.close()
            self._session = None

    # ── Publish ───────────────────────────────────────────────────────────────

    def _next_seq(self) -> int:
        s = self._seq
        self._seq = (self._seq + 1) % 65536
        return s

    def publish(self, command: VelocityCommand) -> None:
        data = command.to_dict()
        data['seq'] = self._next_seq()
        try:
            self._pub.put(json.dumps(data))
        except Exception as e:
            logger.warning(f'zenoh put [{self.output_key}]: {e}')

    # ── Subscribe ─────────────────────────────────────────────────────────────

    def run_input_loop(self, on_sample: Callable[[InputSample], object]) -> None:
        """
        Block, feeding samples to on_sample one at a time until stop().

        The ring channel keeps only the newest queue_size samples, so input
        that arrives while on_sample is blocked is dropped oldest-first.
        """
        self._sub = self._session.declare_subscriber(
            self.input_key, zenoh.handlers.RingChannel(self.queue_size))
        logger.info(f'Listening on {self.input_key} (queue {self.queue_size})')

        for zsample in self._sub:
            sample = parse_joy_payload(zsample.payload.to_bytes())
            if sample is not None:
                on_sample(sample)


class LogOnlySink:
    """Dry-run sink: commands are only logged by the controller."""

    def __init__(self):
        self.published = 0

    def publish(self, command: VelocityCommand) -> None:
        self.published += 1
        logger.debug(f'dry-run publish #{self.published}: {command.to_dict()}')
