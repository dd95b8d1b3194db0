import asyncio
import json
import time
import dataclasses
from dataclasses import dataclass, field
from typing import Tuple


@dataclass(frozen=True)
class InputSample:
    buttons: Tuple[bool, ...] = ()
    axes:    Tuple[float, ...] = ()

    @classmethod
    def released(cls) -> 'InputSample':
        """Sample with no buttons held and no axes, i.e. 'stop'."""
        return cls()


@dataclass(frozen=True)
class VelocityCommand:
    linear_x:  float = 0.0
    linear_y:  float = 0.0
    angular_z: float = 0.0

    @classmethod
    def zero(cls) -> 'VelocityCommand':
        return cls()

    def to_dict(self) -> dict:
        return dataclasses.asdict(self)


@dataclass
class ControllerState:
    scale:        float = 0.5
    last_command: VelocityCommand = field(default_factory=VelocityCommand.zero)


@dataclass
class TeleopStatus:
    enabled:            bool  = False
    scale:              float = 0.5
    linear_x:           float = 0.0
    linear_y:           float = 0.0
    angular_z:          float = 0.0
    samples:            int   = 0      # processed input samples
    joystick_connected: bool  = False
    source:             str   = ''     # 'joystick' | 'bus'


class SharedState:
    """Status snapshot shared between the processing thread and the web server."""

    def __init__(self, source: str = ''):
        self.teleop = TeleopStatus(source=source)
        self.last_update: float = 0.0

        self._subscribers: list = []
        self._loop = None

    def set_loop(self, loop):
        self._loop = loop

    def update_teleop(self, enabled: bool, scale: float, command: VelocityCommand):
        self.teleop.enabled   = enabled
        self.teleop.scale     = scale
        self.teleop.linear_x  = command.linear_x
        self.teleop.linear_y  = command.linear_y
        self.teleop.angular_z = command.angular_z
        self.teleop.samples  += 1
        self.last_update = time.monotonic()
        self.notify()

    def update_joystick_connected(self, val: bool):
        self.teleop.joystick_connected = val
        self.notify()

    def notify(self):
        """Schedule a broadcast on the asyncio loop; no-op until a loop is set."""
        if self._loop is None:
            return
        try:
            self._loop.call_soon_threadsafe(self._broadcast_sync)
        except RuntimeError:
            # loop already closed during shutdown
            pass

    def _broadcast_sync(self):
        data = self.to_json()
        for q in list(self._subscribers):
            # slow client: drop its oldest snapshot, the newest status wins
            if q.full():
                q.get_nowait()
            q.put_nowait(data)

    def subscribe(self, maxsize: int = 20) -> asyncio.Queue:
        q: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._subscribers.append(q)
        return q

    def unsubscribe(self, q: asyncio.Queue):
        if q in self._subscribers:
            self._subscribers.remove(q)

    def to_json(self) -> str:
        return json.dumps({
            'teleop':      dataclasses.asdict(self.teleop),
            'server_time': time.time(),
            'update_age':  (time.monotonic() - self.last_update)
                           if self.last_update > 0 else -1,
        })
