import pytest

from teleop_config import resolve_config


class RecordingSink:
    def __init__(self):
        self.commands = []

    def publish(self, command):
        self.commands.append(command)


class FakeDelay:
    def __init__(self):
        self.waits = 0
        self.cancelled = False

    def wait(self):
        self.waits += 1

    def cancel(self):
        self.cancelled = True


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def delay():
    return FakeDelay()


@pytest.fixture
def teleop_cfg():
    """Enable on button 0, scale up on 1, scale down on 2."""
    return resolve_config({
        'enable_mov': 0,
        'increment_velocity': 1,
        'decrement_velocity': 2,
        'axis_position_map': {'x': 0, 'y': 1},
        'axis_orientation_map': {'z': 2},
        'max_displacement_in_a_second': 2.0,
    })
