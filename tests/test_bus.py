"""
Tests for bus payload decoding and command publishing.
"""

import json

from bus import LogOnlySink, ZenohBus, parse_joy_payload
from state import InputSample, VelocityCommand
from teleop import ReactionDelay, TeleopController
from teleop_config import resolve_config


class FakePublisher:
    def __init__(self, fail=False):
        self.fail = fail
        self.payloads = []

    def put(self, payload):
        if self.fail:
            raise RuntimeError('session closed')
        self.payloads.append(json.loads(payload))


class FakePayload:
    def __init__(self, raw: bytes):
        self.raw = raw

    def to_bytes(self):
        return self.raw


class FakeSample:
    def __init__(self, raw: bytes):
        self.payload = FakePayload(raw)


class FakeSession:
    """Subscriber is a plain list: iteration ends like an undeclared channel."""

    def __init__(self, payloads):
        self.payloads = payloads
        self.declared = []

    def declare_subscriber(self, key, handler):
        self.declared.append(key)
        return [FakeSample(p) for p in self.payloads]


class TestParseJoyPayload:
    def test_valid(self):
        s = parse_joy_payload('{"buttons": [true, false, 1], "axes": [0.5, -1, 0]}')
        assert s == InputSample(buttons=(True, False, True), axes=(0.5, -1.0, 0.0))

    def test_missing_fields_default_empty(self):
        assert parse_joy_payload('{}') == InputSample.released()

    def test_invalid_json_dropped(self, caplog):
        with caplog.at_level('WARNING', logger='bus'):
            assert parse_joy_payload('not json') is None
        assert caplog.messages

    def test_wrong_types_dropped(self):
        assert parse_joy_payload('{"axes": ["left", "right"]}') is None


class TestPublish:
    def test_command_serialised_with_seq(self):
        bus = ZenohBus()
        bus._pub = FakePublisher()
        bus.publish(VelocityCommand(0.5, -0.25, 1.0))
        bus.publish(VelocityCommand.zero())
        assert bus._pub.payloads[0] == {
            'linear_x': 0.5, 'linear_y': -0.25, 'angular_z': 1.0, 'seq': 0,
        }
        assert bus._pub.payloads[1]['seq'] == 1

    def test_put_failure_logged(self, caplog):
        bus = ZenohBus(output_key='robot/cmd')
        bus._pub = FakePublisher(fail=True)
        with caplog.at_level('WARNING', logger='bus'):
            bus.publish(VelocityCommand.zero())
        assert any('robot/cmd' in m for m in caplog.messages)

    def test_seq_wraps(self):
        bus = ZenohBus()
        bus._seq = 65535
        assert bus._next_seq() == 65535
        assert bus._next_seq() == 0

    def test_queue_size_at_least_one(self):
        assert ZenohBus(queue_size=0).queue_size == 1


class TestLogOnlySink:
    def test_counts(self):
        sink = LogOnlySink()
        sink.publish(VelocityCommand.zero())
        sink.publish(VelocityCommand(1.0, 0.0, 0.0))
        assert sink.published == 2


class TestInputLoop:
    """Bus samples reach the controller one at a time, bad ones are dropped."""

    def test_samples_delivered_in_order(self):
        bus = ZenohBus(input_key='robot/joy')
        bus._session = FakeSession([
            b'{"buttons": [true], "axes": [1.0]}',
            b'{"buttons": [false], "axes": [0.5]}',
        ])
        received = []
        bus.run_input_loop(received.append)
        assert bus._session.declared == ['robot/joy']
        assert received == [
            InputSample(buttons=(True,), axes=(1.0,)),
            InputSample(buttons=(False,), axes=(0.5,)),
        ]

    def test_non_utf8_payload_dropped_and_loop_continues(self, caplog):
        bus = ZenohBus()
        bus._session = FakeSession([
            b'\xff\xfe{}',
            b'{"buttons": [true, false], "axes": [0.2]}',
        ])
        received = []
        with caplog.at_level('WARNING', logger='bus'):
            bus.run_input_loop(received.append)
        assert received == [InputSample(buttons=(True, False), axes=(0.2,))]
        assert any('malformed' in m for m in caplog.messages)

    def test_one_command_per_bus_sample(self):
        cfg = resolve_config({'axis_position_map': {'x': 0},
                              'max_displacement_in_a_second': 1.0})
        out = ZenohBus()
        out._pub = FakePublisher()
        ctrl = TeleopController(cfg, out, delay=ReactionDelay(0.0))

        bus = ZenohBus()
        bus._session = FakeSession([
            b'{"buttons": [true], "axes": [1.0]}',
            b'not json',
            b'{"buttons": [false], "axes": [1.0]}',
        ])
        bus.run_input_loop(ctrl.handle_sample)

        assert [p['linear_x'] for p in out._pub.payloads] == [0.5, 0.0]
        assert [p['seq'] for p in out._pub.payloads] == [0, 1]
