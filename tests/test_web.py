"""
Tests for the status web server.
"""

from fastapi.testclient import TestClient

from state import SharedState, VelocityCommand
from teleop_config import resolve_config
from web.server import create_app


def make_client():
    state = SharedState('joystick')
    cfg = resolve_config({'axis_position_map': {'x': 1},
                          'max_displacement_in_a_second': 1.0})
    return state, TestClient(create_app(state, cfg))


class TestRest:
    def test_state(self):
        state, client = make_client()
        state.update_teleop(True, 0.5, VelocityCommand(0.5, 0.0, 0.0))
        resp = client.get('/api/state')
        assert resp.status_code == 200
        body = resp.json()
        assert body['teleop']['linear_x'] == 0.5
        assert body['teleop']['source'] == 'joystick'

    def test_config(self):
        _, client = make_client()
        body = client.get('/api/config').json()
        assert body['axis_position_map'] == {'x': 1}
        assert body['enable_button'] == 0
        assert body['max_scale'] == 1.0



class TestWebSocket:
    def test_snapshot_then_push(self):
        state, client = make_client()
        with client.websocket_connect('/ws') as ws:
            first = ws.receive_json()
            assert first['teleop']['samples'] == 0

            state.update_teleop(True, 0.6, VelocityCommand(0.3, 0.0, -0.6))
            pushed = ws.receive_json()
            assert pushed['teleop']['samples'] == 1
            assert pushed['teleop']['linear_x'] == 0.3
            assert pushed['teleop']['scale'] == 0.6
