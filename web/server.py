"""
FastAPI status server for the teleop node.

Endpoints:
  GET  /api/state   → current teleop status snapshot (JSON)
  GET  /api/config  → resolved runtime config
  WS   /ws          → status push on every processed sample
"""
import asyncio
import json
import logging

from fastapi import FastAPI, WebSocket

logger = logging.getLogger(__name__)

KEEPALIVE_S = 5.0


async def _wait_closed(ws: WebSocket):
    while True:
        msg = await ws.receive()
        if msg['type'] == 'websocket.disconnect':
            return


def create_app(state, teleop_cfg):
    app = FastAPI(title='Omni Teleop', docs_url=None, redoc_url=None)

    # ------------------------------------------------------------------
    # REST
    # ------------------------------------------------------------------

    @app.get('/api/state')
    async def get_state():
        return json.loads(state.to_json())

    @app.get('/api/config')
    async def get_config():
        return teleop_cfg.to_dict()

    # ------------------------------------------------------------------
    # WebSocket
    # ------------------------------------------------------------------

    @app.websocket('/ws')
    async def ws_endpoint(ws: WebSocket):
        await ws.accept()
        # processing thread marshals status pushes onto this loop
        state.set_loop(asyncio.get_running_loop())
        queue = state.subscribe()
        closed = asyncio.create_task(_wait_closed(ws))
        logger.info(f'Status client connected: {ws.client}')

        try:
            await ws.send_text(state.to_json())

            while not closed.done():
                pushed = asyncio.create_task(queue.get())
                done, _ = await asyncio.wait(
                    {pushed, closed}, timeout=KEEPALIVE_S,
                    return_when=asyncio.FIRST_COMPLETED)
                if closed.done():
                    pushed.cancel()
                    break
                if pushed in done:
                    await ws.send_text(pushed.result())
                    continue
                pushed.cancel()
                # idle stream (no samples): resend the snapshot so
                # update_age keeps growing on the client
                await ws.send_text(state.to_json())
        finally:
            closed.cancel()
            state.unsubscribe(queue)
            logger.info(f'Status client disconnected: {ws.client}')

    return app
