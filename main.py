#!/usr/bin/env python3
import argparse
import asyncio
import logging
import threading

import uvicorn

from state import SharedState
from teleop_config import load_config, resolve_config
from teleop import TeleopController
from bus import ZenohBus, LogOnlySink, DEFAULT_INPUT_KEY, DEFAULT_OUTPUT_KEY
from joystick import JoystickHandler
from web.server import create_app

logger = logging.getLogger('main')

SOURCES = ('joystick', 'bus')


def setup_logging(level: str = 'INFO'):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s  %(levelname)-7s  %(name)s: %(message)s',
        datefmt='%H:%M:%S',
    )


async def run(cfg: dict):
    source   = cfg.get('source',   'joystick')
    dry_run  = cfg.get('dry_run',  False)
    web_on   = cfg.get('web',      True)
    web_port = cfg.get('web_port', 8080)

    if source not in SOURCES:
        raise ValueError(f'unknown source {source!r}, expected one of {SOURCES}')

    teleop_cfg = resolve_config(cfg)
    logger.info(f'Teleop config: {teleop_cfg.to_dict()}')

    state = SharedState(source)
    state.set_loop(asyncio.get_running_loop())

    bus = None
    if source == 'bus' or not dry_run:
        bus = ZenohBus(
            input_key=cfg.get('input_key',  DEFAULT_INPUT_KEY),
            output_key=cfg.get('output_key', DEFAULT_OUTPUT_KEY),
            queue_size=cfg.get('queue_size', 1),
        )
        bus.start(cfg.get('locator', ''))

    sink = LogOnlySink() if dry_run else bus
    controller = TeleopController(teleop_cfg, sink, state)

    joystick = None
    if source == 'joystick':
        joystick = JoystickHandler(controller.handle_sample, cfg.get('joystick', {}),
                                   teleop_cfg, state)
        joystick.start()
    else:
        threading.Thread(target=bus.run_input_loop, args=(controller.handle_sample,),
                         name='bus-input', daemon=True).start()

    try:
        if web_on:
            app = create_app(state, teleop_cfg)
            uv_cfg = uvicorn.Config(
                app,
                host='0.0.0.0',
                port=web_port,
                log_level='warning',
                loop='none',
            )
            server = uvicorn.Server(uv_cfg)
            logger.info(f'Web  http://0.0.0.0:{web_port}')
            await server.serve()
        else:
            await asyncio.Event().wait()
    finally:
        controller.stop()
        if joystick:
            joystick.stop()
        if bus:
            bus.stop()
        logger.info('Shutdown complete')


def main():
    parser = argparse.ArgumentParser(description='Omnidirectional base joystick teleop')
    parser.add_argument('--config',    default='config.yaml')
    parser.add_argument('--source',    choices=SOURCES, default=None)
    parser.add_argument('--locator',   default=None)
    parser.add_argument('--web-port',  type=int, default=None)
    parser.add_argument('--no-web',    dest='web', action='store_false', default=None)
    parser.add_argument('--dry-run',   action='store_true', default=None)
    parser.add_argument('--log-level', default='INFO')
    args = parser.parse_args()

    setup_logging(args.log_level)

    cfg = load_config(args.config, {
        'source':   args.source,
        'locator':  args.locator,
        'web_port': args.web_port,
        'web':      args.web,
        'dry_run':  args.dry_run,
    })

    try:
        asyncio.run(run(cfg))
    except KeyboardInterrupt:
        logger.info('Stopped by user')


if __name__ == '__main__':
    main()
