"""
Run the stickctl HTTP control server.

usage:
    stickctl --conn <connection string> [--port 8080] [--config server.yaml]

example:
    stickctl --conn udpin://0.0.0.0:14540

    stickctl --config field.yaml --profile S_CURVE -v

    stickctl --dry-run   # serve against an in-memory vehicle
"""

import asyncio
import os
import signal
import sys
import traceback
from argparse import ArgumentParser
from typing import List, Optional

from aiohttp import web

from .actuation import MavsdkActuationChannel
from .config import ServerConfig
from .controller import MotionController
from .exceptions import StickctlError
from .logging import LogComponent, LogLevel, configure_logging, get_logger, set_level
from .server import create_app
from .testing import MockActuationChannel
from .types import VelocityProfileKind

logger = get_logger(LogComponent.ROOT)


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="stickctl",
        description="HTTP server for velocity-profiled vehicle motion control",
    )
    parser.add_argument(
        "--config",
        help="path to YAML configuration file. "
        "Command line arguments override values from the file.",
    )

    # Core Arguments
    core_grp = parser.add_argument_group("Core Arguments")
    core_grp.add_argument("--conn", "--connection", help="MAVSDK connection string", dest="connection")
    core_grp.add_argument("--host", help="address to listen on (default: 0.0.0.0)")
    core_grp.add_argument("--port", help="HTTP port (default: 8080)", type=int)

    # Motion Arguments
    motion_grp = parser.add_argument_group("Motion")
    motion_grp.add_argument(
        "--dispatch-interval",
        help="milliseconds between flight commands (default: 40)",
        type=float,
        dest="dispatch_interval_ms",
    )
    motion_grp.add_argument(
        "--profile",
        help="initial velocity profile",
        choices=[k.name for k in VelocityProfileKind],
        type=str.upper,
        dest="default_profile",
    )

    # Execution Flags
    exec_grp = parser.add_argument_group("Execution Flags")
    exec_grp.add_argument(
        "--dry-run",
        help="serve against an in-memory mock vehicle instead of connecting",
        action="store_true",
        default=None,
        dest="dry_run",
    )

    # Logging Arguments
    log_grp = parser.add_argument_group("Logging")
    log_grp.add_argument(
        "-v",
        "--verbose",
        help="enable debug logging (DEBUG level)",
        action="store_true",
    )
    log_grp.add_argument(
        "-q",
        "--quiet",
        help="suppress most output (WARNING level only)",
        action="store_true",
    )
    log_grp.add_argument(
        "--log-file",
        help="write logs to file in addition to console",
        dest="log_file",
    )
    log_grp.add_argument(
        "--json-log",
        help="write JSON-lines logs to this file",
        dest="json_log",
    )

    # Connection Tuning
    conn_grp = parser.add_argument_group("Connection Tuning")
    conn_grp.add_argument(
        "--conn-timeout",
        help="connection timeout in seconds (default: 30)",
        type=float,
        dest="connection_timeout",
    )
    conn_grp.add_argument(
        "--mavsdk-port",
        help="gRPC port for the embedded mavsdk_server (default: 50051). "
        "Use a unique port per server process when controlling several vehicles "
        "from the same host.",
        type=int,
        dest="mavsdk_port",
    )
    return parser


def setup_logging(verbose: bool = False, quiet: bool = False,
                  log_file: Optional[str] = None, json_log: Optional[str] = None) -> None:
    if verbose:
        level = LogLevel.DEBUG
    elif quiet:
        level = LogLevel.WARNING
    else:
        level = LogLevel.INFO
    configure_logging(level=level, file=log_file, json_file=json_log)

    # Suppress noisy external logs
    set_level(LogLevel.WARNING, "_cython.cygrpc")
    set_level(LogLevel.WARNING, "grpc._cython.cygrpc")
    set_level(LogLevel.WARNING if not verbose else LogLevel.INFO, "aiohttp.access")


def load_config(args) -> ServerConfig:
    """Merge defaults, the optional YAML file and command line overrides."""
    config = ServerConfig.from_yaml(args.config) if args.config else ServerConfig()
    overrides = {
        "host": args.host,
        "port": args.port,
        "connection": args.connection,
        "mavsdk_port": args.mavsdk_port,
        "connection_timeout": args.connection_timeout,
        "dispatch_interval_ms": args.dispatch_interval_ms,
        "dry_run": args.dry_run,
    }
    if args.default_profile:
        overrides["default_profile"] = VelocityProfileKind.from_string(args.default_profile)
    config = config.merged(**overrides)

    errors = config.validate()
    if errors:
        raise ValueError("; ".join(errors))
    return config


async def serve(config: ServerConfig) -> None:
    """Connect to the vehicle, run the HTTP server and block until SIGINT/SIGTERM."""
    if config.dry_run:
        logger.warning("Dry run: using an in-memory mock vehicle")
        channel = MockActuationChannel()
    else:
        channel = await MavsdkActuationChannel.connect(
            config.connection,
            mavsdk_port=config.mavsdk_port,
            timeout=config.connection_timeout,
        )

    controller = MotionController(channel, config)
    runner = web.AppRunner(create_app(controller))
    await runner.setup()
    site = web.TCPSite(runner, config.host, config.port)
    await site.start()
    logger.info(
        f"Listening on http://{config.host}:{config.port} "
        f"(dispatch every {config.dispatch_interval_ms:g} ms, profile {config.default_profile.name})"
    )

    shutdown_event = asyncio.Event()

    def handle_shutdown():
        logger.warning("Initiating graceful shutdown...")
        shutdown_event.set()

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, handle_shutdown)
        loop.add_signal_handler(signal.SIGTERM, handle_shutdown)
    except NotImplementedError:
        signal.signal(signal.SIGINT, lambda s, f: loop.call_soon_threadsafe(handle_shutdown))
        signal.signal(signal.SIGTERM, lambda s, f: loop.call_soon_threadsafe(handle_shutdown))

    try:
        await shutdown_event.wait()
    finally:
        # runs app cleanup, which shuts the controller down
        await runner.cleanup()


def main(cli_args: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(args=cli_args)
    setup_logging(args.verbose, args.quiet, args.log_file, args.json_log)

    logger.info("stickctl - velocity-profiled motion control server")
    logger.debug(f"Python version: {sys.version}")
    logger.debug(f"Working directory: {os.getcwd()}")

    try:
        config = load_config(args)
    except (ValueError, OSError, StickctlError) as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)
    logger.debug(f"Configuration: {config}")

    success = False
    try:
        asyncio.run(serve(config))
        success = True
    except StickctlError as e:
        logger.error(f"Could not start server: {e}")
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        traceback.print_exc()

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
