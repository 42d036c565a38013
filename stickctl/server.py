"""
HTTP interface for stickctl.

Every route is a GET, with arguments carried in the path, so the server can be
driven from a browser or ``curl``. Action routes answer
``{"completed": bool, "errorDescription": str|null}``; query routes answer
``{"state": value}``. Errors never change the HTTP status: they come back as
``{"completed": false, "errorDescription": "..."}``.
"""
from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional

from aiohttp import web

from .controller import MotionController
from .exceptions import StickctlError
from .logging import LogComponent, get_logger
from .types import CommandCompleted, Direction, LimitKind, StateResponse

logger = get_logger(LogComponent.SERVER)

CONTROLLER_KEY = web.AppKey("controller", MotionController)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]

# route -> (direction, path parameter)
MOVE_ROUTES = {
    "/moveForward/{dist}": (Direction.FORWARD, "dist"),
    "/moveBackward/{dist}": (Direction.BACKWARD, "dist"),
    "/moveRight/{dist}": (Direction.RIGHT, "dist"),
    "/moveLeft/{dist}": (Direction.LEFT, "dist"),
    "/moveUp/{dist}": (Direction.UP, "dist"),
    "/moveDown/{dist}": (Direction.DOWN, "dist"),
    "/rotateClockwise/{angle}": (Direction.CLOCKWISE, "angle"),
    "/rotateCounterClockwise/{angle}": (Direction.COUNTER_CLOCKWISE, "angle"),
}


def completed(error: Optional[str] = None) -> web.Response:
    payload = CommandCompleted.ok() if error is None else CommandCompleted.failed(error)
    return web.json_response(payload.to_dict())


def state(value: Any) -> web.Response:
    return web.json_response(StateResponse(value).to_dict())


def _controller(request: web.Request) -> MotionController:
    return request.app[CONTROLLER_KEY]


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Turn controller errors into CommandCompleted(false, message) responses."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except StickctlError as e:
        logger.warning(f"{request.path} rejected: {e}")
        return completed(e.message)
    except Exception as e:
        logger.exception(f"Unhandled error serving {request.path}")
        return completed(str(e) or type(e).__name__)


routes = web.RouteTableDef()


# ----------------------------------------------------------------------
# Meta
# ----------------------------------------------------------------------

@routes.get("/")
async def index(request: web.Request) -> web.Response:
    return web.Response(text="Connected", content_type="text/plain")


@routes.get("/reboot")
async def reboot(request: web.Request) -> web.Response:
    await _controller(request).reboot()
    return completed()


@routes.get("/takeoff")
async def takeoff(request: web.Request) -> web.Response:
    await _controller(request).takeoff()
    return completed()


@routes.get("/land")
async def land(request: web.Request) -> web.Response:
    await _controller(request).land()
    return completed()


# ----------------------------------------------------------------------
# IMU sampling
# ----------------------------------------------------------------------

@routes.get("/startCollectingIMUState")
@routes.get("/startCollectingIMUState/{interval}")
async def start_collecting_imu_state(request: web.Request) -> web.Response:
    controller = _controller(request)
    interval = request.match_info.get("interval", controller.config.imu_interval_ms)
    await controller.start_imu_sampling(interval)
    return completed()


@routes.get("/stopCollectingIMUState")
async def stop_collecting_imu_state(request: web.Request) -> web.Response:
    await _controller(request).stop_imu_sampling()
    return completed()


@routes.get("/getCurrentIMUState")
async def get_current_imu_state(request: web.Request) -> web.Response:
    imu = _controller(request).imu_state()
    if imu is None:
        return completed("Unable to fetch IMU data.")
    return state(imu)


@routes.get("/getCollectedIMUStates")
async def get_collected_imu_states(request: web.Request) -> web.Response:
    return state(_controller(request).imu_samples())


@routes.get("/clearCollectedIMUStates")
async def clear_collected_imu_states(request: web.Request) -> web.Response:
    _controller(request).clear_imu_samples()
    return completed()


# ----------------------------------------------------------------------
# State queries
# ----------------------------------------------------------------------

@routes.get("/isVirtualStickControlEnabled")
async def is_virtual_stick_control_enabled(request: web.Request) -> web.Response:
    return state(_controller(request).virtual_stick_enabled)


@routes.get("/getMaxSpeed")
async def get_max_speed(request: web.Request) -> web.Response:
    return state(_controller(request).get_limit(LimitKind.SPEED))


@routes.get("/getMaxAngularSpeed")
async def get_max_angular_speed(request: web.Request) -> web.Response:
    return state(_controller(request).get_limit(LimitKind.ANGULAR_SPEED))


@routes.get("/getLimits")
async def get_limits(request: web.Request) -> web.Response:
    return state(_controller(request).limits)


@routes.get("/getVelocityProfile")
async def get_velocity_profile(request: web.Request) -> web.Response:
    return state(_controller(request).profile_kind)


@routes.get("/getControlMode")
async def get_control_mode(request: web.Request) -> web.Response:
    return state(_controller(request).mode)


@routes.get("/getHeading")
async def get_heading(request: web.Request) -> web.Response:
    heading = _controller(request).heading()
    if heading is None:
        return completed("Unable to fetch heading")
    return state(heading)


@routes.get("/getAltitude")
async def get_altitude(request: web.Request) -> web.Response:
    altitude = _controller(request).altitude()
    if altitude is None:
        return completed("Unable to fetch altitude")
    return state(altitude)


# ----------------------------------------------------------------------
# Configuration
# ----------------------------------------------------------------------

@routes.get("/setMaxSpeed/{speed}")
async def set_max_speed(request: web.Request) -> web.Response:
    _controller(request).set_limit(LimitKind.SPEED, request.match_info["speed"])
    return completed()


@routes.get("/setMaxAngularSpeed/{speed}")
async def set_max_angular_speed(request: web.Request) -> web.Response:
    _controller(request).set_limit(LimitKind.ANGULAR_SPEED, request.match_info["speed"])
    return completed()


@routes.get("/setLimit/{limit}/{value}")
async def set_limit(request: web.Request) -> web.Response:
    _controller(request).set_limit(request.match_info["limit"], request.match_info["value"])
    return completed()


@routes.get("/setVelocityProfile/{profile}")
async def set_velocity_profile(request: web.Request) -> web.Response:
    _controller(request).set_profile_kind(request.match_info["profile"])
    return completed()


@routes.get("/setControlMode/{mode}")
async def set_control_mode(request: web.Request) -> web.Response:
    _controller(request).set_mode(request.match_info["mode"])
    return completed()


# ----------------------------------------------------------------------
# Velocity control
# ----------------------------------------------------------------------

@routes.get("/startVelocityControl")
async def start_velocity_control(request: web.Request) -> web.Response:
    await _controller(request).start_velocity_stream()
    return completed()


@routes.get("/setVelocityCommand/{xVel}/{yVel}/{zVel}/{yawVel}")
async def set_velocity_command(request: web.Request) -> web.Response:
    info = request.match_info
    _controller(request).update_velocity_command(
        info["xVel"], info["yVel"], info["zVel"], info["yawVel"]
    )
    return completed()


@routes.get("/getCurrentVelocityCommand")
async def get_current_velocity_command(request: web.Request) -> web.Response:
    return state(_controller(request).query_velocity_command())


@routes.get("/stopVelocityControl")
async def stop_velocity_control(request: web.Request) -> web.Response:
    await _controller(request).stop_velocity_stream()
    return completed()


# ----------------------------------------------------------------------
# Position control
# ----------------------------------------------------------------------

def _move_handler(direction: Direction, param: str) -> Handler:
    async def handler(request: web.Request) -> web.Response:
        await _controller(request).start_directional_move(direction, request.match_info[param])
        return completed()

    handler.__name__ = f"move_{direction.name.lower()}"
    return handler


for _path, (_direction, _param) in MOVE_ROUTES.items():
    routes.get(_path)(_move_handler(_direction, _param))


# ----------------------------------------------------------------------
# Application
# ----------------------------------------------------------------------

async def _on_cleanup(app: web.Application) -> None:
    await app[CONTROLLER_KEY].shutdown()


def create_app(controller: MotionController) -> web.Application:
    """
    Build the aiohttp application serving ``controller``.

    The controller is shut down (stream stopped, IMU sampling stopped,
    channel closed) when the application is cleaned up.
    """
    app = web.Application(middlewares=[error_middleware])
    app[CONTROLLER_KEY] = controller
    app.add_routes(routes)
    app.on_cleanup.append(_on_cleanup)
    return app


__all__ = ["CONTROLLER_KEY", "MOVE_ROUTES", "create_app", "error_middleware"]
