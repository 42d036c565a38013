"""
Default values shared across stickctl.

Units follow the rest of the package: metres, degrees, seconds, except where a
name ends in ``_MS``.
"""

# Dispatch cadence
DEFAULT_DISPATCH_INTERVAL_MS = 40  # 25 Hz

# Motion limits
DEFAULT_MAX_SPEED = 0.2  # m/s
DEFAULT_MAX_ANGULAR_SPEED = 30.0  # deg/s
DEFAULT_MAX_ACCELERATION = 0.1  # m/s^2
DEFAULT_MAX_ANGULAR_ACCELERATION = 15.0  # deg/s^2
DEFAULT_MAX_JERK = 0.2  # m/s^3
DEFAULT_MAX_ANGULAR_JERK = 30.0  # deg/s^3

# S-curve peak acceleration is capped to this fraction of peak velocity
S_CURVE_ACCELERATION_RATIO = 0.75

# HTTP server
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080

# Vehicle connection
DEFAULT_CONNECTION = "udpin://0.0.0.0:14540"
DEFAULT_MAVSDK_PORT = 50051
DEFAULT_CONNECTION_TIMEOUT = 30.0  # s

# IMU sampling
DEFAULT_IMU_INTERVAL_MS = 1000
DEFAULT_IMU_MAX_SAMPLES = 36000  # oldest dropped past this
