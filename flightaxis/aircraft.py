"""
Aircraft State Base
====================
Holds the kinematic state a simulator backend fills in every tick and the
flight controller consumes.

Coordinate frames
-----------------
Earth (NED):   X-north, Y-east, Z-down, origin at the first reported position
Body:          X-fwd, Y-right, Z-down

``dcm`` rotates body-frame vectors into the earth frame, so
``dcm.T @ v_earth`` gives body-frame vectors.
"""

import math
import time

import numpy as np

from . import config as cfg


def dcm_from_euler(roll: float, pitch: float, yaw: float) -> np.ndarray:
    """Body → earth rotation matrix for a 3-2-1 (yaw, pitch, roll) sequence."""
    cp, sp = math.cos(pitch), math.sin(pitch)
    sr, cr = math.sin(roll), math.cos(roll)
    sy, cy = math.sin(yaw), math.cos(yaw)
    return np.array([
        [cp * cy, sr * sp * cy - cr * sy, cr * sp * cy + sr * sy],
        [cp * sy, sr * sp * sy + cr * cy, cr * sp * sy - sr * cy],
        [-sp,     sr * cp,                cr * cp],
    ], dtype=np.float64)


def euler_from_dcm(dcm: np.ndarray) -> tuple:
    """Inverse of :func:`dcm_from_euler`; returns (roll, pitch, yaw) radians."""
    pitch = -math.asin(np.clip(dcm[2, 0], -1.0, 1.0))
    roll = math.atan2(dcm[2, 1], dcm[2, 2])
    yaw = math.atan2(dcm[1, 0], dcm[0, 0])
    return roll, pitch, yaw


def quaternion_from_euler(roll: float, pitch: float, yaw: float) -> np.ndarray:
    """[w, x, y, z] quaternion for the same rotation as :func:`dcm_from_euler`."""
    cr, sr = math.cos(roll / 2), math.sin(roll / 2)
    cp, sp = math.cos(pitch / 2), math.sin(pitch / 2)
    cy, sy = math.cos(yaw / 2), math.sin(yaw / 2)
    return np.array([
        cr * cp * cy + sr * sp * sy,
        sr * cp * cy - cr * sp * sy,
        cr * sp * cy + sr * cp * sy,
        cr * cp * sy - sr * sp * cy,
    ], dtype=np.float64)


class Aircraft:
    """
    Base for simulator backends.

    Subclasses implement ``update(servos)``, write the state fields below and
    finish each tick with :meth:`update_position`.
    """

    def __init__(self, frame_str: str = "", speedup: float = cfg.DEFAULT_SPEEDUP,
                 clock=None):
        self.frame_str = frame_str
        self.speedup = speedup
        self._clock = clock or time.perf_counter

        self.dcm = np.eye(3)
        self.gyro = np.zeros(3)           # body rates, rad/s
        self.velocity_ef = np.zeros(3)    # earth-frame velocity, m/s
        self.position = np.zeros(3)       # NED metres from origin
        self.accel_body = np.array([0.0, 0.0, -cfg.GRAVITY_MSS])

        self.airspeed = 0.0
        self.battery_voltage = 0.0
        self.battery_current = 0.0
        self.rpm1 = 0.0

        self.time_now_us = 0              # simulated time
        self.location = (cfg.GPS_HOME_LAT_DEG, cfg.GPS_HOME_LON_DEG,
                         cfg.GPS_HOME_ALT_AMSL_M)

    def get_wall_time_us(self) -> int:
        return int(self._clock() * 1e6)

    def update(self, servos):
        raise NotImplementedError

    def update_position(self):
        """Project local NED position onto a flat earth around GPS home."""
        north_m, east_m, down_m = self.position
        lat = cfg.GPS_HOME_LAT_DEG + math.degrees(north_m / cfg.EARTH_RADIUS_M)
        lon = cfg.GPS_HOME_LON_DEG + math.degrees(
            east_m / (cfg.EARTH_RADIUS_M * math.cos(math.radians(cfg.GPS_HOME_LAT_DEG)))
        )
        alt = cfg.GPS_HOME_ALT_AMSL_M - down_m
        self.location = (lat, lon, alt)

    def attitude_euler(self) -> tuple:
        return euler_from_dcm(self.dcm)
