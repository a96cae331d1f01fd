"""
RealFlight FlightAxis Synchronizer
===================================
Drives RealFlight through its FlightAxis SOAP controller interface, one
request/reply per tick.

Per tick
--------
  servos ──map_servos──▶ ExchangeData ──▶ FlightAxis
  FlightAxis ──reply──▶ AircraftState ──▶ dcm / gyro / velocity / position / accel

The first tick takes over RealFlight's controller (restore, then inject the
UAV controller interface).  If an exchange fails the previous reply stays in
effect and the tick still advances simulated time.
"""

import enum
import logging
import math

import numpy as np

from . import config as cfg
from .aircraft import Aircraft, dcm_from_euler
from .reply import AircraftState, parse_reply
from .servos import FrameOptions, map_servos
from .soap import ADMIN_PLACEHOLDER, SoapClient, SoapError, exchange_data_body

log = logging.getLogger(__name__)


class SessionState(enum.Enum):
    NOT_BOOTSTRAPPED = "not_bootstrapped"
    BOOTSTRAPPED = "bootstrapped"


class FlightAxis(Aircraft):
    """Aircraft backend whose physics run inside RealFlight."""

    def __init__(self, frame_str: str = "", speedup: float = cfg.DEFAULT_SPEEDUP,
                 client: SoapClient = None, clock=None):
        if speedup <= 0:
            raise ValueError(f"speedup must be positive, got {speedup}")
        super().__init__(frame_str, speedup, clock=clock)
        self.client = client if client is not None else SoapClient()
        self.options = FrameOptions.from_frame(frame_str)
        self.rate_hz = cfg.DEFAULT_RATE_HZ / speedup

        self.session = SessionState.NOT_BOOTSTRAPPED
        self.state = AircraftState()
        self.have_state = False
        self.position_origin = None

        self.last_time_us = self.get_wall_time_us()
        self.frame_counter = 0
        self.last_frame_count_us = None

    # ──────────────────────────────────────────────────────────────────────
    #  SOAP exchange
    # ──────────────────────────────────────────────────────────────────────
    def start_controller(self):
        """
        Hand RealFlight's controls to us.  A restore first allows reconnecting
        after the aircraft was changed in RealFlight.  Failures are logged and
        the session counts as started regardless.
        """
        log.info("Starting controller")
        for action in ("RestoreOriginalControllerDevice", "InjectUAVControllerInterface"):
            try:
                self.client.call(action, ADMIN_PLACEHOLDER)
            except SoapError as exc:
                log.warning("%s failed: %s", action, exc)
        self.session = SessionState.BOOTSTRAPPED

    def exchange_data(self, servos) -> bool:
        """Send servo outputs and refresh ``self.state``; False on failure."""
        if self.session is SessionState.NOT_BOOTSTRAPPED:
            self.start_controller()

        channels = map_servos(servos, self.options)
        try:
            reply = self.client.request("ExchangeData", exchange_data_body(channels))
        except SoapError as exc:
            log.warning("ExchangeData failed: %s", exc)
            return False

        parse_reply(reply, self.state)
        self.have_state = True
        return True

    # ──────────────────────────────────────────────────────────────────────
    #  Tick
    # ──────────────────────────────────────────────────────────────────────
    def update(self, servos):
        """Advance the simulation by one time step."""
        last_velocity_ef = self.velocity_ef.copy()

        fresh = self.exchange_data(servos)

        now = self.get_wall_time_us()
        dt = int((now - self.last_time_us) * self.speedup)
        dt_seconds = dt * 1.0e-6

        if self.have_state:
            self._apply_state(last_velocity_ef, dt_seconds, capture_origin=fresh)

        self.update_position()
        self.time_now_us += dt
        self.last_time_us = now
        self._report_rate()

    def _apply_state(self, last_velocity_ef: np.ndarray, dt_seconds: float,
                     capture_origin: bool):
        s = self.state

        self.dcm = dcm_from_euler(math.radians(s.roll_deg),
                                  math.radians(s.inclination_deg),
                                  -math.radians(s.azimuth_deg))

        rates = np.radians(np.clip([s.roll_rate_degps, s.pitch_rate_degps, s.yaw_rate_degps],
                                   -cfg.MAX_RATE_DEGPS, cfg.MAX_RATE_DEGPS))
        rates[2] = -rates[2]
        self.gyro = rates * self.speedup

        self.velocity_ef = np.array([s.velocity_world_u_mps,
                                     s.velocity_world_v_mps,
                                     s.velocity_world_w_mps])

        position = np.array([s.position_y_m, s.position_x_m, -s.altitude_agl_m])
        # RealFlight's world origin is arbitrary; report relative to where we started
        if self.position_origin is None and capture_origin:
            self.position_origin = position.copy()
        if self.position_origin is not None:
            position = position - self.position_origin
        self.position = position

        # The accelerations in the reply are unreliable, so differentiate
        # velocity instead.  Keep the last value when no time has passed.
        if dt_seconds > 0:
            accel_ef = (self.velocity_ef - last_velocity_ef) / dt_seconds
            accel_ef[2] -= cfg.GRAVITY_MSS
            self.accel_body = np.clip(self.dcm.T @ accel_ef,
                                      -cfg.MAX_ACCEL_MSS, cfg.MAX_ACCEL_MSS)

        self.airspeed = s.airspeed_mps
        self.battery_voltage = s.battery_voltage_v
        self.battery_current = s.battery_current_a
        if self.options.heli_demix:
            self.rpm1 = s.heli_main_rotor_rpm
        else:
            self.rpm1 = s.prop_rpm

    def _report_rate(self):
        counter = self.frame_counter
        self.frame_counter += 1
        if counter % cfg.FPS_REPORT_EVERY != 0:
            return
        if self.last_frame_count_us is not None:
            elapsed_s = (self.time_now_us - self.last_frame_count_us) * 1.0e-6
            if elapsed_s > 0:
                log.info("%.2f FPS", cfg.FPS_REPORT_EVERY / elapsed_s)
        else:
            p = self.position
            log.info("Initial position %f %f %f", p[0], p[1], p[2])
        self.last_frame_count_us = self.time_now_us
