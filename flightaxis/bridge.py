#!/usr/bin/env python3
"""
FlightAxis HIL Bridge
======================
Connects a MAVLink flight controller to RealFlight through the FlightAxis
SOAP interface.

Data-flow summary
-----------------
  FC  ──(SERVO_OUTPUT_RAW MAVLink)──▶  Bridge  ──(ExchangeData SOAP)──▶  RealFlight
  RealFlight  ──(state reply)──▶  Bridge  ──(HIL_STATE_QUATERNION MAVLink)──▶  FC

Usage
-----
  1) In RealFlight enable FlightAxis link (Simulation → Settings → Physics).
  2) flightaxis-bridge --host 192.168.2.48 --frame heli
  3) Point the flight controller's MAVLink at UDP :14560, listening on :14561.
"""

import argparse
import logging
import time

import numpy as np
from pymavlink import mavutil

from . import config as cfg
from .aircraft import quaternion_from_euler
from .flightaxis import FlightAxis
from .soap import SoapClient

log = logging.getLogger(__name__)

SERVO_IDLE_PWM = 1000


# ═══════════════════════════════════════════════════════════════════════════════
#  HIL state encoding
# ═══════════════════════════════════════════════════════════════════════════════
def hil_state_quaternion_fields(aircraft, time_usec: int) -> tuple:
    """
    Positional arguments for ``hil_state_quaternion_send`` in MAVLink units:
    degE7 lat/lon, mm altitude, cm/s velocity and airspeed, milli-g accel.
    """
    lat, lon, alt = aircraft.location
    roll, pitch, yaw = aircraft.attitude_euler()
    quat = quaternion_from_euler(roll, pitch, yaw)
    vel_cms = np.rint(aircraft.velocity_ef * 100.0).astype(int)
    acc_mg = np.rint(aircraft.accel_body / cfg.GRAVITY_MSS * 1000.0).astype(int)
    airspeed_cms = int(round(max(aircraft.airspeed, 0.0) * 100.0))
    return (
        time_usec,
        [float(q) for q in quat],
        float(aircraft.gyro[0]),
        float(aircraft.gyro[1]),
        float(aircraft.gyro[2]),
        int(round(lat * 1e7)),
        int(round(lon * 1e7)),
        int(round(alt * 1000.0)),
        int(vel_cms[0]), int(vel_cms[1]), int(vel_cms[2]),
        airspeed_cms,                 # indicated
        airspeed_cms,                 # true
        int(acc_mg[0]), int(acc_mg[1]), int(acc_mg[2]),
    )


# ═══════════════════════════════════════════════════════════════════════════════
#  MAVLink Manager
# ═══════════════════════════════════════════════════════════════════════════════
class MAVLinkManager:
    """
    Bridge ↔ FC MAVLink link pair:
      mav_fc_in   receives SERVO_OUTPUT_RAW + HEARTBEAT from the FC
      mav_fc_out  sends HIL_STATE_QUATERNION + HEARTBEAT to the FC
    A serial link can serve as both.
    """

    def __init__(self, mav_fc_in, mav_fc_out):
        self.mav_fc_in = mav_fc_in
        self.mav_fc_out = mav_fc_out
        self.servos = [SERVO_IDLE_PWM] * cfg.NUM_CHANNELS
        self.fc_heartbeat_ok = False
        self.servo_updates = 0

    @classmethod
    def connect(cls, in_uri: str, out_uri: str = None) -> "MAVLinkManager":
        mav_in = mavutil.mavlink_connection(
            in_uri,
            source_system=cfg.BRIDGE_SYSID,
            source_component=cfg.BRIDGE_COMPID,
            dialect="common",
        )
        if out_uri is None or out_uri == in_uri:
            return cls(mav_in, mav_in)
        mav_out = mavutil.mavlink_connection(
            out_uri,
            source_system=cfg.BRIDGE_SYSID,
            source_component=cfg.BRIDGE_COMPID,
            dialect="common",
        )
        return cls(mav_in, mav_out)

    def poll_fc(self):
        """Non-blocking drain of FC MAVLink messages."""
        while True:
            msg = self.mav_fc_in.recv_match(blocking=False)
            if msg is None:
                break
            mtype = msg.get_type()
            if mtype == "SERVO_OUTPUT_RAW":
                # Raw PWM µs; scaling to FlightAxis channels happens in map_servos
                self.servos = [getattr(msg, f"servo{i + 1}_raw")
                               for i in range(cfg.NUM_CHANNELS)]
                self.servo_updates += 1
            elif mtype == "HEARTBEAT":
                if not self.fc_heartbeat_ok:
                    log.info("FC heartbeat received")
                self.fc_heartbeat_ok = True

    def send_hil_state(self, aircraft, time_usec: int):
        self.mav_fc_out.mav.hil_state_quaternion_send(
            *hil_state_quaternion_fields(aircraft, time_usec))

    def send_heartbeat(self):
        self.mav_fc_out.mav.heartbeat_send(
            mavutil.mavlink.MAV_TYPE_ONBOARD_CONTROLLER,
            mavutil.mavlink.MAV_AUTOPILOT_INVALID,
            0, 0, 0,
        )

    def close(self):
        self.mav_fc_in.close()
        if self.mav_fc_out is not self.mav_fc_in:
            self.mav_fc_out.close()


# ═══════════════════════════════════════════════════════════════════════════════
#  Main Bridge Loop
# ═══════════════════════════════════════════════════════════════════════════════
def run(sim: FlightAxis, mav: MAVLinkManager, max_ticks: int = None):
    """Tick ``sim`` at ``sim.rate_hz`` until interrupted (or ``max_ticks``)."""
    period_s = 1.0 / sim.rate_hz
    last_heartbeat_t = 0.0
    last_status_t = time.perf_counter()
    tick = 0
    overrun_count = 0

    try:
        while max_ticks is None or tick < max_ticks:
            wall_start = time.perf_counter()

            mav.poll_fc()
            sim.update(mav.servos)
            mav.send_hil_state(sim, sim.time_now_us)

            if wall_start - last_heartbeat_t >= cfg.HEARTBEAT_INTERVAL_S:
                mav.send_heartbeat()
                last_heartbeat_t = wall_start

            tick += 1
            wall_now = time.perf_counter()
            if wall_now - last_status_t >= cfg.STATUS_LOG_INTERVAL_S:
                pos = sim.position
                fc_str = "ok" if mav.fc_heartbeat_ok else "waiting"
                log.info("tick=%8d  servo_msgs=%d  overruns=%d  "
                         "pos=(%+6.2f,%+6.2f,%+6.2f)  FC=%s",
                         tick, mav.servo_updates, overrun_count,
                         pos[0], pos[1], pos[2], fc_str)
                overrun_count = 0
                last_status_t = wall_now

            # FlightAxis round-trip usually sets the pace; sleep off any slack
            sleep_s = period_s - (wall_now - wall_start)
            if sleep_s > 0:
                time.sleep(sleep_s)
            else:
                overrun_count += 1

    except KeyboardInterrupt:
        log.info("Shutting down …")
    finally:
        mav.close()
        log.info("Done.")


def main(argv=None):
    parser = argparse.ArgumentParser(description="RealFlight FlightAxis HIL Bridge")
    parser.add_argument("--host", default=cfg.FLIGHTAXIS_HOST,
                        help="RealFlight machine address")
    parser.add_argument("--port", type=int, default=cfg.FLIGHTAXIS_PORT,
                        help="FlightAxis SOAP port")
    parser.add_argument("--frame", default="",
                        help="Frame descriptor; 'heli' enables swashplate demix, "
                             "'rev4' swaps servos 1-4 with 5-8")
    parser.add_argument("--speedup", type=float, default=cfg.DEFAULT_SPEEDUP,
                        help="Simulated time per wall-clock second")
    parser.add_argument("--fc-in", default=f"udpin:0.0.0.0:{cfg.BRIDGE_FC_LISTEN_PORT}",
                        help="MAVLink URI for messages from the FC")
    parser.add_argument("--fc-out", default=f"udpout:127.0.0.1:{cfg.FC_LISTEN_PORT}",
                        help="MAVLink URI for messages to the FC "
                             "(same as --fc-in for a serial link)")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Debug logging")
    args = parser.parse_args(argv)
    if args.speedup <= 0:
        parser.error("--speedup must be positive")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s | %(levelname)s | %(message)s",
        datefmt="%H:%M:%S",
    )

    sim = FlightAxis(frame_str=args.frame, speedup=args.speedup,
                     client=SoapClient(args.host, args.port))
    log.info("FlightAxis at %s:%d  frame=%r  %s", args.host, args.port,
             args.frame, sim.options)
    log.info("Tick rate %.0f Hz (speedup %.2f)", sim.rate_hz, args.speedup)

    mav = MAVLinkManager.connect(args.fc_in, args.fc_out)
    log.info("FC MAVLink in ← %s  out → %s", args.fc_in, args.fc_out)

    run(sim, mav)


if __name__ == "__main__":
    main()
