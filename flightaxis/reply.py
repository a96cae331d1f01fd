"""
Decoding of the FlightAxis ExchangeData reply.

The reply body carries one element per state value, e.g.
``<m-roll-DEG>-1.25</m-roll-DEG>``.  Elements are collected by name in one
pass and then looked up through ``FIELD_TABLE``, so a missing or reordered
element only affects its own field.
"""

import logging
import re

log = logging.getLogger(__name__)

# (reply element, AircraftState attribute)
FIELD_TABLE = (
    ("m-currentPhysicsTime-SEC",         "current_physics_time_sec"),
    ("m-currentPhysicsSpeedMultiplier",  "current_physics_speed_multiplier"),
    ("m-airspeed-MPS",                   "airspeed_mps"),
    ("m-altitudeASL-MTR",                "altitude_asl_m"),
    ("m-altitudeAGL-MTR",                "altitude_agl_m"),
    ("m-groundspeed-MPS",                "groundspeed_mps"),
    ("m-pitchRate-DEGpSEC",              "pitch_rate_degps"),
    ("m-rollRate-DEGpSEC",               "roll_rate_degps"),
    ("m-yawRate-DEGpSEC",                "yaw_rate_degps"),
    ("m-azimuth-DEG",                    "azimuth_deg"),
    ("m-inclination-DEG",                "inclination_deg"),
    ("m-roll-DEG",                       "roll_deg"),
    ("m-aircraftPositionX-MTR",          "position_x_m"),
    ("m-aircraftPositionY-MTR",          "position_y_m"),
    ("m-velocityWorldU-MPS",             "velocity_world_u_mps"),
    ("m-velocityWorldV-MPS",             "velocity_world_v_mps"),
    ("m-velocityWorldW-MPS",             "velocity_world_w_mps"),
    ("m-velocityBodyU-MPS",              "velocity_body_u_mps"),
    ("m-velocityBodyV-MPS",              "velocity_body_v_mps"),
    ("m-velocityBodyW-MPS",              "velocity_body_w_mps"),
    ("m-accelerationWorldAX-MPS2",       "accel_world_x_mss"),
    ("m-accelerationWorldAY-MPS2",       "accel_world_y_mss"),
    ("m-accelerationWorldAZ-MPS2",       "accel_world_z_mss"),
    ("m-accelerationBodyAX-MPS2",        "accel_body_x_mss"),
    ("m-accelerationBodyAY-MPS2",        "accel_body_y_mss"),
    ("m-accelerationBodyAZ-MPS2",        "accel_body_z_mss"),
    ("m-windX-MPS",                      "wind_x_mps"),
    ("m-windY-MPS",                      "wind_y_mps"),
    ("m-windZ-MPS",                      "wind_z_mps"),
    ("m-propRPM",                        "prop_rpm"),
    ("m-heliMainRotorRPM",               "heli_main_rotor_rpm"),
    ("m-batteryVoltage-VOLTS",           "battery_voltage_v"),
    ("m-batteryCurrentDraw-AMPS",        "battery_current_a"),
    ("m-batteryRemainingCapacity-MAH",   "battery_remaining_mah"),
    ("m-fuelRemaining-OZ",               "fuel_remaining_oz"),
    ("m-isLocked",                       "is_locked"),
    ("m-hasLostComponents",              "has_lost_components"),
    ("m-anEngineIsRunning",              "an_engine_is_running"),
    ("m-isTouchingGround",               "is_touching_ground"),
    ("m-flightAxisControllerIsActive",   "controller_is_active"),
    ("m-currentAircraftStatus",          "current_aircraft_status"),
)

# Leaf elements only: <name>text</name> with no nested markup
_ELEMENT_RE = re.compile(r"<([A-Za-z][\w.\-]*)>([^<]*)</\1>")
_NUMBER_RE = re.compile(r"\s*([-+]?(?:(?:\d+\.?\d*|\.\d+)(?:e[-+]?\d+)?|inf(?:inity)?|nan))",
                        re.IGNORECASE)


class AircraftState:
    """Latest state snapshot reported by FlightAxis (simulator units)."""

    __slots__ = tuple(attr for _, attr in FIELD_TABLE)

    def __init__(self):
        for attr in self.__slots__:
            setattr(self, attr, 0.0)

    def as_dict(self) -> dict:
        return {attr: getattr(self, attr) for attr in self.__slots__}

    def __repr__(self):
        return (f"AircraftState(roll={self.roll_deg:.2f}, "
                f"pitch={self.inclination_deg:.2f}, yaw={self.azimuth_deg:.2f}, "
                f"pos=({self.position_x_m:.2f},{self.position_y_m:.2f},"
                f"{self.altitude_agl_m:.2f}))")


def parse_number(text: str) -> float:
    """
    Lenient float conversion: leading numeric prefix (``nan`` and ``inf``
    included), ``true``/``false`` as 1/0, anything else 0.0.
    """
    m = _NUMBER_RE.match(text)
    if m is not None:
        return float(m.group(1))
    word = text.strip().lower()
    if word == "true":
        return 1.0
    return 0.0


def decode_fields(body) -> dict:
    """Map every leaf element name in ``body`` to its text (first wins)."""
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    fields = {}
    for name, text in _ELEMENT_RE.findall(body):
        fields.setdefault(name, text)
    return fields


def parse_reply(body, state: AircraftState, field_table=FIELD_TABLE) -> list:
    """
    Update ``state`` in place from a reply body.

    Returns the keys that were missing; their attributes keep the value
    from the previous reply.
    """
    fields = decode_fields(body)
    missing = []
    for key, attr in field_table:
        text = fields.get(key)
        if text is None:
            missing.append(key)
            continue
        setattr(state, attr, parse_number(text))
    if missing:
        log.warning("Failed to find keys %s", ", ".join(missing))
    return missing
