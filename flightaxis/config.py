"""
FlightAxis HIL Connector — Shared Configuration
================================================
All constants shared between the FlightAxis synchronizer and the MAVLink
bridge.  Values here are defaults; bridge.py exposes the ones worth changing
per run as command-line options.
"""

# ═══════════════════════════════════════════════════════════════════════════════
#  FlightAxis (RealFlight) SOAP endpoint
# ═══════════════════════════════════════════════════════════════════════════════
FLIGHTAXIS_HOST         = "192.168.2.48"
FLIGHTAXIS_PORT         = 18083

# Receive timeouts for one SOAP reply
REPLY_TIMEOUT_FIRST_MS  = 1000      # First chunk (includes simulator step time)
REPLY_TIMEOUT_CONT_MS   = 100       # Each continuation chunk of a split body
REPLY_MAX_BYTES         = 10000     # Whole reply (headers + body) must fit

# Channels carried by ExchangeData
NUM_CHANNELS            = 8
SELECTED_CHANNELS_MASK  = 255       # All 8 channels driven by us

# ═══════════════════════════════════════════════════════════════════════════════
#  Timing
# ═══════════════════════════════════════════════════════════════════════════════
DEFAULT_SPEEDUP         = 1.0       # Simulated time / wall-clock time
DEFAULT_RATE_HZ         = 250       # Tick rate at speedup 1.0
FPS_REPORT_EVERY        = 1000      # Ticks between achieved-rate log lines

# ═══════════════════════════════════════════════════════════════════════════════
#  State conversion limits
# ═══════════════════════════════════════════════════════════════════════════════
GRAVITY_MSS             = 9.80665
MAX_RATE_DEGPS          = 2000.0    # Gyro clamp before conversion to rad/s
MAX_ACCEL_MSS           = 16.0      # Per-axis clamp on derived body accel

# ═══════════════════════════════════════════════════════════════════════════════
#  Frame descriptor tokens
# ═══════════════════════════════════════════════════════════════════════════════
FRAME_TOKEN_HELI        = "heli"    # Swashplate demix + main-rotor RPM
FRAME_TOKEN_REV4        = "rev4"    # Swap servos 1-4 with 5-8 (quadplane)

# ═══════════════════════════════════════════════════════════════════════════════
#  MAVLink System / Component IDs
# ═══════════════════════════════════════════════════════════════════════════════
BRIDGE_SYSID            = 2         # This connector
BRIDGE_COMPID           = 1

FC_SYSID                = 1         # Flight controller under test
FC_COMPID               = 1

# ═══════════════════════════════════════════════════════════════════════════════
#  Network Endpoints — Bridge <-> Flight-Controller MAVLink (UDP)
# ═══════════════════════════════════════════════════════════════════════════════
BRIDGE_FC_LISTEN_PORT   = 14560     # Bridge binds; FC sends SERVO_OUTPUT_RAW here
FC_LISTEN_PORT          = 14561     # FC binds; Bridge sends HIL_STATE_QUATERNION here

HEARTBEAT_INTERVAL_S    = 1.0
STATUS_LOG_INTERVAL_S   = 5.0

# ═══════════════════════════════════════════════════════════════════════════════
#  GPS Home / Reference Point  (ArduPilot Canberra default)
#
#  Local position is North-East-Down metres relative to the first position
#  FlightAxis reports; it is projected onto a flat earth around this point.
# ═══════════════════════════════════════════════════════════════════════════════
GPS_HOME_LAT_DEG        = -35.3632621
GPS_HOME_LON_DEG        = 149.1652374
GPS_HOME_ALT_AMSL_M     = 584.0

EARTH_RADIUS_M          = 6378137.0
