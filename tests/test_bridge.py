import math

import numpy as np
import pytest

from flightaxis import config as cfg
from flightaxis.aircraft import Aircraft, dcm_from_euler, euler_from_dcm, quaternion_from_euler
from flightaxis.bridge import SERVO_IDLE_PWM, MAVLinkManager, hil_state_quaternion_fields, main, run
from flightaxis.flightaxis import FlightAxis

from conftest import FakeFlightAxis, make_reply


class FakeMsg:

    def __init__(self, mtype, **fields):
        self._type = mtype
        self.__dict__.update(fields)

    def get_type(self):
        return self._type


class FakeMav:

    def __init__(self):
        self.sent = []

    def __getattr__(self, name):
        def send(*args):
            self.sent.append((name, args))
        return send


class FakeLink:
    """Mimics the parts of a pymavlink connection the bridge uses."""

    def __init__(self, messages=()):
        self.messages = list(messages)
        self.mav = FakeMav()
        self.closed = False

    def recv_match(self, blocking=False):
        return self.messages.pop(0) if self.messages else None

    def close(self):
        self.closed = True


def servo_msg(*pwm):
    return FakeMsg("SERVO_OUTPUT_RAW", **{f"servo{i + 1}_raw": v for i, v in enumerate(pwm)})


def test_poll_fc_reads_servo_outputs():
    link = FakeLink([FakeMsg("HEARTBEAT"),
                     servo_msg(1100, 1200, 1300, 1400, 1500, 1600, 1700, 1800),
                     servo_msg(1000, 1000, 1000, 1000, 1000, 1000, 1000, 1900)])
    mav = MAVLinkManager(link, link)
    assert mav.servos == [SERVO_IDLE_PWM] * 8

    mav.poll_fc()
    assert mav.fc_heartbeat_ok
    assert mav.servo_updates == 2
    assert mav.servos == [1000] * 7 + [1900]


def test_hil_state_fields_units():
    ac = Aircraft()
    ac.dcm = dcm_from_euler(0.1, -0.2, 0.3)
    ac.gyro = np.array([0.01, 0.02, -0.03])
    ac.velocity_ef = np.array([1.234, -0.5, 0.2])
    ac.accel_body = np.array([0.0, 0.0, -cfg.GRAVITY_MSS])
    ac.airspeed = 12.34
    ac.position = np.array([0.0, 0.0, -2.5])
    ac.update_position()

    fields = hil_state_quaternion_fields(ac, 123456)
    assert len(fields) == 16
    (time_usec, quat, p, q, r, lat, lon, alt,
     vx, vy, vz, ias, tas, xacc, yacc, zacc) = fields
    assert time_usec == 123456
    np.testing.assert_allclose(quat, quaternion_from_euler(0.1, -0.2, 0.3))
    assert (p, q, r) == pytest.approx((0.01, 0.02, -0.03))
    assert lat == round(cfg.GPS_HOME_LAT_DEG * 1e7)
    assert lon == round(cfg.GPS_HOME_LON_DEG * 1e7)
    assert alt == round((cfg.GPS_HOME_ALT_AMSL_M + 2.5) * 1000)
    assert (vx, vy, vz) == (123, -50, 20)
    assert ias == tas == 1234
    assert (xacc, yacc, zacc) == (0, 0, -1000)


def test_euler_round_trip_through_dcm():
    angles = (0.2, -0.4, 2.5)
    assert euler_from_dcm(dcm_from_euler(*angles)) == pytest.approx(angles)


def test_quaternion_matches_dcm():
    roll, pitch, yaw = 0.3, 0.1, -1.2
    w, x, y, z = quaternion_from_euler(roll, pitch, yaw)
    from_quat = np.array([
        [1 - 2 * (y * y + z * z), 2 * (x * y - w * z),     2 * (x * z + w * y)],
        [2 * (x * y + w * z),     1 - 2 * (x * x + z * z), 2 * (y * z - w * x)],
        [2 * (x * z - w * y),     2 * (y * z + w * x),     1 - 2 * (x * x + y * y)],
    ])
    np.testing.assert_allclose(from_quat, dcm_from_euler(roll, pitch, yaw), atol=1e-12)
    assert math.isclose(w * w + x * x + y * y + z * z, 1.0)


def test_run_forwards_servos_and_state():
    server = FakeFlightAxis([make_reply({"m-roll-DEG": 10.0})] * 3)
    sim = FlightAxis(frame_str="", speedup=0.001, client=server.client())
    link = FakeLink([servo_msg(*([2000] * 8))])
    mav = MAVLinkManager(link, link)

    run(sim, mav, max_ticks=3)

    assert server.actions.count("ExchangeData") == 3
    assert "<item>1.0000</item>" in server.requests[-1][1].decode()
    names = [name for name, _ in link.mav.sent]
    assert names.count("hil_state_quaternion_send") == 3
    assert names.count("heartbeat_send") >= 1
    assert link.closed


@pytest.mark.parametrize("speedup", ["0", "-2"])
def test_main_rejects_non_positive_speedup(speedup, capsys):
    with pytest.raises(SystemExit) as exc:
        main(["--speedup", speedup])
    assert exc.value.code == 2
    assert "--speedup must be positive" in capsys.readouterr().err
