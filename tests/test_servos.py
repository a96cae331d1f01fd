import numpy as np
import pytest

from flightaxis.servos import FrameOptions, map_servos

PLAIN = FrameOptions()


def test_pulses_scaled_without_clamping():
    out = map_servos([1000, 1500, 2000, 1250, 900, 2100, 1100, 1900], PLAIN)
    np.testing.assert_allclose(out, [0.0, 0.5, 1.0, 0.25, -0.1, 1.1, 0.1, 0.9])


def test_rev4_swaps_servo_blocks():
    pulses = [1100, 1200, 1300, 1400, 1500, 1600, 1700, 1800]
    out = map_servos(pulses, FrameOptions(rev4_servos=True))
    np.testing.assert_allclose(out, [0.5, 0.6, 0.7, 0.8, 0.1, 0.2, 0.3, 0.4])


def test_heli_demix_swashplate():
    pulses = [1700, 1300, 1500, 1400, 1600, 1000, 1000, 1000]
    out = map_servos(pulses, FrameOptions(heli_demix=True))
    # roll = 0.7 - 0.3, pitch = -((0.7 + 0.3) / 2 - 0.5)
    assert out[0] == pytest.approx(0.9)
    assert out[1] == pytest.approx(0.5)
    np.testing.assert_allclose(out[2:], [0.5, 0.4, 0.6, 0.0, 0.0, 0.0])


def test_heli_demix_clamps_outputs():
    out = map_servos([2000, 1000, 2000, 1500, 1500, 1500, 1500, 1500],
                     FrameOptions(heli_demix=True))
    # roll = 1.0 -> 1.5 clamped; pitch = -(0.5 - 1.0) = 0.5 -> 1.0
    assert out[0] == 1.0
    assert out[1] == 1.0

    out = map_servos([1000, 2000, 1000, 1500, 1500, 1500, 1500, 1500],
                     FrameOptions(heli_demix=True))
    assert out[0] == 0.0
    assert out[1] == pytest.approx(0.0)


def test_rev4_applied_before_demix():
    pulses = [1000, 1000, 1000, 1000, 1700, 1300, 1500, 1500]
    out = map_servos(pulses, FrameOptions(heli_demix=True, rev4_servos=True))
    assert out[0] == pytest.approx(0.9)
    assert out[1] == pytest.approx(0.5)
    np.testing.assert_allclose(out[4:], [0.0, 0.0, 0.0, 0.0])


@pytest.mark.parametrize("count", [4, 7, 9, 16])
def test_wrong_pulse_count_is_an_error(count):
    with pytest.raises(ValueError):
        map_servos([1500] * count, PLAIN)


@pytest.mark.parametrize("frame, heli, rev4", [
    ("", False, False),
    ("heli", True, False),
    ("heli-dual", True, False),
    ("quadplane-rev4", False, True),
    ("heli-rev4", True, True),
    ("plane", False, False),
])
def test_frame_options_from_frame(frame, heli, rev4):
    opts = FrameOptions.from_frame(frame)
    assert opts.heli_demix is heli
    assert opts.rev4_servos is rev4
