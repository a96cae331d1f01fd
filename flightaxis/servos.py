"""
Servo pulse → FlightAxis channel mapping.

FlightAxis takes eight 0..1 controller channels.  The flight controller
produces PWM pulses (1000..2000 µs), and some airframes need the channels
rearranged before RealFlight sees them.
"""

import numpy as np

from . import config as cfg


class FrameOptions:
    """Behaviour switches derived from the frame descriptor string."""

    __slots__ = ("heli_demix", "rev4_servos")

    def __init__(self, heli_demix: bool = False, rev4_servos: bool = False):
        self.heli_demix = heli_demix
        self.rev4_servos = rev4_servos

    @classmethod
    def from_frame(cls, frame_str: str) -> "FrameOptions":
        return cls(heli_demix=cfg.FRAME_TOKEN_HELI in frame_str,
                   rev4_servos=cfg.FRAME_TOKEN_REV4 in frame_str)

    def __repr__(self):
        return f"FrameOptions(heli_demix={self.heli_demix}, rev4_servos={self.rev4_servos})"


def map_servos(pulses, options: FrameOptions) -> np.ndarray:
    """
    Return the eight channel values to send to FlightAxis.

    Pulses are scaled with ``(p - 1000) / 1000`` and not clamped.  With
    ``rev4_servos`` channels 1-4 and 5-8 trade places (quadplane testing).
    With ``heli_demix`` the first three channels are treated as swashplate
    servos and turned back into the roll / pitch inputs FlightAxis expects;
    collective and yaw pass through.
    """
    pulses = np.asarray(pulses, dtype=np.float64)
    if pulses.shape != (cfg.NUM_CHANNELS,):
        raise ValueError(f"need {cfg.NUM_CHANNELS} servo pulses, got {pulses.size}")
    scaled = (pulses - 1000.0) / 1000.0

    if options.rev4_servos:
        scaled = np.concatenate((scaled[4:8], scaled[0:4]))

    if options.heli_demix:
        swash1, swash2, swash3 = scaled[0], scaled[1], scaled[2]
        roll_rate = swash1 - swash2
        pitch_rate = -((swash1 + swash2) / 2.0 - swash3)
        scaled[0] = np.clip(roll_rate + 0.5, 0.0, 1.0)
        scaled[1] = np.clip(pitch_rate + 0.5, 0.0, 1.0)

    return scaled
