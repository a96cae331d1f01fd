"""
FlightAxis HIL Connector
========================
Keeps a flight controller's simulated aircraft in step with RealFlight
through the FlightAxis SOAP interface.

Modules
-------
config      Shared constants (endpoint, timeouts, limits, MAVLink IDs, ports)
transport   TCP connection with timeout-bounded receives
soap        Request framing, reply reading, SOAP client and errors
reply       FlightAxis state fields and reply decoding
servos      Servo pulse → FlightAxis channel mapping
aircraft    Kinematic state base class and rotation helpers
flightaxis  Per-tick synchronizer (main simulator backend)
bridge      MAVLink HIL bridge (main entry point)
"""
