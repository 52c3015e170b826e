"""
Vibe Pulse: venue vibe telemetry, real-time distribution, and map aggregation.

Samples ambient audio/motion signals, fuses them into a signed vibe reading
submitted on a fixed cadence, fans real-time vibe updates out over one shared
connection, and clusters received pulses into a zoom-adaptive grid for display.
Modular layout: telemetry (producer), realtime (distribution channel),
aggregation (spatial consumer), relay (local development gateway).
"""

__version__ = "0.1.0"
