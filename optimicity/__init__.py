"""
OptimiCity - Resistance Simulation Engine

A real-time simulation of a resistance movement struggling against an
autonomous "AI Mayor". The engine owns a single world state per session and
provides:
- Cooldown gating for player actions
- Risk and casualty computation
- Population-scaled recruitment
- A currency economy (action pricing, mining, burst income)
- Adversary detection, escalation and the heat ratchet
- Victory/defeat evaluation
"""

__version__ = "0.1.0"
