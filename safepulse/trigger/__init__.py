"""
trigger — SOS press-and-hold confirmation.

Modules:
    hold_timer  — HoldTimer state machine (IDLE → HOLDING → CONFIRMED)
"""
