"""
alerts — Emergency contacts and multi-channel SOS dispatch.

Sub-modules:
    channels/   — Per-channel backends (voice call, text message)
    contacts    — ContactRegistry and the call / message recipient sets
    dispatch    — DispatchEngine: per-recipient fan-out, share message
    models      — Data structures shared across the system
"""
