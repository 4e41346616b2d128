"""
safepulse — Personal safety SOS client core.

Sub-packages:
    core/       — config, logging, errors
    alerts/     — contacts, dispatch engine, call / message channels
    location/   — permission-gated location snapshots
    trigger/    — press-and-hold confirmation timer

Modules:
    session     — AlertSession: trigger → calls, share → messages
    app         — SafePulseController and create_controller()
"""
