"""
channels — Per-channel dispatch backends.

    call  — Dialer implementations (simulation, tel: URI)
    sms   — MessageSender implementations (simulation, HTTP gateway)

Channels start one dispatch to one number. Per-recipient isolation and
batching live in alerts.dispatch.
"""
