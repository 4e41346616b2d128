"""
Core package — cross-cutting concerns.

Modules:
    config          — environment variables & settings
    logging_config  — structured logging, episode context
    errors          — exception hierarchy & user-facing notices
"""
