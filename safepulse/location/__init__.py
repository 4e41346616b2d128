"""
location — Permission-gated, one-shot geolocation.

Modules:
    provider  — LocationProvider plus simulated platform adapters
"""
