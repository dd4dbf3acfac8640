"""Rate limiting adapters.

This package provides a small abstraction layer so handlers start with an
in-memory fixed-window store and can later move to Redis or another shared
store without changing the request-protection layer.
"""
