"""Waitlist storage adapters.

Handlers depend on ``AbstractWaitlistRepository``; the in-memory repository
serves single-process deployments and tests.
"""
