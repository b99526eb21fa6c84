"""Vintage computer registry: per-owner inventory with CSV export and import.

The ASGI application lives in :mod:`registry.main`; importing this package
does not build it.
"""
