"""Routines, a selector-driven event loop, timers and threading utilities for RPC services."""

__version__ = "0.1.0"