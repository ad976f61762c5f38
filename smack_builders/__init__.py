"""Asynchronous build-job service: job store, build queue and builder backends."""

__version__ = "0.3.0"
