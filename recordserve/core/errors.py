"""
Errors that stop the service from starting.
"""

from __future__ import annotations


# Startup failures are explicit and separable from per-row or per-request errors.
class StartupError(RuntimeError):
    pass
