"""Multiconf example.

Binds `app.properties.*` configuration into a typed holder at startup.
"""

from __future__ import annotations

__all__ = [
    "__version__",
]

__version__ = "0.1.0"
