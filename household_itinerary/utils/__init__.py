# File: utils/__init__.py
"""Pure Python utilities for the itinerary engine.

Nothing in this package imports engines, managers or the store, so every
function can be unit tested in isolation.

Submodules:
    - dt_utils: Date/time parsing, timezone conversion, weekday and "HH:MM" helpers

Usage:
    from . import dt_utils
    from .utils.dt_utils import dt_parse
"""

from . import dt_utils

__all__ = ["dt_utils"]
