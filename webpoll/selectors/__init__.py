# webpoll/selectors/__init__.py
"""
Selectors package
-----------------
Normalises caller locator input (strings, single-key dicts, elements) into
Selenium lookups.
"""

from .locator import Locator, LocatorStrategy, describe, resolve, resolve_all, to_locator

__all__ = [
    "Locator",
    "LocatorStrategy",
    "describe",
    "resolve",
    "resolve_all",
    "to_locator",
]
