"""
webpoll
-------
Polling WebDriver automation: every action and query re-resolves its target
and retries until it succeeds or a time budget runs out.

Consumers normally import either the explicit-context core:
  from webpoll.core import actions, browser, forms
  from webpoll.core.context import ExecutionContext
or the ambient wrappers:
  from webpoll import api
  from webpoll.session import driver_scope
"""

__version__ = "0.1.0"

__all__: list[str] = ["__version__"]
