"""
Core package for webpoll.
Lightweight package init to avoid import cycles.

Consumers should import submodules directly, e.g.:
  from webpoll.core.retry import retry, wait_until
  from webpoll.core.actions import click, text_equals
  from webpoll.core.forms import fill_form
"""

__all__: list[str] = []
