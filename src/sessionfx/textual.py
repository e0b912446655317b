"""Textual integration for sessionfx. Opt-in: requires textual.

Inbound: input_handler() turns (widget_id, value) pairs from Textual event
handlers into session writes, marshaling calls from worker threads with
app.call_from_thread.

Outbound: guarded() wraps a render function so it is skipped while the app
is not running or is paused for widget replacement, and ignores NoMatches
from widget queries. on_change/on_event register effects with guarded
renders.
"""

import threading
from contextlib import contextmanager

from textual.css.query import NoMatches

# Module-owned pause state, keyed by id(app) so multiple apps work in tests.
_paused_apps: set[int] = set()


@contextmanager
def pause(app):
    """Suspend guarded renders during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def guarded(app, render):
    """Wrap render so it only touches widgets when the app can take it."""
    _main = threading.get_ident()

    def _guarded(value):
        if not is_safe(app):
            return
        if threading.get_ident() != _main:
            app.call_from_thread(_safe, value)
        else:
            _safe(value)

    def _safe(value):
        try:
            render(value)
        except NoMatches:
            pass

    return _guarded


def input_handler(app, session, inputs):
    """Return handler(widget_id, value) that delivers widget events to session.

    Usage inside a Textual App:
        self.deliver = input_handler(self, session, inputs)

        def on_select_changed(self, event):
            self.deliver(event.select.id, event.value)
    """
    _main = threading.get_ident()
    session.set_scheduler(app.call_from_thread)

    def _handle(widget_id, value=None):
        if threading.get_ident() != _main:
            app.call_from_thread(inputs.deliver, session, widget_id, value)
        else:
            inputs.deliver(session, widget_id, value)

    return _handle


def on_change(app, session, name, dependencies, callback, render):
    """session.on_change() with a Textual-safe render."""
    return session.on_change(name, dependencies, callback, render=guarded(app, render))


def on_event(app, session, name, triggers, callback, render):
    """session.on_event() with a Textual-safe render."""
    return session.on_event(name, triggers, callback, render=guarded(app, render))
