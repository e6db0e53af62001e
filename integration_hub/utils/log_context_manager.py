from contextvars import ContextVar
from typing import Dict

_current_context: ContextVar[Dict] = ContextVar("hub_log_context", default={})


class LoggingContextHandler:
    """
    context handler, which holds the stack of contexts added for the current
    request. Contexts are kept in a ContextVar so that concurrent webhook
    deliveries (threads of the web server, asyncio tasks) never see each
    other's keys.
    """

    def add_context(self, **new_context_vars):
        old_context = _current_context.get()
        return _current_context.set({**old_context, **new_context_vars})

    def get(self, key):
        return _current_context.get().get(key)

    def get_current_context(self) -> Dict:
        return _current_context.get()

    def remove_context(self, token=None):
        if token is not None:
            _current_context.reset(token)
        else:
            _current_context.set({})

    def __str__(self):
        return str(_current_context.get())


logging_context_handler = LoggingContextHandler()
