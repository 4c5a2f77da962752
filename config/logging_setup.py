"""
Logging bootstrap shared by the API and the CLI.

Log records are handed to a QueueHandler on the root logger and written out
by a QueueListener thread. Emitting a record only puts it on a queue, so a
slow or broken stream never stalls a resize. A failing handler is reported
by logging's own handleError() and is never raised into the caller.
"""

import atexit
import logging
import logging.handlers
import queue
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_listener: Optional[logging.handlers.QueueListener] = None
_queue_handler: Optional[logging.handlers.QueueHandler] = None


def configure_logging(level: str = "INFO") -> None:
    """Install the queue-backed root handler. Safe to call more than once."""
    global _listener, _queue_handler

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    if _listener is not None:
        return

    log_queue: queue.SimpleQueue = queue.SimpleQueue()
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    _queue_handler = logging.handlers.QueueHandler(log_queue)
    root.addHandler(_queue_handler)
    _listener = logging.handlers.QueueListener(
        log_queue, stream_handler, respect_handler_level=True
    )
    _listener.start()
    atexit.register(shutdown_logging)


def shutdown_logging() -> None:
    """Flush queued records and stop the listener thread."""
    global _listener, _queue_handler
    if _queue_handler is not None:
        logging.getLogger().removeHandler(_queue_handler)
        _queue_handler = None
    if _listener is not None:
        _listener.stop()
        _listener = None
