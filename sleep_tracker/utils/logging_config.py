"""
Logging for the sleep tracker.

Every module logger feeds one queue; a single listener thread writes the
records to a rotating file under logs/ and to stdout. Records logged while a
request is active carry that request's id, so the lines of one API call can
be grepped out of the shared log.
"""
import logging
import os
import queue
import sys
import threading
import uuid
from logging.handlers import QueueHandler, QueueListener, RotatingFileHandler

from colorama import Fore, Style
from flask import g, has_request_context, request

if hasattr(sys.stdout, 'reconfigure'):
    sys.stdout.reconfigure(encoding='utf-8')

REQUEST_ID_HEADER = 'X-Request-ID'
NO_REQUEST_ID = '-'

# Prompts sent to Gemini and the advice it returns get their own levels so
# they can be filtered apart from request noise.
MODEL_USER_LEVEL = 26
MODEL_OUTPUT_LEVEL = 27

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] - %(message)s'
LOG_FILE_MAX_BYTES = 1048576
LOG_FILE_BACKUPS = 3

log_queue = queue.Queue()
log_lock = threading.Lock()
_listener = None
_console_handler = None
_pending_console_level = None


def _add_level(value, name):
    logging.addLevelName(value, name)

    def log_at_level(self, message, *args, **kwargs):
        if self.isEnabledFor(value):
            self._log(value, message, args, **kwargs)

    setattr(logging.Logger, name.lower(), log_at_level)


_add_level(MODEL_USER_LEVEL, "MODEL_USER")
_add_level(MODEL_OUTPUT_LEVEL, "MODEL_OUTPUT")


class RequestIdFilter(logging.Filter):
    """Stamps records with the active request's id. Runs in the caller's thread, before the record is queued."""

    def filter(self, record):
        if not hasattr(record, 'request_id'):
            request_id = None
            if has_request_context():
                request_id = g.get('request_id')
            record.request_id = request_id or NO_REQUEST_ID
        return True


def _assign_request_id():
    g.request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]


def _echo_request_id(response):
    request_id = g.get('request_id')
    if request_id:
        response.headers[REQUEST_ID_HEADER] = request_id
    return response


def init_request_logging(app):
    """Give each request an id (taken from X-Request-ID when the caller sends one) and echo it back."""
    app.before_request(_assign_request_id)
    app.after_request(_echo_request_id)


def logs_directory():
    logs_dir = os.environ.get('SLEEP_TRACKER_LOG_DIR') or os.path.join(os.getcwd(), 'logs')
    os.makedirs(logs_dir, exist_ok=True)
    return logs_dir


def _start_listener(log_file):
    global _listener, _console_handler

    if not os.path.isabs(log_file):
        log_file = os.path.join(logs_directory(), log_file)

    formatter = logging.Formatter(LOG_FORMAT)

    file_handler = RotatingFileHandler(
        log_file, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS,
        encoding='utf-8', delay=True,
    )
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    if _pending_console_level is not None:
        console_handler.setLevel(_pending_console_level)

    _console_handler = console_handler
    _listener = QueueListener(log_queue, file_handler, console_handler, respect_handler_level=True)
    _listener.start()


def get_logger(name: str, level=None, log_file="sleep_tracker.log"):
    """
    Module logger writing through the shared queue. The first call starts the
    listener; log_file is resolved against the logs directory.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level if level is not None else logging.DEBUG)
    logger.propagate = False

    if not any(isinstance(h, QueueHandler) for h in logger.handlers):
        queue_handler = QueueHandler(log_queue)
        queue_handler.addFilter(RequestIdFilter())
        logger.addHandler(queue_handler)

    with log_lock:
        if _listener is None:
            _start_listener(log_file)

    return logger


def parse_level(level_name):
    """'info', 'WARNING', 20 -> logging level int."""
    if isinstance(level_name, int):
        return level_name
    level = logging.getLevelName(str(level_name).strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {level_name!r}")
    return level


def set_console_level(level_name):
    """Console threshold from LOG_CONSOLE_LEVEL; the log file keeps everything."""
    global _pending_console_level
    level = parse_level(level_name)
    with log_lock:
        if _console_handler is None:
            _pending_console_level = level
        else:
            _console_handler.setLevel(level)


def log_standout_text(logger, content, title=None, color=Fore.LIGHTMAGENTA_EX):
    """Logs content in color at MODEL_OUTPUT, e.g. a finished Gemini answer."""
    body = f"{color}{content}{Style.RESET_ALL}"
    if title:
        body = f"{color}{title}{Style.RESET_ALL}\n{body}"
    logger.model_output(body)
