import ujson as json
import logging
import os
import socket
import threading
import traceback
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from logging import handlers
from typing import Any, Dict, Optional, Union

from integration_hub import consts
import integration_hub.utils.repo_info as repo_info
from integration_hub.utils.log_context_manager import logging_context_handler
from integration_hub.utils.strings import str2bool

_log_lock = threading.Lock()
_log_was_setup = False
_log_setup_location = ""

JSON_KEYS = ("asctime", "name", "filename", "lineno", "threadName", "levelname", "message", "exc_info")
HUMAN_FORMAT = "%(asctime)s - %(name)s - %(filename)s:%(lineno)d - %(thread)d - %(levelname)s - %(message)s"
MAX_LOG_BYTES = 16 * 1024 * 1024
MAX_JSON_LOG_BYTES = 4 * 1024 * 1024


@dataclass
class OriginInfo:
    service: str
    version: str
    instance: str = field(default_factory=socket.gethostname)


@dataclass
class LogSettings:
    create_debug_log: bool
    create_fs_log: bool
    create_remote_log: bool
    main_log_severity: int
    remote_log_severity: int
    console_log_format: str


class HubJsonFormatter(logging.Formatter):
    """One JSON object per record, merged with the active logging_context keys."""

    def __init__(self, keys=JSON_KEYS, origin_info: Optional[OriginInfo] = None):
        super().__init__()
        self.keys = set(keys)
        self.origin_info = origin_info

    def format(self, record: logging.LogRecord) -> str:
        output = {k: str(v) for k, v in record.__dict__.items() if k in self.keys and v is not None}
        if "asctime" in self.keys:
            output.setdefault("asctime", self.formatTime(record, self.datefmt))
        if "exc_info" in self.keys and record.exc_info:
            output["exc_info"] = self.formatException(record.exc_info)

        output.update(logging_context_handler.get_current_context())
        output["message"] = record.msg if isinstance(record.msg, dict) else record.getMessage()
        if self.origin_info:
            output["origin"] = self.origin_info.__dict__

        return json.dumps(output, escape_forward_slashes=False, default=str)


@contextmanager
def logging_context(context: Union[Any, Dict]):
    """
    Adds keys to every JSON record logged inside the block, e.g.

        with logging_context({"integration_id": integration_id, "channel": "telegram"}):
            logger.info("stored")

    Accepts a dict or a dataclass instance; None values are dropped.
    """
    source = context if isinstance(context, dict) else context.__dict__
    token = logging_context_handler.add_context(**{k: v for k, v in source.items() if v is not None})
    try:
        yield
    finally:
        logging_context_handler.remove_context(token)


def _env_settings(create_debug_log, create_fs_log, create_remote_log,
                  main_log_severity, remote_log_severity, console_log_format) -> LogSettings:
    env = os.environ
    settings = LogSettings(
        create_debug_log=str2bool(env.get(consts.ENABLE_DEBUG_LOG, str(create_debug_log))),
        create_fs_log=str2bool(env.get(consts.ENABLE_LOCAL_LOG, str(create_fs_log))),
        create_remote_log=str2bool(env.get(consts.ENABLE_REMOTE_LOG, str(create_remote_log))),
        main_log_severity=int(env.get(consts.LOCAL_LOG_MIN_SEVERITY, main_log_severity)),
        remote_log_severity=int(env.get(consts.REMOTE_LOG_MIN_SEVERITY, remote_log_severity)),
        console_log_format=env.get(consts.LOGGING_FORMAT_ENV, console_log_format),
    )
    if settings.console_log_format not in (consts.LOCAL_LOGGING, consts.REMOTE_LOGGING):
        raise ValueError(f"Invalid value for console_log_format ({settings.console_log_format}) should be either "
                         f"{consts.LOCAL_LOGGING} or {consts.REMOTE_LOGGING}")
    return settings


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter,
                      max_bytes: int = MAX_LOG_BYTES, backup_count: int = 16) -> logging.Handler:
    handler = handlers.RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logger(log_location=None,
                 log_name=None,
                 main_log_severity=logging.INFO,
                 console_log_severity=logging.INFO,
                 console_log_format: str = consts.LOCAL_LOGGING,
                 create_debug_log=False,
                 create_fs_log=True,
                 create_console_log=True,
                 create_remote_log=False,
                 remote_log_severity=logging.INFO,
                 origin_info: Optional[OriginInfo] = None):
    """Configure the root logger once per process; entry points call this, library modules never do.

    File logs go to `log_location` (default `<repo>/logs`) as `<log_name>.log`,
    `<log_name>_errors.log` and optionally `<log_name>_debug.log` and the JSON
    `<log_name>_json.log` meant for a log shipper.

    Environment overrides (names in integration_hub.consts):
     * HUB_ENABLE_DEBUG_LOG, HUB_ENABLE_LOCAL_LOG, HUB_ENABLE_REMOTE_LOG (bool)
     * HUB_LOCAL_LOG_SEVERITY, HUB_REMOTE_LOG_SEVERITY (int, e.g. 20 for INFO)
     * LOGGING_FORMAT_ENV (LOCAL or REMOTE) for the console
    """
    global _log_was_setup
    global _log_setup_location

    with _log_lock:
        if _log_was_setup:
            logging.root.warning(f"Logger was already set up, ignoring additional setup! "
                                 f"Previously initialized here: {_log_setup_location}")
            return

        settings = _env_settings(create_debug_log, create_fs_log, create_remote_log,
                                 main_log_severity, remote_log_severity, console_log_format)
        json_formatter = HubJsonFormatter(origin_info=origin_info)
        human_formatter = logging.Formatter(HUMAN_FORMAT)
        logging.root.setLevel(logging.DEBUG)

        if settings.create_fs_log:
            log_dir = Path(log_location or Path(repo_info.repo_root()) / "logs")
            log_name = log_name or repo_info.repo_name()
            os.makedirs(log_dir, exist_ok=True)

            logging.root.addHandler(_rotating_handler(log_dir / f"{log_name}.log",
                                                      settings.main_log_severity, human_formatter))
            logging.root.addHandler(_rotating_handler(log_dir / f"{log_name}_errors.log",
                                                      logging.ERROR, human_formatter))
            if settings.create_debug_log:
                logging.root.addHandler(_rotating_handler(log_dir / f"{log_name}_debug.log",
                                                          logging.DEBUG, human_formatter))
            if settings.create_remote_log:
                logging.root.addHandler(_rotating_handler(log_dir / f"{log_name}_json.log",
                                                          settings.remote_log_severity, json_formatter,
                                                          max_bytes=MAX_JSON_LOG_BYTES, backup_count=2))

        if create_console_log:
            stream_handler = logging.StreamHandler()
            stream_handler.setLevel(console_log_severity)
            use_json = settings.console_log_format == consts.REMOTE_LOGGING
            stream_handler.setFormatter(json_formatter if use_json else human_formatter)
            logging.root.addHandler(stream_handler)

        _log_setup_location = "".join(traceback.format_stack())
        _log_was_setup = True


def get_logger(logger_name=None):
    return logging.getLogger(logger_name or repo_info.repo_name())
