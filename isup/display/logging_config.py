"""Logging configuration setup."""

import copy
import logging
import logging.config
import os
import sys
from datetime import datetime
from typing import Optional, Tuple

VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

BASE_LOG_CFG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple": {
            "format": ("%(asctime)s - %(name)22s:%(lineno)-4d - " "%(levelname)-7s - %(message)s"),
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "console_handler": {
            "class": "logging.StreamHandler",
            "level": "DEBUG",
            "formatter": "simple",
            "stream": "ext://sys.stderr",
        },
    },
    "loggers": {
        "isup": {
            "handlers": ["console_handler"],
            "propagate": False,
            "level": "INFO",
        },
        "uvicorn": {
            "handlers": ["console_handler"],
            "propagate": False,
            "level": "INFO",
        },
        "uvicorn.access": {
            "handlers": ["console_handler"],
            "propagate": False,
            "level": "WARNING",
        },
        "httpx": {
            "handlers": ["console_handler"],
            "propagate": False,
            "level": "WARNING",
        },
    },
    "root": {
        "handlers": ["console_handler"],
        "level": "WARNING",
    },
}


def setup_logging(log_lvl_str: str, log_dir: Optional[str] = None) -> Tuple[Optional[str], str]:
    """
    Set up the logging system.

    Logs go to stderr; when *log_dir* is given they are also written to a
    timestamped file inside it.

    Args:
        log_lvl_str: The desired log level string (e.g., 'debug', 'info').
        log_dir: Optional directory for a log file.

    Returns:
        A tuple of (log_file_path or None, validated_log_level).
    """
    log_lvl_valid = log_lvl_str.upper()
    if log_lvl_valid not in VALID_LEVELS:
        print(f"Warning: invalid log level '{log_lvl_str}'. Using 'INFO'.", file=sys.stderr)
        log_lvl_valid = "INFO"

    log_cfg: dict = copy.deepcopy(BASE_LOG_CFG)
    handlers = ["console_handler"]

    log_fpath: Optional[str] = None
    if log_dir:
        ts = datetime.now().strftime("%Y%m%d_%H%M%S")
        os.makedirs(log_dir, exist_ok=True)
        log_fpath = os.path.join(log_dir, f"isup_{ts}_{log_lvl_valid}.log")
        log_cfg["handlers"]["file_handler"] = {
            "class": "logging.FileHandler",
            "level": "DEBUG",
            "formatter": "simple",
            "filename": log_fpath,
            "encoding": "utf-8",
        }
        handlers.append("file_handler")

    for logger_cfg in log_cfg["loggers"].values():
        logger_cfg["handlers"] = list(handlers)
    log_cfg["root"]["handlers"] = list(handlers)

    log_cfg["loggers"]["isup"]["level"] = log_lvl_valid
    log_cfg["loggers"]["uvicorn"]["level"] = log_lvl_valid
    log_cfg["loggers"]["uvicorn.access"]["level"] = (
        "INFO" if log_lvl_valid == "DEBUG" else "WARNING"
    )
    log_cfg["loggers"]["httpx"]["level"] = "DEBUG" if log_lvl_valid == "DEBUG" else "WARNING"
    log_cfg["root"]["level"] = log_lvl_valid if log_lvl_valid == "DEBUG" else "WARNING"

    logging.config.dictConfig(log_cfg)
    return log_fpath, log_lvl_valid
