"""
Logger factory. Every module logger is a child of ``storyframe`` and shares
its single stdout handler.

LOG_LEVEL (default INFO) sets the level; LOG_FORMAT=plain drops timestamps.
"""
import logging
import sys
import os

ROOT_NAME = "storyframe"

_FORMATS = {
    "default": "%(asctime)s [%(name)s] %(levelname)s %(message)s",
    "plain": "[%(name)s] %(levelname)s %(message)s",
}


def _root_logger() -> logging.Logger:
    root = logging.getLogger(ROOT_NAME)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        fmt = _FORMATS.get(os.getenv("LOG_FORMAT", "default"), _FORMATS["default"])
        handler.setFormatter(logging.Formatter(fmt, datefmt="%Y-%m-%d %H:%M:%S"))
        root.addHandler(handler)
        set_level(os.getenv("LOG_LEVEL", "INFO"))
    return root


def set_level(level: str) -> None:
    logging.getLogger(ROOT_NAME).setLevel(getattr(logging, level.upper(), logging.INFO))


def get_logger(name: str) -> logging.Logger:
    _root_logger()
    return logging.getLogger(f"{ROOT_NAME}.{name}")
