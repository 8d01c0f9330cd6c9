# logger.py
import os, glob, logging
from contextvars import ContextVar
from typing import Dict, Iterable

_ENTITY = ContextVar("entity", default="-")

# One log file per stage of the conversion pipeline.
LOGGER_NAMES = [
    "main",
    "parser",
    "converter",
    "variable",
    "rule",
    "membership",
]

FILE_FORMAT = "%(entity)-10s | %(levelname)s | %(name)s | %(message)s"
# The console only reports to the person running the conversion.
CONSOLE_FORMAT = "%(levelname)s: %(message)s"


def set_entity(entity: str) -> None:
    """Names the part of the model being converted, e.g. 'Input 2'."""
    _ENTITY.set(str(entity))


class EntityFilter(logging.Filter):
    def filter(self, record):
        # ensure every record has .entity
        record.entity = _ENTITY.get()
        return True


def _remove_rotated(log_dir: str) -> None:
    for path in glob.glob(os.path.join(log_dir, "*.log.*")):
        try: os.remove(path)
        except OSError: pass


def _reset(log: logging.Logger) -> None:
    for h in list(log.handlers):
        log.removeHandler(h)
        h.close()


def setup_logging(
    log_dir: str = "logs",
    overwrite: bool = True,
    log_level: int = logging.DEBUG,
    console_level: int = logging.INFO,
    cleanup_rotated: bool = True,
    logger_names: Iterable[str] = LOGGER_NAMES,
) -> Dict[str, str]:
    """
    Routes every pipeline logger to its own file in log_dir.

    Records are stamped with the entity set through set_entity, so a line in
    variable.log reads e.g. "Output 1   | INFO | variable | ...". Only the
    "main" logger also writes to the console.

    Returns:
        Dict[str, str]: Log file path by logger name.
    """
    os.makedirs(log_dir, exist_ok=True)
    if cleanup_rotated:
        _remove_rotated(log_dir)

    entity = EntityFilter()
    file_fmt = logging.Formatter(FILE_FORMAT)
    mode = "w" if overwrite else "a"

    paths = {}
    for name in logger_names:
        log = logging.getLogger(name)
        log.setLevel(log_level)
        log.propagate = False
        _reset(log)

        paths[name] = os.path.join(log_dir, f"{name}.log")
        fh = logging.FileHandler(paths[name], mode=mode, encoding="utf-8")
        fh.setFormatter(file_fmt)
        fh.setLevel(log_level)
        fh.addFilter(entity)
        log.addHandler(fh)

    if "main" in paths:
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
        console.setLevel(console_level)
        logging.getLogger("main").addHandler(console)
        logging.getLogger("main").debug("Logging to '%s'.", log_dir)
    return paths
