import logging
import sys
from pathlib import Path

from ulid import ULID

LOG_FORMAT = "%(asctime)s %(levelname)s:%(name)s:%(message)s"


def verbosity_to_level(verbose: int) -> int:
    """0 = warnings only, 1 = info, 2+ = debug."""
    if verbose <= 0:
        return logging.WARNING
    if verbose == 1:
        return logging.INFO
    return logging.DEBUG


def setup_logging(log_dir: Path, verbose: int = 1) -> tuple[logging.Logger, Path, str]:
    """
    Configure the root logger for one run.

    Console output follows the requested verbosity; every record, DEBUG
    included, also goes to `run_<ulid>.log` inside log_dir.

    Returns:
        (logger, log_path, run_id)
    """
    run_id = str(ULID())
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / f"run_{run_id}.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(verbosity_to_level(verbose))
    console.setFormatter(logging.Formatter("%(levelname)s:%(name)s:%(message)s"))
    root.addHandler(console)

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(file_handler)

    logger = logging.getLogger("studydeck")
    logger.debug(f"Run {run_id} logging to {log_path}")
    return logger, log_path, run_id
