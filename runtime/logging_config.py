import logging
from typing import Optional

LOGGER_NAME = "asa_optimizer"

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _with_format(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FORMAT))
    return handler


def setup_logging(
    log_file: Optional[str],
    *,
    quiet: bool = False,
    debug: bool = False,
    append: bool = False,
) -> logging.Logger:
    """Configure and return the shared `asa_optimizer` logger.

    No file is written unless `log_file` is given. With `debug` the per-step
    temperature and acceptance records reach both the file and the console;
    otherwise only INFO and above (reanneals, stopping) are emitted.
    Calling it again replaces the handlers from the previous call.
    """
    logger = logging.getLogger(LOGGER_NAME)
    # pytest's caplog hooks the root logger, so records must keep propagating
    # even when the console handler is suppressed.
    logger.propagate = True
    level = logging.DEBUG if debug else logging.INFO
    logger.setLevel(level)

    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()

    if log_file:
        try:
            handler = logging.FileHandler(log_file, mode="a" if append else "w")
        except OSError as exc:
            print(f"[logging] Could not open log file '{log_file}': {exc}")
        else:
            logger.addHandler(_with_format(handler, level))

    if not quiet:
        logger.addHandler(_with_format(logging.StreamHandler(), level))

    return logger
