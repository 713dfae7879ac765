# bakehouse/core/logging.py
import logging
import sys

# noisy below INFO even when the app runs at DEBUG
_QUIET = ("aiosqlite", "multipart", "httpcore")


def setup_logging(level: str = "INFO", *, log_sql: bool = False) -> None:
    """
    One stdout handler on the root logger, bakehouse.* loggers at `level`.

    log_sql=True lets SQL statements through (sqlalchemy.engine at INFO);
    otherwise the engine only reports warnings.
    """
    level = level.upper()
    root = logging.getLogger()
    root.setLevel(level)
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    root.addHandler(handler)

    logging.getLogger("bakehouse").setLevel(level)
    # audit fallback lines must survive a WARNING-level deployment
    logging.getLogger("bakehouse.audit").setLevel(min(logging.getLevelName(level), logging.INFO))

    logging.getLogger("uvicorn.access").setLevel(logging.INFO)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if log_sql else logging.WARNING)
    for name in _QUIET:
        logging.getLogger(name).setLevel(logging.INFO)
