"""
Logging for the Baseline ETo builder.

Console lines are for the operator; the JSON Lines files carry pass
statistics, range bounds and step timings for later inspection. Every
record is stamped with the run_id of the build that produced it.

Modules call get_pipeline_logger(__name__); only the CLI entry point calls
setup_logging() with a run directory.
"""

import json
import logging
import os
import time
import uuid
from logging.handlers import RotatingFileHandler


_run_id = None

# ``extra=`` keys that JsonFormatter copies into the entry.
_STRUCTURED_KEYS = (
    "step_name",
    "pass_number",
    "statistics",
    "bounds",
    "input_summary",
    "output_summary",
    "timing_seconds",
    "warnings",
)

_configured = False
_run_dir_handler = None


def get_run_id():
    global _run_id
    if _run_id is None:
        _run_id = str(uuid.uuid4())[:8]
    return _run_id


def set_run_id(run_id=None):
    """Start a new build: use *run_id* or draw a fresh one."""
    global _run_id
    _run_id = run_id or str(uuid.uuid4())[:8]
    return _run_id


class RunIdFilter(logging.Filter):
    def filter(self, record):
        record.run_id = get_run_id()
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per record, plus any known structured extras."""

    def format(self, record):
        entry = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S.") +
                         f"{int(record.msecs):03d}",
            "level": record.levelname,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "run_id": getattr(record, "run_id", None),
            "message": record.getMessage(),
        }
        for key in _STRUCTURED_KEYS:
            if hasattr(record, key):
                entry[key] = getattr(record, key)
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _attach(root, handler, level, formatter):
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(RunIdFilter())
    root.addHandler(handler)
    return handler


def setup_logging(run_dir=None, log_dir=None):
    """Attach the console and rotating-file handlers, once per process.

    The console level comes from LOG_LEVEL (default INFO). The rotating
    ``pipeline.log`` goes to *log_dir*, else BASELINE_ETO_LOG_DIR, else
    ``./logs``. When *run_dir* is given, that build's records are also
    written to ``<run_dir>/pipeline.jsonl``; only the first run directory
    is attached.
    """
    global _configured, _run_dir_handler

    root = logging.getLogger()

    if not _configured:
        root.setLevel(logging.DEBUG)
        level = os.environ.get("LOG_LEVEL", "INFO").upper()
        _attach(root, logging.StreamHandler(),
                getattr(logging, level, logging.INFO),
                logging.Formatter("%(asctime)s [%(levelname)s] %(message)s",
                                  datefmt="%Y-%m-%d %H:%M:%S"))

        if log_dir is None:
            log_dir = os.environ.get(
                "BASELINE_ETO_LOG_DIR", os.path.join(os.getcwd(), "logs")
            )
        os.makedirs(log_dir, exist_ok=True)
        _attach(root,
                RotatingFileHandler(os.path.join(log_dir, "pipeline.log"),
                                    maxBytes=10 * 1024 * 1024, backupCount=3),
                logging.DEBUG, JsonFormatter())
        _configured = True

    if run_dir and _run_dir_handler is None:
        os.makedirs(run_dir, exist_ok=True)
        _run_dir_handler = _attach(
            root, logging.FileHandler(os.path.join(run_dir, "pipeline.jsonl")),
            logging.DEBUG, JsonFormatter())


def reset_logging():
    """Detach and close every root handler and forget the run_id."""
    global _configured, _run_dir_handler, _run_id

    root = logging.getLogger()
    for handler in root.handlers[:]:
        handler.close()
        root.removeHandler(handler)

    _configured = False
    _run_dir_handler = None
    _run_id = None


def get_pipeline_logger(name):
    if not _configured:
        setup_logging()
    return logging.getLogger(name)


def log_step_summary(logger, step_name, status="success", input_summary=None,
                     output_summary=None, timing_seconds=None,
                     warnings_list=None):
    """Emit one INFO line per finished stage, e.g. ``[fill_passes] success (4.2s)``.

    The summaries, timing and warnings are written to the JSON logs as
    structured fields.
    """
    parts = [f"[{step_name}] {status}"]
    if timing_seconds is not None:
        parts.append(f"({timing_seconds:.1f}s)")
    if output_summary:
        parts.append(f"output={output_summary}")

    extra = {"step_name": step_name}
    if input_summary:
        extra["input_summary"] = input_summary
    if output_summary:
        extra["output_summary"] = output_summary
    if timing_seconds is not None:
        extra["timing_seconds"] = timing_seconds
    if warnings_list:
        extra["warnings"] = warnings_list

    logger.info(" ".join(parts), extra=extra)


class StepTimer:
    """Wall-clock seconds spent inside the ``with`` block, as ``elapsed``."""

    def __enter__(self):
        self.start = time.perf_counter()
        return self

    def __exit__(self, *args):
        self.elapsed = time.perf_counter() - self.start
