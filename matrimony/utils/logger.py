import logging
import os
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from matrimony.core.config import settings


# ── column widths ─────────────────────────────────────────────────────────────
_W_SERIAL  = 6
_W_DATE    = 12
_W_TIME    = 10
_W_LEVEL   = 8
_W_ACCOUNT = 20
_W_EMAIL   = 28
_W_MODULE  = 25
_W_EVENT   = 40
_SEP       = " | "
_TOTAL_WIDTH = (
    _W_SERIAL + _W_DATE + _W_TIME + _W_LEVEL
    + _W_ACCOUNT + _W_EMAIL + _W_MODULE + _W_EVENT
    + len(_SEP) * 7
)


class StructuredFileHandler(logging.FileHandler):
    """File handler that writes logs as fixed-width, human-readable columns.

    Column layout:
        Serial | Date | Time | Level | Account | Email | Module/Function | Event
    """

    def __init__(self, log_file_path: str):
        super().__init__(log_file_path, mode="a", encoding="utf-8")
        self.log_counter = self._get_next_serial_number()
        self._ensure_header_exists()

    # ── helpers ───────────────────────────────────────────────────────────────

    def _get_next_serial_number(self) -> int:
        try:
            if os.path.exists(self.baseFilename) and os.path.getsize(self.baseFilename) > 0:
                with open(self.baseFilename, "r", encoding="utf-8") as f:
                    for line in reversed(f.readlines()):
                        parts = line.split(_SEP)
                        if parts and parts[0].strip().isdigit():
                            return int(parts[0].strip()) + 1
            return 1
        except OSError:
            return 1

    def _ensure_header_exists(self):
        if os.path.exists(self.baseFilename) and os.path.getsize(self.baseFilename) > 0:
            return
        with open(self.baseFilename, "w", encoding="utf-8") as f:
            f.write("=" * _TOTAL_WIDTH + "\n")
            f.write(f"{'MATRIMONY SERVICES — AUTH LOG':^{_TOTAL_WIDTH}}\n")
            f.write("=" * _TOTAL_WIDTH + "\n")
            header = (
                f"{'#':<{_W_SERIAL}}"
                f"{_SEP}{'Date':<{_W_DATE}}"
                f"{_SEP}{'Time':<{_W_TIME}}"
                f"{_SEP}{'Level':<{_W_LEVEL}}"
                f"{_SEP}{'Account':<{_W_ACCOUNT}}"
                f"{_SEP}{'Email':<{_W_EMAIL}}"
                f"{_SEP}{'Module/Function':<{_W_MODULE}}"
                f"{_SEP}{'Event':<{_W_EVENT}}"
            )
            f.write(header + "\n")
            f.write("-" * _TOTAL_WIDTH + "\n")

    # ── emit ──────────────────────────────────────────────────────────────────

    def emit(self, record: logging.LogRecord):
        try:
            dt = datetime.fromtimestamp(record.created)
            module_func = f"{record.module}.{record.funcName}"

            # Account context (set via extra={} on the logger call, or "-" if absent)
            account = str(getattr(record, "account_code", "-") or "-")
            email   = str(getattr(record, "user_email",   "-") or "-")

            message = record.getMessage()
            preview = message
            if len(preview) > _W_EVENT:
                preview = preview[:_W_EVENT - 3] + "..."

            line = (
                f"{self.log_counter:<{_W_SERIAL}}"
                f"{_SEP}{dt.strftime('%Y-%m-%d'):<{_W_DATE}}"
                f"{_SEP}{dt.strftime('%H:%M:%S'):<{_W_TIME}}"
                f"{_SEP}{record.levelname:<{_W_LEVEL}}"
                f"{_SEP}{account:<{_W_ACCOUNT}}"
                f"{_SEP}{email:<{_W_EMAIL}}"
                f"{_SEP}{module_func:<{_W_MODULE}}"
                f"{_SEP}{preview:<{_W_EVENT}}"
            )

            indent = " " * (_W_SERIAL + len(_SEP))
            with open(self.baseFilename, "a", encoding="utf-8") as f:
                f.write(line + "\n")

                # Full message on the next line when truncated
                if len(message) > _W_EVENT:
                    f.write(f"{indent}Details: {message}\n")

                if record.exc_info:
                    tb = "".join(traceback.format_exception(*record.exc_info))
                    f.write(f"{indent}Exception: {tb}\n")

                if record.levelno >= logging.ERROR:
                    f.write("-" * _TOTAL_WIDTH + "\n")

            self.log_counter += 1
        except Exception:
            self.handleError(record)


# ── setup ─────────────────────────────────────────────────────────────────────

def setup_file_logging(log_level: Optional[int] = None) -> logging.Logger:
    """Configure structured file + console logging.

    File handler records WARNING and above (to reduce noise).
    Console handler uses *log_level*, defaulting to settings.LOG_LEVEL.
    """
    if log_level is None:
        log_level = logging.getLevelName(settings.LOG_LEVEL.upper())
        if not isinstance(log_level, int):
            log_level = logging.INFO

    log_file_path = Path(settings.LOG_FILE)
    log_file_path.parent.mkdir(parents=True, exist_ok=True)

    file_handler = StructuredFileHandler(str(log_file_path))
    file_handler.setLevel(logging.WARNING)
    file_handler.setFormatter(logging.Formatter("%(message)s"))

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
    )

    logging.basicConfig(level=log_level, handlers=[file_handler, console_handler], force=True)

    logger = logging.getLogger(__name__)
    logger.warning(
        "%s SESSION STARTED at %s",
        settings.PROJECT_NAME,
        datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC"),
    )
    return logger


# ── helpers for callers ───────────────────────────────────────────────────────

def log_auth_event(
    event: str,
    email: Optional[str] = None,
    account_code: Optional[str] = None,
    level: int = logging.INFO,
    **details,
):
    """Log a security-relevant auth event with account context.

    Never pass OTP codes or passwords in *details*.
    """
    _log = logging.getLogger("auth_events")
    extra = {"account_code": account_code or "-", "user_email": email or "-"}
    suffix = "".join(f" — {k}: {v}" for k, v in details.items())
    _log.log(level, "%s%s", event, suffix, extra=extra)
