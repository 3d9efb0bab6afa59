import io
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from datetime import datetime
from typing import Iterable, Optional

_MASK = "***"

class DotMsFormatter(logging.Formatter):
    def formatTime(self, record, datefmt=None):
        ct = datetime.fromtimestamp(record.created)
        if datefmt:
            s = ct.strftime(datefmt)
            ms = int(record.msecs)
            s = s.replace('%f', f'{ms:03d}')
        else:
            s = ct.strftime("%Y-%m-%d %H:%M:%S")
            s += f".{int(record.msecs):03d}"
        return s

class CredentialFilter(logging.Filter):
    """Masks API keys/secrets that end up in a formatted log message."""

    def __init__(self, secrets: Iterable[Optional[str]] = ()):
        super().__init__()
        self.secrets = [s for s in secrets if s]

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.secrets:
            return True
        message = record.getMessage()
        masked = message
        for secret in self.secrets:
            masked = masked.replace(secret, _MASK)
        if masked != message:
            record.msg = masked
            record.args = None
        return True

def setup_logger(
    name: str,
    log_path: str | Path | None = None,
    level: int = logging.INFO,
    secrets: Iterable[Optional[str]] = (),
) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(level)
    formatter = DotMsFormatter(
        '[%(asctime)s] %(levelname)s %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S.%f'
    )
    credential_filter = CredentialFilter(secrets)

    # Console handler, UTF-8 so non-ASCII currency names never raise on cp1252 consoles
    if hasattr(sys.stdout, "buffer"):
        utf8_stream = io.TextIOWrapper(sys.stdout.buffer, encoding="utf-8", errors="replace")
    else:
        utf8_stream = sys.stdout
    ch = logging.StreamHandler(utf8_stream)
    ch.setFormatter(formatter)
    ch.addFilter(credential_filter)
    logger.addHandler(ch)

    # Rotating file handler
    if log_path is not None:
        log_path = Path(log_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fh = RotatingFileHandler(log_path, maxBytes=5_000_000, backupCount=5, encoding="utf-8")
        fh.setFormatter(formatter)
        fh.addFilter(credential_filter)
        logger.addHandler(fh)

    return logger
