"""
Centralized Logging and Credential Redaction
============================================

This module configures diagnostic output for the ClinXR client. Every record
that reaches a handler passes through a filter that strips bearer
credentials, passwords and other secrets, so a session token never ends up in
a log file or on the console.

Key Features:
-------------
- Sensitive Data Masking: Redaction of bearer tokens and passwords using regex
  and recursive dictionary filtering.
- Request Instrumentation: Helpers for logging backend requests and responses
  with masked headers and latency.
- Contextual Logging: Timestamps, module origin and line numbers.

Author: ClinXR Project
"""

import json
import logging
import re
import sys
from pathlib import Path
from typing import Any, Dict, Optional


# Project root is two levels up from this file: utils -> clinxr -> project root
PROJECT_ROOT = Path(__file__).parent.parent.parent
LOG_DIR = PROJECT_ROOT / "logs"
LOG_FILE_NAME = "clinxr.log"

# Dictionary keys whose values are never logged in clear
SENSITIVE_FIELDS = {
    'password', 'passwd', 'pwd', 'secret', 'token', 'api_key',
    'apikey', 'auth', 'authorization', 'credential', 'credentials'
}

# Regex patterns for sensitive data embedded in free text
SENSITIVE_PATTERNS = [
    (re.compile(r'(Bearer\s+[a-zA-Z0-9\-._~+/]+=*)'), 'Bearer ***'),
    (re.compile(r'(eyJ[a-zA-Z0-9\-_]+\.[a-zA-Z0-9\-_]+\.[a-zA-Z0-9\-_]*)'), '***'),  # JWTs
    (re.compile(r'([a-zA-Z0-9]{32,})'), lambda m: f"***{m.group(1)[-4:]}"),
]


def _mask_text(text: str) -> str:
    for pattern, replacement in SENSITIVE_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


class SensitiveDataFilter(logging.Filter):
    """
    Redacts credentials from log records before they are emitted.

    Attached to every handler installed by `setup_logging`. Both the message
    template and its arguments are scrubbed.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = _mask_text(record.msg)

        if record.args:
            if isinstance(record.args, dict):
                record.args = mask_sensitive_data(record.args)
            elif isinstance(record.args, tuple):
                record.args = tuple(
                    mask_sensitive_data(arg) if isinstance(arg, (dict, str)) else arg
                    for arg in record.args
                )

        return True


def mask_sensitive_data(data: Any, mask_value: str = "***") -> Any:
    """
    Recursively redact sensitive fields from nested data.

    Keys matching a known credential label are replaced wholesale (tokens keep
    their last four characters so two sessions can still be told apart);
    strings anywhere in the structure are run through the text patterns.

    Args:
        data: The dict, list, tuple or string to scrub.
        mask_value: Replacement for redacted content.

    Returns:
        A masked copy of the input.
    """
    if isinstance(data, dict):
        masked = {}
        for key, value in data.items():
            key_lower = str(key).lower()
            if any(sensitive in key_lower for sensitive in SENSITIVE_FIELDS):
                if 'token' in key_lower and isinstance(value, str) and len(value) > 8:
                    masked[key] = f"{mask_value}{value[-4:]}"
                else:
                    masked[key] = mask_value
            else:
                masked[key] = mask_sensitive_data(value, mask_value)
        return masked

    if isinstance(data, (list, tuple)):
        return type(data)(mask_sensitive_data(item, mask_value) for item in data)

    if isinstance(data, str):
        return _mask_text(data)

    return data


def setup_logging(
    log_level: int = logging.DEBUG,
    console_level: int = logging.INFO,
    log_dir: Optional[Path] = None,
) -> Path:
    """
    Configure the root logger for the application.

    - File Handler: detailed DEBUG logs in `logs/clinxr.log`, overwritten per run.
    - Console Handler: human-readable INFO logs on stderr.

    Both handlers carry a `SensitiveDataFilter`.

    Args:
        log_level: Granularity for the log file.
        console_level: Granularity for the terminal output.
        log_dir: Directory for the log file (defaults to `<project>/logs`).

    Returns:
        Path: The log file in use.
    """
    target_dir = log_dir or LOG_DIR
    target_dir.mkdir(parents=True, exist_ok=True)
    log_file = target_dir / LOG_FILE_NAME

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)
    file_handler.addFilter(SensitiveDataFilter())
    root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(SensitiveDataFilter())
    root_logger.addHandler(console_handler)

    # Keep connection pool chatter out of the console
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    logging.info(f"ClinXR logging started - Log file: {log_file}")
    return log_file


def shutdown_logging():
    """Flush and close every root handler. Call before process exit."""
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        handler.flush()
        handler.close()
        root_logger.removeHandler(handler)


def log_api_request(
    logger: logging.Logger,
    method: str,
    url: str,
    headers: Optional[Dict] = None,
    data: Optional[Any] = None,
    params: Optional[Dict] = None
):
    """
    Log an outgoing backend request with masked headers and body.

    Args:
        logger: Logger instance to use
        method: HTTP method (GET, POST, etc.)
        url: Full request URL
        headers: Request headers
        data: Request body
        params: Query parameters
    """
    logger.info(f"API Request: {method} {url}")

    if headers:
        logger.debug(f"Request headers: {mask_sensitive_data(headers)}")
    if params:
        logger.debug(f"Request params: {mask_sensitive_data(params)}")
    if data:
        logger.debug(f"Request body: {json.dumps(mask_sensitive_data(data), default=str)}")


def log_api_response(
    logger: logging.Logger,
    status_code: int,
    url: str,
    elapsed_time: Optional[float] = None
):
    """Log a backend response status with its latency."""
    timing_info = f" ({elapsed_time:.3f}s)" if elapsed_time is not None else ""
    level = logging.INFO if status_code < 400 else logging.WARNING
    logger.log(level, f"API Response: {status_code} {url}{timing_info}")
