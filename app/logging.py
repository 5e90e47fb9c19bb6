# app/logging.py
import json
import logging
import os
import re
from typing import Any, Dict, Optional

PII_RE = re.compile(r"([\w\.-]+)@([\w\.-]+)")  # naive email redaction
MAX_LOGGED_CHARS = 200


def configure_logging(level: Optional[str] = None):
    logging.basicConfig(
        level=(level or os.getenv("LOG_LEVEL", "INFO")).upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def redact_str(s: str) -> str:
    return PII_RE.sub("[redacted-email]", s)


def redact_args(args: Dict[str, Any]) -> Dict[str, Any]:
    safe = json.loads(json.dumps(args, default=str))  # shallow copy via JSON
    for k, v in list(safe.items()):
        if isinstance(v, str):
            # file bodies are logged by size only
            if k == "content" or len(v) > MAX_LOGGED_CHARS:
                safe[k] = f"<{len(v)} chars>"
            else:
                safe[k] = redact_str(v)
    return safe


def log_request(logger: logging.Logger, name: str, args: Dict[str, Any]):
    logger.info("request %s %s", name, redact_args(args))
