"""
=============================================================================
ACCESS LOG
=============================================================================

One record per connection cycle, written to the "pageserver.access"
logger, separate from the diagnostic loggers of each module.

    logging.getLogger("pageserver.access").addHandler(file_handler)

=============================================================================
FORMATS
=============================================================================

text (common-log-like, one line):

    127.0.0.1 - - [19/Oct/2026:10:00:00 +0000] "GET /docs HTTP/1.1" 200 1234 0.42ms done

json (one object per line, for log aggregators):

    {"connection_id": "3f2a9c1e", "client_ip": "127.0.0.1",
     "request_line": "GET /docs HTTP/1.1", "status_code": 200,
     "content_length": 1234, "outcome": "done", "duration_ms": 0.42, ...}

A client that connects and sends nothing produces no record. Cycles that
end without a response for any other reason (I/O failure, a 400 page
switched off) are logged with "-" for the status and the outcome saying
why.

=============================================================================
"""

import json
import time
import logging
from dataclasses import dataclass, asdict
from typing import Optional


logger = logging.getLogger("pageserver.access")


@dataclass
class AccessRecord:
    """Structured log entry for one connection cycle."""

    connection_id: str
    client_ip: str
    request_line: str
    status_code: Optional[int]
    content_length: int
    outcome: str
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        record = asdict(self)
        record["duration_ms"] = round(self.duration_ms, 2)
        return record

    def to_text(self) -> str:
        status = self.status_code if self.status_code is not None else "-"
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.request_line}" {status} '
            f'{self.content_length} {self.duration_ms:.2f}ms {self.outcome}'
        )


class AccessLogger:
    """
    Emits AccessRecords in the configured format.

    Args:
        log_format: "text" or "json".
        log_level: Level for successful cycles. Aborted cycles are logged
                   at WARNING.
    """

    def __init__(self, log_format: str = "text", log_level: int = logging.INFO):
        self.log_format = log_format
        self.log_level = log_level

    def record(
        self,
        connection_id: str,
        client_ip: str,
        request_line: str,
        status_code: Optional[int],
        content_length: int,
        outcome: str,
        duration_ms: float,
        aborted: bool = False,
    ) -> AccessRecord:
        """Build and emit one record. Returns it for callers and tests."""
        entry = AccessRecord(
            connection_id=connection_id,
            client_ip=client_ip,
            request_line=request_line or "-",
            status_code=None if status_code is None else int(status_code),
            content_length=content_length,
            outcome=outcome,
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        level = logging.WARNING if aborted else self.log_level
        if self.log_format == "json":
            logger.log(level, json.dumps(entry.to_dict()))
        else:
            logger.log(level, entry.to_text())

        return entry


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# AccessRecord  one cycle: who, what line, which status, how many bytes,
#               how it ended, how long it took
# AccessLogger  text or JSON onto the "pageserver.access" logger
# =============================================================================
