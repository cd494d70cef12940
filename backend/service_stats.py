"""
Service / facade layer.

This module turns one HTTP request into one stored row. It is free of
SQL and calls `StatsRepo` for the write. The only rules applied here are
the ones the sink owns: decoding the body and stamping the fields that
must never come from the caller.

Key responsibilities:
- decode the body into a `StatsReport` (raises `DecodeError`)
- stamp receipt time (UTC epoch seconds) and request metadata
- hand the resulting `StatsRecord` to the repository (raises `PersistError`)

The service holds no per-request state, so one instance is shared by all
worker threads.
"""

import time
from typing import Callable, Optional

from models import StatsRecord, decode_report
from repo_stats import StatsRepo


class StatsService:
    """Decode + stamp + persist.

    Example usage:
        repo = StatsRepo(settings)
        svc = StatsService(repo)
        svc.ingest(body, remote_addr="203.0.113.7:5123")
    """

    def __init__(self, repo: StatsRepo, clock: Callable[[], float] = time.time):
        self.repo = repo
        self.clock = clock

    def ingest(
        self,
        body: bytes,
        remote_addr: str,
        forwarded_for: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> StatsRecord:
        """Decode `body`, stamp it and store it as one row.

        Returns the stored record. Nothing is written if decoding fails.
        """

        report = decode_report(body)
        record = StatsRecord(
            report=report,
            local_timestamp=int(self.clock()),
            remote_addr=remote_addr,
            forwarded_for=forwarded_for,
            user_agent=user_agent,
        )
        self.repo.save(record)
        return record
