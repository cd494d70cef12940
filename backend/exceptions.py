"""Error taxonomy for the ingestion flow.

Each error wraps the underlying cause via exception chaining (`raise ...
from exc`). The HTTP layer logs the cause and replies with a generic body.
"""


class StatsSinkError(Exception):
    """Base class for all stats sink errors."""


class DecodeError(StatsSinkError):
    """The request body is not a well-formed report (client fault)."""


class PersistError(StatsSinkError):
    """The backend failed to store a report (server fault)."""


class ProvisionError(StatsSinkError):
    """The `stats` table could not be created. Fatal at startup."""
