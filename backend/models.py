"""
Pydantic models used across the backend.

`StatsReport` is the wire shape a homeserver POSTs. `StatsRecord` is what
the repository stores: the decoded report plus the fields the sink fills
in itself from the request. Keeping the two apart means a caller can
never supply `local_timestamp` or `remote_addr` through the body.

Guidelines:
- Optional counters are `Optional[int]`; `None` means the key was absent
  (or JSON `null`) and is never coerced to `0`.
- Integers are strict: `"42"`, `42.0` and `true` are rejected.
- Unknown keys are ignored.
"""

from typing import Annotated, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    StrictStr,
    ValidationError,
    field_validator,
    model_validator,
)

from exceptions import DecodeError

Int64 = Annotated[StrictInt, Field(ge=-(2**63), le=2**63 - 1)]


class StatsReport(BaseModel):
    """Usage report as sent by a homeserver.

    Fields:
    - `homeserver`: server name, usually sent as `Homeserver`.
    - `remote_timestamp`: the sender's clock, JSON key `timestamp`.
    - everything else: counters keyed by their column name.

    Keys match case-insensitively; if several spellings of one key are
    sent, the last one wins.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    homeserver: StrictStr = ""
    remote_timestamp: Optional[Int64] = Field(default=None, validation_alias="timestamp")
    uptime_seconds: Optional[Int64] = None
    total_users: Optional[Int64] = None
    total_nonbridged_users: Optional[Int64] = None
    total_room_count: Optional[Int64] = None
    daily_active_users: Optional[Int64] = None
    daily_active_rooms: Optional[Int64] = None
    daily_messages: Optional[Int64] = None
    daily_sent_messages: Optional[Int64] = None

    @model_validator(mode="before")
    @classmethod
    def _fold_key_case(cls, data):
        if not isinstance(data, dict):
            return data
        folded = {}
        for key, value in data.items():
            folded[key.lower() if isinstance(key, str) else key] = value
        return folded

    @field_validator("homeserver", mode="before")
    @classmethod
    def _null_homeserver(cls, v):
        # JSON null leaves the name empty rather than failing the report
        return "" if v is None else v


class StatsRecord(BaseModel):
    """A decoded report stamped with receipt metadata, ready to insert."""

    model_config = ConfigDict(frozen=True)

    report: StatsReport
    local_timestamp: int
    remote_addr: str
    forwarded_for: Optional[str] = None
    user_agent: Optional[str] = None

    @field_validator("forwarded_for", "user_agent", mode="before")
    @classmethod
    def _empty_header_is_absent(cls, v):
        return v or None


def decode_report(body: bytes) -> StatsReport:
    """Parse a request body into a `StatsReport`.

    Raises `DecodeError` if the body is not a JSON object or a known field
    has the wrong type.
    """

    try:
        return StatsReport.model_validate_json(body)
    except ValidationError as exc:
        raise DecodeError("Error decoding JSON") from exc
