"""
Configuration for session pooling.
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator

from xsession.connections.constants import POOLING_DEFAULTS
from xsession.utility.errors import ER_DEVAPI_BAD_CLIENT_OPTION_VALUE, message_for

from .options import OptionError


class PoolingConfig(BaseModel):
    """
    Pool limits and timeouts.

    All durations are in milliseconds and ``0`` means "no limit":
    ``max_idle_time=0`` keeps idle sessions forever and ``queue_timeout=0``
    lets callers wait for a free session indefinitely.
    """

    model_config = ConfigDict(extra="forbid")

    enabled: bool = Field(
        default=POOLING_DEFAULTS.enabled, description="Pool sessions"
    )
    max_size: int = Field(
        default=POOLING_DEFAULTS.max_size,
        description="Maximum number of live sessions",
    )
    max_idle_time: int = Field(
        default=POOLING_DEFAULTS.max_idle_time,
        description="How long an idle session is kept, in ms",
    )
    queue_timeout: int = Field(
        default=POOLING_DEFAULTS.queue_timeout,
        description="How long a caller waits for a session, in ms",
    )
    retain_prepared_statements: bool = Field(
        default=POOLING_DEFAULTS.retain_prepared_statements,
        description=(
            "Keep the client's prepared statement table when a session is "
            "reset for reuse; turn off for servers that drop statements on reset"
        ),
    )

    @field_validator("max_size", mode="before")
    @classmethod
    def validate_max_size(cls, v):
        """Pool needs room for at least one session."""
        if isinstance(v, bool) or not isinstance(v, int) or v < 1:
            raise OptionError(
                ER_DEVAPI_BAD_CLIENT_OPTION_VALUE,
                message_for(ER_DEVAPI_BAD_CLIENT_OPTION_VALUE, "pooling.max_size", v),
            )
        return v

    @field_validator("max_idle_time", "queue_timeout", mode="before")
    @classmethod
    def validate_duration(cls, v, info):
        """Durations are non-negative integers."""
        if isinstance(v, bool) or not isinstance(v, int) or v < 0:
            raise OptionError(
                ER_DEVAPI_BAD_CLIENT_OPTION_VALUE,
                message_for(
                    ER_DEVAPI_BAD_CLIENT_OPTION_VALUE, f"pooling.{info.field_name}", v
                ),
            )
        return v
