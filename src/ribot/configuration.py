from __future__ import annotations

from datetime import timedelta
from typing import Annotated

from pydantic import BeforeValidator, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ribot._types import LogLevel
from ribot._utils.docs import docs_group
from ribot._utils.models import timedelta_ms, timedelta_secs

__all__ = ['DEFAULT_USER_AGENT', 'DEFAULT_WORKER_POOL_SIZE', 'Configuration']

DEFAULT_USER_AGENT = 'Ribot'

DEFAULT_WORKER_POOL_SIZE = 15


@docs_group('Configuration')
class Configuration(BaseSettings):
    """Configuration settings for the spider.

    Every setting has a default, so the class can be used as is. Values can also be supplied through environment
    variables prefixed with `RIBOT_`, e.g. `RIBOT_WORKER_POOL_SIZE=30` or `RIBOT_RAND_SLEEP_MAX=500` (milliseconds).
    Arguments passed to the `Spider` constructor take precedence over the configuration.
    """

    model_config = SettingsConfigDict(env_prefix='ribot_', populate_by_name=True)

    log_level: Annotated[LogLevel, BeforeValidator(lambda value: str(value).upper())] = 'INFO'
    """The logging level."""

    worker_pool_size: Annotated[int, Field(ge=0)] = DEFAULT_WORKER_POOL_SIZE
    """Number of workers processing requests concurrently. Zero means the default."""

    user_agent: str = DEFAULT_USER_AGENT
    """Value of the `User-Agent` header stamped on submitted requests that do not set one."""

    depth_first: bool = False
    """Insert newly submitted requests at the head of the queue instead of the tail."""

    rand_sleep_min: timedelta_ms = timedelta(0)
    """Lower bound (inclusive) of the random pause between two dispatches."""

    rand_sleep_max: timedelta_ms = timedelta(0)
    """Upper bound (exclusive) of the random pause between two dispatches. Zero disables the pause."""

    http_timeout: timedelta_secs = timedelta(seconds=30)
    """Timeout of a single download made by the default HTTP client."""
