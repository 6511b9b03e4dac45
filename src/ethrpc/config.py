from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ethrpc.exceptions import ConfigError
from ethrpc.types.address import AddressType
from ethrpc.types.vm import BlockTag
from ethrpc.utils.misc import is_block_tag, load_config, to_int

DEFAULT_POLL_INTERVAL = 0.5
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_MAX_WORKERS = 8
DEFAULT_TRANSACTION_ACCEPTANCE_TIMEOUT = 120.0


class ClientConfig(BaseSettings):
    """
    The configuration of a :class:`~ethrpc.client.Client`. Immutable once created;
    use :meth:`~ethrpc.client.Client.with_config` for a client with different values.

    Every field can be set from the environment with the ``ETHRPC_`` prefix,
    for example ``ETHRPC_POLL_INTERVAL=2``.
    """

    model_config = SettingsConfigDict(env_prefix="ETHRPC_", frozen=True, extra="forbid")

    default_account: Optional[AddressType] = None
    """
    The sender of transactions and calls that do not name one.
    """

    default_block: Union[int, BlockTag] = "latest"
    """
    The block of state queries that do not name one.
    """

    poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL, gt=0)
    """
    Seconds between two polls of the same filter.
    """

    request_timeout: float = Field(default=DEFAULT_REQUEST_TIMEOUT, gt=0)
    """
    Seconds a transport waits for a response. When set, it replaces the
    ``timeout`` of the client's transport.
    """

    max_workers: int = Field(default=DEFAULT_MAX_WORKERS, ge=1)
    """
    The size of the worker pool running deferred (``_async``) calls.
    """

    notify_empty_changes: bool = False
    """
    Set to ``True`` to call filter listeners on polls that found nothing new.
    """

    transaction_acceptance_timeout: float = Field(
        default=DEFAULT_TRANSACTION_ACCEPTANCE_TIMEOUT, gt=0
    )
    """
    Seconds to wait for a receipt in ``wait_for_transaction_receipt``.
    """

    @field_validator("default_block", mode="before")
    @classmethod
    def validate_default_block(cls, value):
        if is_block_tag(value):
            return value

        return to_int(value)

    @classmethod
    def load(cls, **overrides: Any) -> "ClientConfig":
        """
        Create a configuration from the environment and the given overrides.

        Raises:
            :class:`~ethrpc.exceptions.ConfigError`: When a value is invalid.
        """
        try:
            return cls(**overrides)
        except ValidationError as err:
            raise ConfigError(str(err)) from err

    @classmethod
    def from_file(cls, path: Union[Path, str], **overrides: Any) -> "ClientConfig":
        """
        Create a configuration from a ``.yaml`` or ``.json`` file.
        Environment variables in the file are expanded; overrides win.
        """
        try:
            data = load_config(Path(path), must_exist=True)
        except (OSError, TypeError, ValueError, yaml.YAMLError) as err:
            raise ConfigError(f"Unable to load config file '{path}': {err}") from err

        if not isinstance(data, dict):
            raise ConfigError(f"Config file '{path}' must contain a mapping.")

        return cls.load(**{**data, **overrides})

    def merge(self, **overrides: Any) -> "ClientConfig":
        """
        A copy of this configuration with the given values changed.
        """
        unknown = set(overrides) - set(type(self).model_fields)
        if unknown:
            raise ConfigError(f"Unknown config option(s): {', '.join(sorted(unknown))}.")

        return self.load(**{**self.model_dump(exclude_unset=True), **overrides})


__all__ = ["ClientConfig"]
