"""
Configuration models for graphql_fetcher.

This module defines the dispatcher configuration with validation and
defaults, and loading of overrides from environment variables.
"""

from __future__ import annotations

import os
from typing import Any, Callable, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, TypeAdapter, field_validator

from .helpers import get_document_id

DEFAULT_TIMEOUT = 30.0
ENV_PREFIX = "GRAPHQL_FETCHER_"

DocumentIdFn = Callable[[Any], Optional[str]]

_HTTP_URL = TypeAdapter(HttpUrl)


class FetcherConfig(BaseModel):
    """Configuration shared by the client and server dispatchers."""

    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    endpoint: str = Field(description="GraphQL endpoint URL")
    persisted_queries: bool = Field(
        default=False,
        alias="apq",
        description="Probe queries with a GET before falling back to POST",
    )
    default_timeout: Optional[float] = Field(
        default=None, gt=0, description="Request timeout in seconds when no token is passed"
    )
    default_headers: Dict[str, str] = Field(
        default_factory=dict, description="Headers sent with every request"
    )
    include_query: bool = Field(
        default=False, description="Send the query text even when a document id is known"
    )
    create_document_id: DocumentIdFn = Field(
        default=get_document_id,
        description="Derives an allow-list document id from an operation document",
    )

    @field_validator("endpoint", mode="before")
    @classmethod
    def validate_endpoint(cls, v: Any) -> str:
        """Reject non-HTTP URLs while keeping the endpoint exactly as given."""
        _HTTP_URL.validate_python(v)
        return str(v)

    @property
    def url(self) -> str:
        return self.endpoint


class ClientFetcherConfig(FetcherConfig):
    """Configuration for the client-side dispatcher."""

    default_timeout: Optional[float] = Field(
        default=DEFAULT_TIMEOUT, gt=0, description="Request timeout in seconds"
    )
    raise_on_errors: bool = Field(
        default=False, description="Raise on any GraphQL errors in the response"
    )


class ServerFetcherConfig(FetcherConfig):
    """Configuration for the server-side dispatcher."""

    dangerously_disable_cache: bool = Field(
        default=False,
        description="Never cache: force POST, no-store and no persisted-query hash",
    )


ENV_MAPPINGS: Dict[str, str] = {
    "ENDPOINT": "endpoint",
    "APQ": "persisted_queries",
    "DEFAULT_TIMEOUT": "default_timeout",
    "INCLUDE_QUERY": "include_query",
    "RAISE_ON_ERRORS": "raise_on_errors",
    "DANGEROUSLY_DISABLE_CACHE": "dangerously_disable_cache",
}

ConfigT = TypeVar("ConfigT", bound=FetcherConfig)


def _convert_env_value(value: str) -> Any:
    """Convert environment variable string to appropriate type."""
    lower = value.lower()
    if lower in ("true", "yes", "1", "on"):
        return True
    if lower in ("false", "no", "0", "off"):
        return False

    try:
        if "." in value:
            return float(value)
        return int(value)
    except ValueError:
        pass

    return value


def load_config_from_env(
    model: Type[ConfigT],
    prefix: str = ENV_PREFIX,
    environ: Optional[Dict[str, str]] = None,
    **overrides: Any,
) -> ConfigT:
    """
    Build a configuration from environment variables.

    Args:
        model: Configuration class to instantiate
        prefix: Environment variable prefix
        environ: Mapping to read instead of ``os.environ``
        **overrides: Explicit values, taking precedence over the environment

    Returns:
        Validated configuration instance
    """
    environ = os.environ if environ is None else environ
    values: Dict[str, Any] = {}

    for suffix, field_name in ENV_MAPPINGS.items():
        if field_name not in model.model_fields:
            continue
        raw = environ.get(f"{prefix}{suffix}")
        if raw is None:
            continue
        values[field_name] = raw if field_name == "endpoint" else _convert_env_value(raw)

    values.update({key: value for key, value in overrides.items() if value is not None})
    return model.model_validate(values)
