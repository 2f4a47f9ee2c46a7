"""Fetch utilities - retries, pacing, and the default HTTP fetcher."""

from .base import FetchError, FetchFn, NetworkError
from .http_fetcher import HttpStatsFetcher, load_fetcher
from .retries import ReconnectTimeoutError, RetryExecutor, is_network_error
from .throttling import Pacer, PacingConfig

__all__ = [
    "FetchError",
    "FetchFn",
    "HttpStatsFetcher",
    "NetworkError",
    "Pacer",
    "PacingConfig",
    "ReconnectTimeoutError",
    "RetryExecutor",
    "is_network_error",
    "load_fetcher",
]
