"""
replicate_client - Client SDK for the Replicate predictions API.

This package provides clients for running and inspecting predictions:

- Client: Synchronous HTTP client
- AsyncClient: Asynchronous HTTP client (aiohttp)
- Prediction: Decoded prediction resource
- Webhook: Callback configuration for prediction events

Example usage:

    from replicate_client import Client

    client = Client()  # reads REPLICATE_API_TOKEN

    prediction = client.create_prediction(
        "owner/model",
        {"prompt": "a watercolor fox"},
    )
    while not prediction.is_terminal:
        progress = prediction.progress()
        if progress:
            print(f"{progress.current}/{progress.total}")
        prediction = client.get_prediction(prediction.id)
    print(prediction.output)
"""

from ._version import __version__
from .client import AsyncClient, Client, HTTPRequest
from .config import ClientConfig
from .errors import PredictionError, ReplicateError, ServerError
from .files import File
from .identifier import Identifier, parse_identifier
from .pagination import Page
from .predictions import (
    Prediction,
    PredictionMetrics,
    Source,
    Status,
    Webhook,
    WebhookEventType,
    build_prediction_body,
    resolve_create_target,
)
from .progress import PredictionProgress, parse_progress

__all__ = [
    # Clients
    "Client",
    "AsyncClient",
    "ClientConfig",
    "HTTPRequest",

    # Types
    "Prediction",
    "PredictionMetrics",
    "PredictionProgress",
    "Status",
    "Source",
    "Webhook",
    "WebhookEventType",
    "File",
    "Page",
    "Identifier",

    # Helpers
    "parse_identifier",
    "parse_progress",
    "build_prediction_body",
    "resolve_create_target",

    # Exceptions
    "ReplicateError",
    "ServerError",
    "PredictionError",

    # Version
    "__version__",
]
