"""
Prediction resource: data model and request shaping.

A prediction is one inference job as tracked by the API. This module
holds the decoded representation of a prediction and the helpers used
to build the body of a create request; the HTTP calls live in
:mod:`replicate_client.client`.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np

from .errors import PredictionError
from .files import File
from .identifier import parse_identifier
from .progress import PredictionProgress, parse_progress

# Arbitrary JSON value; the shape of outputs and errors is model-defined.
JSONValue = Union[None, bool, int, float, str, List[Any], Dict[str, Any]]

PredictionInput = Dict[str, Any]


class Status(str, Enum):
    """Lifecycle state reported by the API."""
    STARTING = "starting"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"

    @property
    def terminal(self) -> bool:
        return self in (Status.SUCCEEDED, Status.FAILED, Status.CANCELED)


class Source(str, Enum):
    """Where a prediction was triggered from."""
    API = "api"
    WEB = "web"


class WebhookEventType(str, Enum):
    START = "start"
    OUTPUT = "output"
    LOGS = "logs"
    COMPLETED = "completed"


@dataclass
class Webhook:
    """Callback URL plus the events that should trigger it."""
    url: str
    events: List[WebhookEventType] = field(default_factory=list)


@dataclass
class PredictionMetrics:
    """Performance counters; any of them may be missing."""
    predict_time: Optional[float] = None
    total_time: Optional[float] = None
    input_token_count: Optional[int] = None
    output_token_count: Optional[int] = None
    time_to_first_token: Optional[float] = None
    tokens_per_second: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PredictionMetrics":
        return cls(
            predict_time=data.get("predict_time"),
            total_time=data.get("total_time"),
            input_token_count=data.get("input_token_count"),
            output_token_count=data.get("output_token_count"),
            time_to_first_token=data.get("time_to_first_token"),
            tokens_per_second=data.get("tokens_per_second"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in self.__dict__.items() if v is not None}


def _field(data: Dict[str, Any], key: str, expected: type) -> Any:
    """Get ``data[key]``, which must be missing, null or an ``expected``."""
    value = data.get(key)
    if value is not None and not isinstance(value, expected):
        raise ValueError(f"expected {key} to be {expected.__name__}, got {type(value).__name__}")
    return value


def _to_enum(enum_cls, value):
    """Map a known value onto ``enum_cls``; keep unknown values as-is."""
    if value is None:
        return None
    try:
        return enum_cls(value)
    except ValueError:
        return value


@dataclass
class Prediction:
    """
    A prediction as last reported by the API.

    ``raw_json`` holds the exact payload this value was decoded from, so
    fields the client does not model yet remain reachable. It is never
    part of :meth:`to_dict`.
    """
    id: str = ""
    status: Union[Status, str, None] = None
    model: str = ""
    version: str = ""
    input: PredictionInput = field(default_factory=dict)
    output: JSONValue = None
    source: Union[Source, str, None] = None
    error: JSONValue = None
    logs: Optional[str] = None
    metrics: Optional[PredictionMetrics] = None
    webhook: Optional[str] = None
    webhook_events_filter: List[Union[WebhookEventType, str]] = field(default_factory=list)
    urls: Dict[str, str] = field(default_factory=dict)
    created_at: str = ""
    started_at: Optional[str] = None
    completed_at: Optional[str] = None

    raw_json: Union[str, bytes, None] = field(default=None, repr=False, compare=False)

    @classmethod
    def from_json(cls, data: Union[str, bytes]) -> "Prediction":
        """Decode a prediction from a JSON document."""
        prediction = cls()
        prediction.load_json(data)
        return prediction

    def load_json(self, data: Union[str, bytes]) -> "Prediction":
        """
        Decode ``data`` over this prediction.

        All structured fields and ``raw_json`` are replaced. If ``data``
        is not a valid prediction document this value is left unchanged.

        Raises:
            ValueError: If ``data`` is not a JSON object or a field has
                the wrong type.
        """
        parsed = json.loads(data)
        if not isinstance(parsed, dict):
            raise ValueError(f"expected a JSON object, got {type(parsed).__name__}")
        self._assign(parsed)
        self.raw_json = data
        return self

    def _assign(self, data: Dict[str, Any]) -> None:
        # Decode everything first so a malformed field leaves self untouched.
        metrics = _field(data, "metrics", dict)
        fields = dict(
            id=data.get("id") or "",
            status=_to_enum(Status, data.get("status")),
            model=data.get("model") or "",
            version=data.get("version") or "",
            input=_field(data, "input", dict) or {},
            output=data.get("output"),
            source=_to_enum(Source, data.get("source")),
            error=data.get("error"),
            logs=data.get("logs"),
            metrics=PredictionMetrics.from_dict(metrics) if metrics else None,
            webhook=data.get("webhook"),
            webhook_events_filter=[
                _to_enum(WebhookEventType, e)
                for e in _field(data, "webhook_events_filter", list) or []
            ],
            urls=_field(data, "urls", dict) or {},
            created_at=data.get("created_at") or "",
            started_at=data.get("started_at"),
            completed_at=data.get("completed_at"),
        )
        for name, value in fields.items():
            setattr(self, name, value)

    def to_dict(self) -> Dict[str, Any]:
        """Structured fields in wire form; optional fields are omitted when empty."""
        result: Dict[str, Any] = {
            "id": self.id,
            "status": _enum_value(self.status),
            "model": self.model,
            "version": self.version,
            "input": self.input,
            "source": _enum_value(self.source),
            "created_at": self.created_at,
        }
        optional = {
            "output": self.output,
            "error": self.error,
            "logs": self.logs,
            "metrics": self.metrics.to_dict() if self.metrics else None,
            "webhook": self.webhook,
            "webhook_events_filter": [_enum_value(e) for e in self.webhook_events_filter] or None,
            "urls": self.urls or None,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
        }
        result.update({k: v for k, v in optional.items() if v is not None})
        return result

    @property
    def is_terminal(self) -> bool:
        """Whether the prediction has finished (succeeded, failed or canceled)."""
        return isinstance(self.status, Status) and self.status.terminal

    def progress(self) -> Optional[PredictionProgress]:
        """Latest progress reported in the logs, if any."""
        return parse_progress(self.logs)


def _enum_value(value):
    return value.value if isinstance(value, Enum) else value


def _json_default(value: Any) -> Any:
    """Encode values json does not handle natively."""
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def resolve_create_target(identifier: str) -> Tuple[str, Dict[str, Any]]:
    """
    Pick the endpoint and base body for creating a prediction.

    ``owner/name`` targets the model's own predictions endpoint. Anything
    else, a pinned ``owner/name:version`` or an opaque version id, goes to
    ``/predictions`` with the identifier sent as ``version``.

    Returns:
        (path, data) tuple
    """
    parsed = parse_identifier(identifier)
    if parsed is not None and parsed.version is None:
        return f"/models/{parsed.owner}/{parsed.name}/predictions", {}
    return "/predictions", {"version": identifier}


def build_prediction_body(
    data: Optional[Dict[str, Any]],
    inputs: PredictionInput,
    webhook: Optional[Webhook] = None,
    stream: bool = False,
) -> bytes:
    """
    Serialize the JSON body of a create request.

    File values in ``inputs`` are replaced in place by their retrieval
    URL, so the caller's mapping is modified.

    Raises:
        PredictionError: If the body cannot be encoded as JSON.
    """
    for key, value in inputs.items():
        if isinstance(value, File):
            inputs[key] = value.get_url

    body = dict(data) if data else {}
    body["input"] = inputs

    if webhook is not None:
        body["webhook"] = webhook.url
        if webhook.events:
            body["webhook_events_filter"] = [_enum_value(e) for e in webhook.events]

    if stream:
        body["stream"] = True

    try:
        return json.dumps(body, default=_json_default).encode("utf-8")
    except (TypeError, ValueError) as e:
        raise PredictionError(f"failed to marshal request body: {e}") from e
