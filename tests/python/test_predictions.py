"""Tests for the prediction model and request body building."""

import json

import numpy as np
import pytest

from replicate_client import (
    File,
    Prediction,
    PredictionError,
    Source,
    Status,
    Webhook,
    WebhookEventType,
    build_prediction_body,
    resolve_create_target,
)


class TestPredictionDecoding:
    """Test decoding predictions from JSON."""

    def test_fields(self, prediction_payload):
        prediction = Prediction.from_json(json.dumps(prediction_payload))

        assert prediction.id == "ufawqhfynnddngldkgtslldrkq"
        assert prediction.status == Status.STARTING
        assert prediction.source == Source.API
        assert prediction.model == "replicate/hello-world"
        assert prediction.input == {"text": "Alice"}
        assert prediction.output is None
        assert prediction.metrics is None
        assert prediction.urls["cancel"].endswith("/cancel")
        assert prediction.started_at is None

    def test_raw_json_is_exact(self, prediction_payload):
        raw = json.dumps(prediction_payload, indent=4)
        prediction = Prediction.from_json(raw)
        assert prediction.raw_json == raw

        raw_bytes = raw.encode("utf-8")
        assert Prediction.from_json(raw_bytes).raw_json == raw_bytes

    def test_raw_json_keeps_unmodeled_fields(self, prediction_payload):
        prediction_payload["deployment"] = "acme/prod"
        prediction = Prediction.from_json(json.dumps(prediction_payload))

        assert "deployment" not in prediction.to_dict()
        assert json.loads(prediction.raw_json)["deployment"] == "acme/prod"

    def test_decode_over_existing(self, prediction_payload):
        prediction = Prediction.from_json(json.dumps(prediction_payload))

        prediction_payload.update({
            "status": "succeeded",
            "output": ["hello Alice"],
            "completed_at": "2022-04-26T22:13:09.000000Z",
            "metrics": {"predict_time": 1.5, "output_token_count": 12},
        })
        raw = json.dumps(prediction_payload)
        prediction.load_json(raw)

        assert prediction.status == Status.SUCCEEDED
        assert prediction.is_terminal
        assert prediction.output == ["hello Alice"]
        assert prediction.metrics.predict_time == 1.5
        assert prediction.metrics.output_token_count == 12
        assert prediction.metrics.total_time is None
        assert prediction.raw_json == raw

    def test_failed_decode_leaves_value_unchanged(self, prediction_payload):
        raw = json.dumps(prediction_payload)
        prediction = Prediction.from_json(raw)

        with pytest.raises(ValueError):
            prediction.load_json("[1, 2, 3]")
        with pytest.raises(ValueError):
            prediction.load_json("{not json")

        assert prediction.raw_json == raw
        assert prediction.id == prediction_payload["id"]

    def test_unknown_status_kept(self, prediction_payload):
        prediction_payload["status"] = "queued"
        prediction = Prediction.from_json(json.dumps(prediction_payload))

        assert prediction.status == "queued"
        assert not prediction.is_terminal

    def test_dynamic_output_and_error(self, prediction_payload):
        prediction_payload.update({
            "status": "failed",
            "output": {"frames": [1, 2.5, None, True]},
            "error": "CUDA out of memory",
        })
        prediction = Prediction.from_json(json.dumps(prediction_payload))

        assert prediction.output == {"frames": [1, 2.5, None, True]}
        assert prediction.error == "CUDA out of memory"
        assert prediction.is_terminal

    def test_to_dict_omits_raw_payload(self, prediction_payload):
        prediction_payload["webhook"] = "https://cb"
        prediction_payload["webhook_events_filter"] = ["start", "completed"]
        prediction = Prediction.from_json(json.dumps(prediction_payload))

        result = prediction.to_dict()

        assert "raw_json" not in result
        assert result["status"] == "starting"
        assert result["webhook_events_filter"] == ["start", "completed"]
        assert prediction.webhook_events_filter == [WebhookEventType.START, WebhookEventType.COMPLETED]


class TestResolveCreateTarget:
    """Test endpoint selection for create."""

    def test_model_without_version(self):
        assert resolve_create_target("owner/name") == ("/models/owner/name/predictions", {})

    def test_opaque_version(self):
        assert resolve_create_target("abc123") == ("/predictions", {"version": "abc123"})

    def test_model_with_version(self):
        path, data = resolve_create_target("owner/name:abc123")

        assert path == "/predictions"
        assert data == {"version": "owner/name:abc123"}


class TestBuildPredictionBody:
    """Test build_prediction_body."""

    def test_input_only(self):
        body = json.loads(build_prediction_body(None, {"prompt": "hi"}))
        assert body == {"input": {"prompt": "hi"}}

    def test_file_replaced_by_url(self):
        inputs = {"image": File(id="f1", urls={"get": "https://x/y"}), "scale": 2}
        body = json.loads(build_prediction_body({}, inputs))

        assert inputs["image"] == "https://x/y"
        assert body["input"] == {"image": "https://x/y", "scale": 2}

    def test_webhook_without_events(self):
        body = json.loads(build_prediction_body({}, {}, webhook=Webhook(url="https://cb", events=[])))

        assert body["webhook"] == "https://cb"
        assert "webhook_events_filter" not in body

    def test_webhook_with_events(self):
        webhook = Webhook(url="https://cb", events=[WebhookEventType.START, WebhookEventType.COMPLETED])
        body = json.loads(build_prediction_body({}, {}, webhook=webhook))

        assert body["webhook_events_filter"] == ["start", "completed"]

    def test_stream_and_version(self):
        body = json.loads(build_prediction_body({"version": "abc"}, {}, stream=True))

        assert body["version"] == "abc"
        assert body["stream"] is True

    def test_stream_omitted_by_default(self):
        body = json.loads(build_prediction_body({}, {}))
        assert "stream" not in body

    def test_numpy_values(self):
        inputs = {
            "embedding": np.array([[1.0, 2.0], [3.0, 4.0]], dtype=np.float32),
            "steps": np.int64(30),
        }
        body = json.loads(build_prediction_body({}, inputs))

        assert body["input"]["embedding"] == [[1.0, 2.0], [3.0, 4.0]]
        assert body["input"]["steps"] == 30

    def test_unserializable_input(self):
        with pytest.raises(PredictionError, match="failed to marshal request body") as exc_info:
            build_prediction_body({}, {"bad": object()})

        assert isinstance(exc_info.value.__cause__, TypeError)


class TestFieldTypes:
    """Test rejection of well-formed JSON with mistyped fields."""

    @pytest.mark.parametrize("field, value", [
        ("metrics", [1, 2]),
        ("metrics", "fast"),
        ("webhook_events_filter", 5),
        ("urls", "https://x"),
        ("input", ["a"]),
    ])
    def test_wrong_type_raises_value_error(self, prediction_payload, field, value):
        raw = json.dumps(prediction_payload)
        prediction = Prediction.from_json(raw)

        with pytest.raises(ValueError, match=field):
            prediction.load_json(json.dumps(dict(prediction_payload, **{field: value})))

        assert prediction.raw_json == raw
        assert prediction.urls == prediction_payload["urls"]

    def test_null_fields_allowed(self, prediction_payload):
        prediction_payload.update({"metrics": None, "urls": None, "webhook_events_filter": None})
        prediction = Prediction.from_json(json.dumps(prediction_payload))

        assert prediction.metrics is None
        assert prediction.urls == {}
        assert prediction.webhook_events_filter == []
