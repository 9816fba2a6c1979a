import json

import httpx
import pytest

from childguard.core.config import Settings
from childguard.core.errors import ConfigError
from childguard.services.classifier import (
    LocalRiskClassifier,
    RemoteRiskClassifier,
    build_classifier,
)

MODEL_URL = "http://model.test/predict"
HR = [130, 150, 165, 150, 155]
ACC = [2.0, 3.5, 2.2, 3.8, 2.5]

MODEL_ANSWER = {
    "prediction_code": 1,
    "confidence_percentage": 77.7,
    "status_label": "playing",
    "calculated_features": {"hr_mean": 150.0, "hr_gradient": 20.0, "acc_mean": 2.8, "acc_variance": 0.5},
}


def remote(handler, api_key=None):
    return RemoteRiskClassifier(MODEL_URL, api_key=api_key, timeout=1.0, transport=httpx.MockTransport(handler))


def test_remote_answer_is_used_verbatim():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json=MODEL_ANSWER)

    result = remote(handler, api_key="secret").assess(HR, ACC)

    assert seen["body"] == {"heart_rate_raw": HR, "accelerometer_raw": ACC}
    assert seen["auth"] == "Bearer secret"
    assert result.model_url == MODEL_URL
    assert result.classification.status_label == "playing"
    assert result.classification.confidence_percentage == 77.7


def test_no_auth_header_without_key():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json=MODEL_ANSWER)

    remote(handler).assess(HR, ACC)
    assert seen["auth"] is None


def _falls_back(handler):
    result = remote(handler).assess(HR, ACC)
    local = LocalRiskClassifier().assess(HR, ACC)
    assert result.model_url == "local-simulator"
    assert result.classification == local.classification
    assert result.classification.status_label == "danger"


def test_server_error_falls_back():
    _falls_back(lambda request: httpx.Response(500, text="boom"))


def test_missing_field_falls_back():
    partial = {k: v for k, v in MODEL_ANSWER.items() if k != "status_label"}
    _falls_back(lambda request: httpx.Response(200, json=partial))


def test_non_json_body_falls_back():
    _falls_back(lambda request: httpx.Response(200, text="<html>oops</html>"))


def test_non_object_body_falls_back():
    _falls_back(lambda request: httpx.Response(200, json=[1, 2, 3]))


def test_malformed_features_fall_back():
    bad = dict(MODEL_ANSWER, calculated_features={"hr_mean": "fast"})
    _falls_back(lambda request: httpx.Response(200, json=bad))


def test_connection_error_falls_back():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    _falls_back(handler)


def test_timeout_falls_back():
    def handler(request):
        raise httpx.ReadTimeout("too slow", request=request)

    _falls_back(handler)


def test_only_one_request_per_window():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(503)

    remote(handler).assess(HR, ACC)
    assert len(calls) == 1


def test_build_local_by_default():
    assert isinstance(build_classifier(Settings(classifier_mode="local")), LocalRiskClassifier)


def test_build_remote():
    clf = build_classifier(Settings(classifier_mode="remote", classifier_url=MODEL_URL, classifier_timeout_s=3))
    assert isinstance(clf, RemoteRiskClassifier)
    assert clf.url == MODEL_URL
    assert clf.timeout == 3


def test_remote_without_url_is_a_config_error():
    with pytest.raises(ConfigError):
        build_classifier(Settings(classifier_mode="remote", classifier_url=""))


def test_unknown_mode_is_a_config_error():
    with pytest.raises(ConfigError):
        build_classifier(Settings(classifier_mode="magic"))


@pytest.mark.parametrize(
    "override",
    [
        {"prediction_code": 7},
        {"confidence_percentage": 250},
        {"confidence_percentage": -1},
        {"status_label": "panic"},
    ],
)
def test_out_of_range_answer_falls_back(override):
    bad = dict(MODEL_ANSWER, **override)
    _falls_back(lambda request: httpx.Response(200, json=bad))
