"""Risk classification.

The rule engine mirrors the external ML model's decision boundaries so the
backend works end to end without it. Rules are checked in priority order
and the first match wins:

  danger   hr_mean >= 135 and (hr_gradient >= 15 or acc_variance >= 0.8),
           or hr_mean >= 140 with acc_variance < 0.05 (freeze response)
  playing  110 <= hr_mean < 145, or 0.15 <= acc_variance < 0.8,
           or 1.8 <= acc_mean < 3.0
  normal   everything else

Two interchangeable classifiers expose ``assess()``: the local engine, and a
remote model client that falls back to the local engine on any failure.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import NamedTuple, Protocol

import httpx
from pydantic import ValidationError as PydanticValidationError

from childguard.core import constants as C
from childguard.core.config import Settings
from childguard.core.errors import ConfigError, UpstreamUnavailable
from childguard.schemas.risk import Classification, FeatureVector
from childguard.services.features import extract_features, round_half_up

logger = logging.getLogger(__name__)

REQUIRED_RESPONSE_FIELDS = ("prediction_code", "confidence_percentage", "status_label", "calculated_features")


def _clamp(v: float, lo: float = 0.0, hi: float = 1.0) -> float:
    return max(lo, min(hi, v))


def _is_danger(f: FeatureVector) -> bool:
    return (
        (f.hr_mean >= C.DANGER_HR_MEAN and f.hr_gradient >= C.DANGER_HR_GRADIENT)
        or (f.hr_mean >= C.DANGER_HR_MEAN and f.acc_variance >= C.DANGER_ACC_VARIANCE)
        or (f.hr_mean >= C.FREEZE_HR_MEAN and f.acc_variance < C.FREEZE_ACC_VARIANCE)
    )


def _is_playing(f: FeatureVector) -> bool:
    return (
        (C.PLAYING_HR_MIN <= f.hr_mean < C.PLAYING_HR_MAX)
        or (C.PLAYING_ACC_VARIANCE_MIN <= f.acc_variance < C.PLAYING_ACC_VARIANCE_MAX)
        or (C.PLAYING_ACC_MEAN_MIN <= f.acc_mean < C.PLAYING_ACC_MEAN_MAX)
    )


def classify(features: FeatureVector) -> Classification:
    f = features
    if _is_danger(f):
        # Confidence grows with how far HR and its jumps exceed the thresholds
        hr_score = _clamp((f.hr_mean - C.DANGER_HR_MEAN) / 30)
        grad_score = _clamp(f.hr_gradient / 40)
        code = C.DANGER
        confidence = min(60 + (hr_score + grad_score) * 20, C.MAX_CONFIDENCE)
    elif _is_playing(f):
        hr_score = _clamp((f.hr_mean - 100) / 40) if f.hr_mean >= C.PLAYING_HR_MIN else 0.0
        acc_score = _clamp(f.acc_variance / 0.6) if f.acc_variance >= C.PLAYING_ACC_VARIANCE_MIN else 0.0
        code = C.PLAYING
        confidence = min(60 + (hr_score + acc_score) * 17, C.MAX_CONFIDENCE)
    else:
        hr_score = 1.0 if f.hr_mean < 100 else _clamp(1 - (f.hr_mean - 100) / 30)
        acc_score = 1.0 if f.acc_variance < 0.1 else _clamp(1 - (f.acc_variance - 0.1) / 0.3)
        code = C.NORMAL
        confidence = min(70 + (hr_score + acc_score) * 15, C.MAX_CONFIDENCE)

    return Classification(
        prediction_code=code,
        confidence_percentage=round_half_up(confidence, 1),
        status_label=C.LABELS[code],
        calculated_features=features,
    )


class RiskResult(NamedTuple):
    classification: Classification
    # Remote model URL, or "local-simulator" when the rule engine answered
    model_url: str


class RiskClassifier(Protocol):
    def assess(self, heart_rate_raw: Sequence[float], accelerometer_raw: Sequence[float]) -> RiskResult:
        ...


class LocalRiskClassifier:
    model_url = C.LOCAL_MODEL_ID

    def assess(self, heart_rate_raw, accelerometer_raw) -> RiskResult:
        features = extract_features(heart_rate_raw, accelerometer_raw)
        return RiskResult(classify(features), self.model_url)


class RemoteRiskClassifier:
    """Client for the external risk model service.

    Makes a single POST per window with a bounded timeout. Any failure
    (network error, timeout, non-2xx, unparseable or incomplete body) is
    logged and answered by ``fallback`` instead. Nothing is retried.
    """

    def __init__(
        self,
        url: str,
        api_key: str | None = None,
        timeout: float = 10.0,
        fallback: LocalRiskClassifier | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.url = url
        self.api_key = api_key
        self.timeout = timeout
        self.fallback = fallback or LocalRiskClassifier()
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        hdrs = {"Content-Type": "application/json"}
        if self.api_key:
            hdrs["Authorization"] = f"Bearer {self.api_key}"
        return hdrs

    def _request(self, heart_rate_raw, accelerometer_raw) -> Classification:
        body = {
            "heart_rate_raw": list(heart_rate_raw),
            "accelerometer_raw": list(accelerometer_raw),
        }
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                r = client.post(self.url, json=body, headers=self._headers())
        except httpx.HTTPError as e:
            raise UpstreamUnavailable("AI model request failed", details={"error": str(e)})

        if not r.is_success:
            raise UpstreamUnavailable(
                "AI model request failed",
                details={"status": r.status_code, "body": r.text[:500]},
            )
        try:
            payload = r.json()
        except ValueError:
            raise UpstreamUnavailable("AI model returned non-JSON body", code="AI_MODEL_INVALID_RESPONSE")

        if not isinstance(payload, dict):
            raise UpstreamUnavailable("AI model response is invalid", code="AI_MODEL_INVALID_RESPONSE")
        missing = [k for k in REQUIRED_RESPONSE_FIELDS if payload.get(k) is None]
        if missing:
            raise UpstreamUnavailable(
                "AI model response is invalid",
                details={"missing_fields": missing},
                code="AI_MODEL_INVALID_RESPONSE",
            )
        try:
            return Classification.model_validate(payload)
        except PydanticValidationError as e:
            raise UpstreamUnavailable(
                "AI model response is invalid",
                details={"errors": e.errors(include_url=False)},
                code="AI_MODEL_INVALID_RESPONSE",
            )

    def assess(self, heart_rate_raw, accelerometer_raw) -> RiskResult:
        try:
            classification = self._request(heart_rate_raw, accelerometer_raw)
        except UpstreamUnavailable as e:
            logger.warning(
                "Risk model at %s unavailable (%s: %s); using local rule engine",
                self.url, e.code, e.details,
            )
            return self.fallback.assess(heart_rate_raw, accelerometer_raw)
        return RiskResult(classification, self.url)


def build_classifier(settings: Settings) -> RiskClassifier:
    mode = (settings.classifier_mode or "local").lower()
    if mode == "local":
        return LocalRiskClassifier()
    if mode == "remote":
        if not settings.classifier_url:
            raise ConfigError("CLASSIFIER_URL is required when CLASSIFIER_MODE=remote")
        return RemoteRiskClassifier(
            settings.classifier_url,
            api_key=settings.classifier_api_key,
            timeout=settings.classifier_timeout_s,
        )
    raise ConfigError(f"Unknown CLASSIFIER_MODE: {settings.classifier_mode}", details={"allowed": ["local", "remote"]})
