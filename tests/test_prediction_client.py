import datetime as dt
import unittest

import requests

from surf_ai.analyzers import analyze_tide
from surf_ai.config import Settings
from surf_ai.domain import SwellReading, TideKind, TidePrediction, WindReading
from surf_ai.prediction_client import PredictionClient, build_prediction_request


class DummyResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("not json")
        return self._payload


def _dropping_tide():
    tides = [
        TidePrediction(timestamp=dt.datetime(2025, 6, 1, 6, 0), height_feet=5.1, kind=TideKind.HIGH),
        TidePrediction(timestamp=dt.datetime(2025, 6, 1, 12, 0), height_feet=0.3, kind=TideKind.LOW),
    ]
    return analyze_tide(tides, dt.datetime(2025, 6, 1, 9, 0))


class TestBuildPredictionRequest(unittest.TestCase):
    def test_request_fields(self):
        request = build_prediction_request(
            WindReading(speed_knots=8, direction_degrees=240),
            _dropping_tide(),
            SwellReading(height_feet=3, period_seconds=11),
            SwellReading(height_feet=4.26, period_seconds=12),
        )
        self.assertEqual(request, {"tide": "FALLING", "wind": "W", "pt_reyes": "3.0", "sf_bar": "4.3"})

    def test_secondary_defaults_to_primary_and_heights_are_capped(self):
        tide = analyze_tide([], None)
        request = build_prediction_request(
            WindReading(speed_knots=8, direction_degrees=10),
            tide,
            SwellReading(height_feet=80, period_seconds=11),
        )
        self.assertEqual(request["tide"], "UNKNOWN")
        self.assertEqual(request["wind"], "N")
        self.assertEqual(request["pt_reyes"], "50.0")
        self.assertEqual(request["sf_bar"], "50.0")


class TestPredictionClient(unittest.TestCase):
    def setUp(self):
        from surf_ai import prediction_client as pc
        self._orig_post = pc.requests.post

    def tearDown(self):
        from surf_ai import prediction_client as pc
        pc.requests.post = self._orig_post

    def _install(self, response=None, exc=None):
        from surf_ai import prediction_client as pc

        def fake_post(url, json=None, timeout=None):
            if exc is not None:
                raise exc
            return response

        pc.requests.post = fake_post

    def _client(self):
        return PredictionClient(Settings(prediction_api_url="http://predict.local/predict/"))

    def test_not_configured_returns_none(self):
        self._install(DummyResponse(200, {"predicted_score": 9}))
        client = PredictionClient(Settings(prediction_api_url=None))
        self.assertFalse(client.configured)
        self.assertIsNone(client.predict({}))

    def test_url_trailing_slash_is_stripped(self):
        self.assertEqual(self._client().url, "http://predict.local/predict")

    def test_predicted_score(self):
        self._install(DummyResponse(200, {"predicted_score": 7.5}))
        self.assertEqual(self._client().predict({"tide": "RISING"}), 7.5)

    def test_score_key_fallback_and_numeric_string(self):
        self._install(DummyResponse(200, {"score": "6"}))
        self.assertEqual(self._client().predict({}), 6.0)

    def test_error_status_returns_none(self):
        self._install(DummyResponse(503, None, "unavailable"))
        self.assertIsNone(self._client().predict({}))

    def test_transport_error_returns_none(self):
        self._install(exc=requests.exceptions.Timeout("slow"))
        self.assertIsNone(self._client().predict({}))

    def test_non_json_returns_none(self):
        self._install(DummyResponse(200, None, "<html>"))
        self.assertIsNone(self._client().predict({}))

    def test_non_numeric_score_returns_none(self):
        self._install(DummyResponse(200, {"predicted_score": "great"}))
        self.assertIsNone(self._client().predict({}))

    def test_non_finite_scores_return_none(self):
        for raw in (float("nan"), "nan", "inf", float("-inf")):
            self._install(DummyResponse(200, {"predicted_score": raw}))
            self.assertIsNone(self._client().predict({}), raw)

    def test_out_of_range_scores_are_clamped(self):
        self._install(DummyResponse(200, {"predicted_score": 15}))
        self.assertEqual(self._client().predict({}), 10.0)
        self._install(DummyResponse(200, {"score": -2}))
        self.assertEqual(self._client().predict({}), 0.0)

    def test_boolean_score_returns_none(self):
        self._install(DummyResponse(200, {"predicted_score": True}))
        self.assertIsNone(self._client().predict({}))

    def test_bad_score_never_blocks_report(self):
        from surf_ai.report import build_surf_report, fetch_prediction

        self._install(DummyResponse(200, {"predicted_score": float("nan")}))
        wind = WindReading(speed_knots=8, direction_degrees=240)
        swell = SwellReading(height_feet=5, period_seconds=11)
        tides = [
            TidePrediction(timestamp=dt.datetime(2025, 6, 1, 6, 0), height_feet=5.1, kind=TideKind.HIGH),
            TidePrediction(timestamp=dt.datetime(2025, 6, 1, 12, 0), height_feet=0.3, kind=TideKind.LOW),
        ]
        now = dt.datetime(2025, 6, 1, 9, 0)
        score = fetch_prediction(wind, swell, tides, now=now, client=self._client())
        self.assertIsNone(score)
        report = build_surf_report(wind, swell, tides, now=now, prediction_score=score)
        self.assertFalse(report.verdict.has_prediction)
        self.assertNotIn("ML", report.narrative)


if __name__ == "__main__":
    unittest.main()
