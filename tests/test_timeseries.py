"""
Tests for time-series ingestion and bucketed queries.
"""

from datetime import datetime, timedelta, timezone

import pytest

from ecoinsight.core.errors import ValidationError
from ecoinsight.timeseries.service import MAX_BUCKETS, normalize_bucket, resolve_range

BASE = "/api/v1/timeseries"


def _point(**overrides):
    return {
        "location": "Oslo",
        "dataType": "temperature",
        "timestamp": "2024-05-01T12:00:00Z",
        "value": 14.5,
        "unit": "celsius",
        "source": "station-7",
        **overrides,
    }


class TestNormalizeBucket:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (None, "1 hour"),
            ("", "1 hour"),
            ("15 minutes", "15 minutes"),
            ("1 hours", "1 hour"),
            ("2 DAY", "2 days"),
            ("30second", "30 seconds"),
        ],
    )
    def test_valid(self, raw, expected):
        assert normalize_bucket(raw) == expected

    @pytest.mark.parametrize("raw", ["0 hours", "1 fortnight", "hour", "1 hour; DROP TABLE x", "-5 minutes"])
    def test_invalid(self, raw):
        with pytest.raises(ValidationError):
            normalize_bucket(raw)


class TestResolveRange:
    def test_defaults_to_last_day(self):
        now = datetime(2024, 5, 2, tzinfo=timezone.utc)
        start, end = resolve_range(None, None, now=now)
        assert end == now
        assert start == now - timedelta(hours=24)

    def test_naive_values_are_utc(self):
        start, end = resolve_range(datetime(2024, 5, 1), datetime(2024, 5, 2))
        assert start.tzinfo is timezone.utc
        assert end.tzinfo is timezone.utc

    def test_start_after_end(self):
        with pytest.raises(ValidationError):
            resolve_range(datetime(2024, 5, 2, tzinfo=timezone.utc), datetime(2024, 5, 1, tzinfo=timezone.utc))


class TestInsertPoint:
    def test_insert(self, client, auth_headers, stores):
        resp = client.post(BASE, json=_point(metadata={"sensor": "a1"}), headers=auth_headers)
        assert resp.status_code == 201
        assert resp.json() == {"success": True, "data": {"id": 1}}
        assert stores.timeseries[0]["metadata"] == {"sensor": "a1"}
        assert stores.timeseries[0]["ts"].tzinfo is not None

    @pytest.mark.parametrize("value", ["abc", None, "NaN"])
    def test_non_numeric_value_rejected(self, client, auth_headers, stores, value):
        resp = client.post(BASE, json=_point(value=value), headers=auth_headers)
        assert resp.status_code == 400
        assert stores.timeseries == []

    def test_requires_auth(self, client, stores):
        assert client.post(BASE, json=_point()).status_code == 401
        assert stores.timeseries == []


class TestQueryBuckets:
    def test_result_never_exceeds_cap(self, client, stores):
        stores.bucket_rows = [
            {"bucket": f"2024-05-01T00:{i % 60:02d}:00+00:00", "value_avg": 1.0, "value_min": 0.0, "value_max": 2.0}
            for i in range(MAX_BUCKETS + 100)
        ]

        resp = client.get(BASE, params={"location": "Oslo", "dataType": "temperature"})

        assert resp.status_code == 200
        assert len(resp.json()["data"]) == MAX_BUCKETS
        call = stores.bucket_calls[0]
        assert call["limit"] == MAX_BUCKETS
        assert call["bucket"] == "1 hour"

    def test_passes_normalized_arguments(self, client, stores):
        resp = client.get(
            BASE,
            params={
                "location": "Oslo",
                "dataType": "temperature",
                "start": "2024-05-01T00:00:00Z",
                "end": "2024-05-02T00:00:00Z",
                "bucket": "15 minute",
            },
        )

        assert resp.status_code == 200
        call = stores.bucket_calls[0]
        assert call["bucket"] == "15 minutes"
        assert call["start"] == datetime(2024, 5, 1, tzinfo=timezone.utc)
        assert call["end"] == datetime(2024, 5, 2, tzinfo=timezone.utc)

    @pytest.mark.parametrize(
        "params",
        [
            {"dataType": "temperature"},
            {"location": "Oslo"},
            {"location": "Oslo", "dataType": "temperature", "bucket": "1 eon"},
            {
                "location": "Oslo",
                "dataType": "temperature",
                "start": "2024-05-02T00:00:00Z",
                "end": "2024-05-01T00:00:00Z",
            },
        ],
    )
    def test_bad_queries_never_reach_the_store(self, client, stores, params):
        resp = client.get(BASE, params=params)
        assert resp.status_code == 400
        assert stores.bucket_calls == []
