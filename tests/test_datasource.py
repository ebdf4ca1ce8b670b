"""Tests for the data source fallback chain."""

import json
import math
import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest
from childcost_sim_sg.datasource import (
    PERSIST_KEY_PREFIX,
    DataSource,
    DataSourceClient,
    cpi_series_from_records,
    extract_records,
    refresh_rate_tables,
)
from childcost_sim_sg.inflation import InflationAdjuster
from childcost_sim_sg.storage import MemoryStore

CPI_PAYLOAD = {"result": {"records": [
    {"year": "2025", "cpi_value": "118.4"},
    {"year": "2026", "cpi_value": "121.0"},
]}}


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class CountingTransport:
    def __init__(self, payload=None, error: Exception | None = None):
        self.payload = payload
        self.error = error
        self.calls = []

    def __call__(self, source, params, timeout):
        self.calls.append((source, params, timeout))
        if self.error is not None:
            raise self.error
        return self.payload


def _write(path, name, payload):
    path.mkdir(parents=True, exist_ok=True)
    (path / name).write_text(json.dumps(payload))


class TestExtractRecords:
    def test_valid_payload(self):
        records = extract_records(DataSource.CPI, CPI_PAYLOAD)
        assert len(records) == 2

    def test_bare_record_list(self):
        assert extract_records(DataSource.CPI, CPI_PAYLOAD["result"]["records"]) is not None

    @pytest.mark.parametrize("payload", [
        None,
        {},
        {"result": {"records": []}},
        {"result": {"records": [{"year": "2025"}]}},
        {"result": {"records": [{"year": "2025", "cpi_value": "n/a"}]}},
        {"result": {"records": ["2025"]}},
        "garbage",
        {"result": {"records": [{"year": "inf", "cpi_value": "120"}]}},
        {"result": {"records": [{"year": "2025", "cpi_value": "nan"}]}},
        {"result": {"records": [{"year": "2025.5", "cpi_value": "118"}]}},
        {"result": {"records": [{"year": "2025", "cpi_value": "0"}]}},
        {"result": {"records": [{"year": "2025", "cpi_value": "-3"}]}},
    ])
    def test_malformed_or_partial(self, payload):
        assert extract_records(DataSource.CPI, payload) is None

    @pytest.mark.parametrize("fee", ["-1", "inf", "nan", None])
    def test_bad_fee_rejected(self, fee):
        payload = [{"full_day_fee": "800"}, {"full_day_fee": fee}]
        assert extract_records(DataSource.CHILDCARE_FEES, payload) is None

    def test_cpi_series_skips_unusable(self):
        records = [
            {"year": "2025", "cpi_value": "118.4"},
            {"year": "inf", "cpi_value": "120"},
            {"year": "2026", "cpi_value": "nan"},
        ]
        assert cpi_series_from_records(records) == {2025: 118.4}


class TestFallbackChain:
    def test_file_then_memory(self, tmp_path):
        _write(tmp_path, "singapore-cpi.json", CPI_PAYLOAD)
        client = DataSourceClient(data_dir=tmp_path)
        assert client.fetch(DataSource.CPI).origin == "file"
        assert client.fetch(DataSource.CPI).origin == "memory"

    def test_memory_cache_expires_after_24_hours(self, tmp_path):
        _write(tmp_path, "singapore-cpi.json", CPI_PAYLOAD)
        clock = FakeClock()
        client = DataSourceClient(data_dir=tmp_path, clock=clock)
        client.fetch(DataSource.CPI)
        clock.now += 23 * 3600
        assert client.fetch(DataSource.CPI).origin == "memory"
        clock.now += 2 * 3600
        assert client.fetch(DataSource.CPI).origin == "file"

    def test_transport_when_no_file(self, tmp_path):
        transport = CountingTransport(CPI_PAYLOAD)
        client = DataSourceClient(data_dir=tmp_path, transport=transport, timeout=3.0)
        result = client.fetch(DataSource.CPI, {"limit": 10})
        assert result.origin == "transport"
        assert result.ok
        assert transport.calls == [(DataSource.CPI, {"limit": 10}, 3.0)]

    def test_transport_error_falls_back_to_static(self, caplog):
        client = DataSourceClient(transport=CountingTransport(error=TimeoutError("slow")))
        result = client.fetch(DataSource.CPI)
        assert result.origin == "static"
        assert result.error is None
        assert "Transport fetch failed" in caplog.text

    def test_malformed_transport_payload_discarded(self):
        bad = {"result": {"records": [{"year": "2026"}]}}
        client = DataSourceClient(transport=CountingTransport(bad))
        assert client.fetch(DataSource.CPI).origin == "static"

    @pytest.mark.parametrize("record", [
        {"year": "inf", "cpi_value": "120"},
        {"year": "2026", "cpi_value": "nan"},
    ])
    def test_non_finite_transport_payload_not_cached(self, record):
        """Falls back to static data; nothing reaches the caches or the CPI table."""
        store = MemoryStore()
        client = DataSourceClient(transport=CountingTransport([record]), store=store)
        assert client.fetch(DataSource.CPI).origin == "static"
        assert store.get(PERSIST_KEY_PREFIX + "SINGSTAT_CPI") is None
        adjuster = InflationAdjuster(client=client)
        assert adjuster.refresh() is True
        assert math.isfinite(adjuster.adjust(100, 2025, 2030))

    def test_slow_transport_abandoned_after_timeout(self):
        release = threading.Event()

        def hanging_transport(source, params, timeout):
            release.wait(5)
            return CPI_PAYLOAD

        client = DataSourceClient(transport=hanging_transport, timeout=0.05)
        started = time.monotonic()
        result = client.fetch(DataSource.CPI)
        elapsed = time.monotonic() - started
        release.set()
        assert result.origin == "static"
        assert elapsed < 2

    def test_malformed_file_discarded(self, tmp_path):
        (tmp_path / "singapore-cpi.json").write_text("{not json")
        client = DataSourceClient(data_dir=tmp_path)
        assert client.fetch(DataSource.CPI).origin == "static"

    def test_successful_fetch_persists(self, tmp_path):
        _write(tmp_path, "singapore-cpi.json", CPI_PAYLOAD)
        store = MemoryStore()
        DataSourceClient(data_dir=tmp_path, store=store).fetch(DataSource.CPI)
        persisted = store.get(PERSIST_KEY_PREFIX + "SINGSTAT_CPI")
        assert len(persisted["records"]) == 2

    def test_static_result_not_persisted(self):
        store = MemoryStore()
        DataSourceClient(store=store).fetch(DataSource.CPI)
        assert store.get(PERSIST_KEY_PREFIX + "SINGSTAT_CPI") is None

    def test_persisted_copy_is_last_resort(self, tmp_path):
        _write(tmp_path, "singapore-cpi.json", CPI_PAYLOAD)
        store = MemoryStore()
        DataSourceClient(data_dir=tmp_path, store=store).fetch(DataSource.CPI)

        offline = DataSourceClient(store=store, static_records={})
        result = offline.fetch(DataSource.CPI)
        assert result.origin == "persisted"
        assert result.records[1]["cpi_value"] == "121.0"

    def test_all_layers_fail(self, tmp_path):
        client = DataSourceClient(
            data_dir=tmp_path,
            transport=CountingTransport(error=OSError("offline")),
            store=MemoryStore(),
            static_records={},
        )
        result = client.fetch(DataSource.CPI)
        assert result.records == []
        assert result.error == "No data available for SINGSTAT_CPI"
        assert not result.ok


class TestCancelAndClear:
    def test_cancel_during_fetch_skips_cache(self):
        store = MemoryStore()
        client = None

        def cancelling_transport(source, params, timeout):
            client.cancel()
            return CPI_PAYLOAD

        client = DataSourceClient(transport=cancelling_transport, store=store)
        result = client.fetch(DataSource.CPI)
        assert result.error == "cancelled"
        assert result.records == []
        assert store.get(PERSIST_KEY_PREFIX + "SINGSTAT_CPI") is None

    def test_fetch_after_cancel_works(self):
        transport = CountingTransport(CPI_PAYLOAD)
        client = DataSourceClient(transport=transport)
        client.cancel()
        assert client.fetch(DataSource.CPI).origin == "transport"

    def test_clear_cache(self, tmp_path):
        _write(tmp_path, "singapore-cpi.json", CPI_PAYLOAD)
        store = MemoryStore()
        client = DataSourceClient(data_dir=tmp_path, store=store)
        client.fetch(DataSource.CPI)
        client.clear_cache()
        assert store.get(PERSIST_KEY_PREFIX + "SINGSTAT_CPI") is None
        assert client.fetch(DataSource.CPI).origin == "file"


class TestConcurrentAccess:
    def test_shared_client(self, tmp_path):
        _write(tmp_path, "singapore-cpi.json", CPI_PAYLOAD)
        client = DataSourceClient(data_dir=tmp_path)
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: client.fetch(DataSource.CPI), range(32)))
        assert all(r.ok for r in results)
        assert all(len(r.records) == 2 for r in results)


class TestRefreshRateTables:
    def test_static_data(self):
        rates = refresh_rate_tables(DataSourceClient())
        assert rates.childcare_market_fee == pytest.approx((800 + 850 + 1200 + 1800) / 4)
        assert rates.poly_fees["citizen"] == pytest.approx(2650)
        assert rates.poly_fees["foreigner"] == pytest.approx(13200)
        assert rates.poly_fees["pr"] == pytest.approx(6210)
        assert rates.cpi_series[2025] == pytest.approx(118.0)

    def test_fetched_cpi_overrides(self, tmp_path):
        _write(tmp_path, "singapore-cpi.json", CPI_PAYLOAD)
        rates = refresh_rate_tables(DataSourceClient(data_dir=tmp_path))
        assert rates.cpi_series[2026] == pytest.approx(121.0)
        assert rates.cpi_series[2025] == pytest.approx(118.4)
        assert rates.cpi_series[2019] == pytest.approx(100.0)

    def test_unusable_cpi_file_keeps_projection_finite(self, tmp_path):
        """A NaN index is discarded, so 2030 is extrapolated from the embedded series."""
        _write(tmp_path, "singapore-cpi.json", [{"year": "2030", "cpi_value": "nan"}])
        rates = refresh_rate_tables(DataSourceClient(data_dir=tmp_path))
        assert 2030 not in rates.cpi_series
        value = InflationAdjuster(rates).adjust(100, 2025, 2030)
        assert value == pytest.approx(100 * 1.024 ** 5)

    def test_nothing_available_keeps_base(self):
        from childcost_sim_sg.rates import DEFAULT_RATE_TABLES
        rates = refresh_rate_tables(DataSourceClient(static_records={}))
        assert rates is DEFAULT_RATE_TABLES
