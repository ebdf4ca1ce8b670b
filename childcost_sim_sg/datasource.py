"""Government open-data fetching with a layered fallback chain.

Order of attempts, first success wins:
    1. in-memory cache younger than CACHE_TTL_HOURS
    2. pre-fetched JSON file under data_dir
    3. injected transport (network or proxy), bounded by timeout
    4. embedded static records
    5. last copy persisted in the key-value store

Only results from (2) and (3) refresh the caches. When every layer fails the
result carries no records and an ``error`` marker; fetch() never raises.
"""

import json
import logging
import math
import threading
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Callable

from childcost_sim_sg.rates import DEFAULT_RATE_TABLES, STATIC_CPI_SERIES, RateTables
from childcost_sim_sg.storage import KeyValueStore

logger = logging.getLogger(__name__)

CACHE_TTL_HOURS = 24
DEFAULT_TIMEOUT_SECONDS = 10.0
PERSIST_KEY_PREFIX = "data_cache_"


class DataSource(Enum):
    CPI = "SINGSTAT_CPI"
    CHILDCARE_FEES = "ECDA_CHILDCARE"
    POLY_FEES = "POLY_FEES"


# Pre-fetched file name per source
SOURCE_FILES = {
    DataSource.CPI: "singapore-cpi.json",
    DataSource.CHILDCARE_FEES: "childcare-centres.json",
    DataSource.POLY_FEES: "polytechnic-fees.json",
}

# Numeric fields every record of a source must carry
REQUIRED_FIELDS = {
    DataSource.CPI: ("year", "cpi_value"),
    DataSource.CHILDCARE_FEES: ("full_day_fee",),
    DataSource.POLY_FEES: ("annual_fee_local",),
}

STATIC_RECORDS: dict[DataSource, list[dict[str, str]]] = {
    DataSource.CPI: [
        {"year": str(year), "cpi_value": f"{value:.1f}", "cpi_category": "ALL_ITEMS"}
        for year, value in STATIC_CPI_SERIES.items()
    ],
    DataSource.CHILDCARE_FEES: [
        {"centre_name": "PCF SPARKLETOTS PRESCHOOL @ ADMIRALTY BLK 676",
         "full_day_fee": "800", "half_day_fee": "600"},
        {"centre_name": "PCF SPARKLETOTS PRESCHOOL @ ANG MO KIO BLK 406",
         "full_day_fee": "850", "half_day_fee": "650"},
        {"centre_name": "MY FIRST SKOOL @ BISHAN EAST",
         "full_day_fee": "1200", "half_day_fee": "800"},
        {"centre_name": "LITTLE SKOOL-HOUSE @ MARINA BAY",
         "full_day_fee": "1800", "half_day_fee": "1200"},
    ],
    DataSource.POLY_FEES: [
        {"institution": "NGEE ANN POLYTECHNIC", "annual_fee_local": "2650",
         "annual_fee_international": "13200"},
        {"institution": "TEMASEK POLYTECHNIC", "annual_fee_local": "2650",
         "annual_fee_international": "13200"},
        {"institution": "SINGAPORE POLYTECHNIC", "annual_fee_local": "2650",
         "annual_fee_international": "13200"},
    ],
}

# transport(source, params, timeout) -> payload shaped {"result": {"records": [...]}}
# The client abandons a call that has not returned after `timeout` seconds.
Transport = Callable[[DataSource, dict, float], Any]


@dataclass
class DataResult:
    source: DataSource
    records: list[dict] = field(default_factory=list)
    origin: str = "none"  # memory, file, transport, static, persisted, none
    error: str | None = None
    fetched_at: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.records)


def _finite(value: Any) -> float | None:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _valid_record(source: DataSource, record: Any) -> bool:
    if not isinstance(record, dict):
        return False
    values = {}
    for key in REQUIRED_FIELDS[source]:
        number = _finite(record.get(key))
        if number is None:
            return False
        values[key] = number
    if source == DataSource.CPI:
        return values["year"].is_integer() and values["cpi_value"] > 0
    # fees
    return all(v >= 0 for v in values.values())


def extract_records(source: DataSource, payload: Any) -> list[dict] | None:
    """Return the payload's records, or None when the payload is malformed or partial.

    Required fields must be finite numbers; CPI years must be whole and CPI
    values positive, fees must not be negative.
    """
    if isinstance(payload, dict) and "result" in payload:
        payload = payload["result"]
    if isinstance(payload, dict):
        payload = payload.get("records")
    if not isinstance(payload, list) or not payload:
        return None
    if not all(_valid_record(source, record) for record in payload):
        return None
    return [dict(r) for r in payload]


def cpi_series_from_records(records: list[dict]) -> dict[int, float]:
    """Year → CPI value from CPI records, skipping unusable entries."""
    series: dict[int, float] = {}
    for record in records:
        if not _valid_record(DataSource.CPI, record):
            continue
        series[int(float(record["year"]))] = float(record["cpi_value"])
    return series


class DataSourceClient:
    """Fetches data sources through the fallback chain. Safe to share across threads."""

    def __init__(
        self,
        data_dir: Path | None = None,
        transport: Transport | None = None,
        store: KeyValueStore | None = None,
        static_records: dict[DataSource, list[dict]] | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.data_dir = Path(data_dir) if data_dir is not None else None
        self.transport = transport
        self.store = store
        self.static_records = STATIC_RECORDS if static_records is None else static_records
        self.timeout = timeout
        self.clock = clock
        self._lock = threading.Lock()
        self._memory: dict[DataSource, tuple[float, list[dict]]] = {}
        # Bumped by cancel(); a fetch only writes the cache if it is unchanged
        self._generation = 0

    def fetch(self, source: DataSource, params: dict | None = None) -> DataResult:
        params = params or {}
        with self._lock:
            generation = self._generation
            cached = self._memory.get(source)
        now = self.clock()
        if cached is not None and now - cached[0] < CACHE_TTL_HOURS * 3600:
            return DataResult(source, list(cached[1]), "memory", fetched_at=cached[0])

        for origin, loader in (("file", self._load_file), ("transport", self._load_transport)):
            records = loader(source, params)
            if records is None:
                continue
            with self._lock:
                if generation != self._generation:
                    logger.info("Fetch of %s cancelled; cache left unchanged", source.value)
                    return DataResult(source, origin=origin, error="cancelled")
                self._memory[source] = (now, records)
            self._persist(source, now, records)
            return DataResult(source, records, origin, fetched_at=now)

        records = extract_records(source, {"records": self.static_records.get(source)})
        if records is not None:
            logger.warning("Using embedded static data for %s", source.value)
            return DataResult(source, records, "static", fetched_at=now)

        persisted = self._load_persisted(source)
        if persisted is not None:
            timestamp, records = persisted
            logger.warning("All sources failed for %s; using persisted copy", source.value)
            return DataResult(source, records, "persisted", fetched_at=timestamp)

        logger.warning("No data available for %s", source.value)
        return DataResult(source, error=f"No data available for {source.value}", fetched_at=now)

    def cancel(self) -> None:
        """Abandon any in-flight fetch; its result will not be cached."""
        with self._lock:
            self._generation += 1

    def clear_cache(self) -> None:
        with self._lock:
            self._memory.clear()
        if self.store is not None:
            for source in DataSource:
                self.store.remove(PERSIST_KEY_PREFIX + source.value)

    def _load_file(self, source: DataSource, params: dict) -> list[dict] | None:
        if self.data_dir is None:
            return None
        path = self.data_dir / SOURCE_FILES[source]
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Cannot read %s: %s", path, e)
            return None
        records = extract_records(source, payload)
        if records is None:
            logger.warning("Discarding malformed data file %s", path)
        return records

    def _load_transport(self, source: DataSource, params: dict) -> list[dict] | None:
        if self.transport is None:
            return None
        try:
            payload = self._call_transport(source, params)
        except Exception as e:
            logger.warning("Transport fetch failed for %s: %s", source.value, e)
            return None
        records = extract_records(source, payload)
        if records is None:
            logger.warning("Discarding malformed transport payload for %s", source.value)
        return records

    def _call_transport(self, source: DataSource, params: dict) -> Any:
        """Run the transport on a daemon thread and give up after ``timeout`` seconds.

        A transport that overruns keeps running in the background; its late
        result is dropped.
        """
        outcome: dict[str, Any] = {}

        def run():
            try:
                outcome["payload"] = self.transport(source, params, self.timeout)
            except Exception as e:
                outcome["error"] = e

        worker = threading.Thread(target=run, daemon=True, name=f"fetch-{source.value}")
        worker.start()
        worker.join(self.timeout)
        if worker.is_alive():
            raise TimeoutError(f"no response within {self.timeout:g}s")
        if "error" in outcome:
            raise outcome["error"]
        return outcome.get("payload")

    def _persist(self,source: DataSource, timestamp: float, records: list[dict]) -> None:
        if self.store is None:
            return
        self.store.set(PERSIST_KEY_PREFIX + source.value, {"timestamp": timestamp, "records": records})

    def _load_persisted(self, source: DataSource) -> tuple[float, list[dict]] | None:
        if self.store is None:
            return None
        raw = self.store.get(PERSIST_KEY_PREFIX + source.value)
        if not isinstance(raw, dict):
            return None
        records = extract_records(source, raw.get("records"))
        if records is None:
            return None
        return float(raw.get("timestamp", 0.0)), records


def _mean_field(records: list[dict], key: str) -> float | None:
    values = [_finite(record.get(key)) for record in records]
    values = [v for v in values if v is not None and v >= 0]
    return sum(values) / len(values) if values else None


def refresh_rate_tables(
    client: DataSourceClient, base: RateTables = DEFAULT_RATE_TABLES,
) -> RateTables:
    """Build rate tables with the CPI series and average fees from fetched data.

    Fields whose source returned no usable records keep the base values.
    """
    changes: dict[str, Any] = {}

    fetched = cpi_series_from_records(client.fetch(DataSource.CPI).records)
    if fetched:
        series = dict(base.cpi_series)
        series.update(fetched)
        changes["cpi_series"] = series

    childcare = client.fetch(DataSource.CHILDCARE_FEES)
    fee = _mean_field(childcare.records, "full_day_fee")
    if fee is not None:
        changes["childcare_market_fee"] = fee

    poly = client.fetch(DataSource.POLY_FEES)
    local = _mean_field(poly.records, "annual_fee_local")
    if local is not None:
        poly_fees = dict(base.poly_fees)
        poly_fees["citizen"] = local
        international = _mean_field(poly.records, "annual_fee_international")
        if international is not None:
            poly_fees["foreigner"] = international
        changes["poly_fees"] = poly_fees

    return replace(base, **changes) if changes else base
