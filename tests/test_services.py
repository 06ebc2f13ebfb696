"""
Service layer tests.

Tests the cache, the widening-window policy and the services that orchestrate
upstream fetching, normalization and the glacier model.
"""

import pytest  # type: ignore
from unittest.mock import Mock
from datetime import date, datetime, timedelta

import pytz
import requests  # type: ignore

from src.glacier_forecast.models import Glacier, ObservationDay, Station, TemperatureReading
from src.glacier_forecast.services import (
    GlacierCatalog,
    GlacierNotFoundError,
    GlacierService,
    NveService,
    ObservationService,
    TTLCache,
    WindowFetcher,
    haversine_km,
)
from src.glacier_forecast.services.observation_service import STATIONS_CACHE_KEY


END = pytz.UTC.localize(datetime(2024, 6, 3, 15, 0))


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class TestTTLCache:
    """Test the in-process TTL cache."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def cache(self, clock):
        return TTLCache(clock=clock)

    def test_get_before_expiry(self, cache, clock):
        cache.set("k", {"v": 1}, 60)
        clock.advance(60)

        assert cache.get("k") == {"v": 1}
        assert "k" in cache

    def test_lazy_expiry_on_read(self, cache, clock):
        cache.set("k", "value", 60)
        clock.advance(61)

        assert len(cache) == 1
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_missing_key(self, cache):
        assert cache.get("missing") is None
        assert "missing" not in cache

    def test_sweep_evicts_expired_only(self, cache, clock):
        cache.set("short", 1, 10)
        cache.set("long", 2, 100)
        clock.advance(50)

        assert cache.sweep() == 1
        assert len(cache) == 1
        assert cache.get("long") == 2

    def test_get_or_set_calls_factory_once(self, cache, clock):
        factory = Mock(return_value=[1, 2, 3])

        assert cache.get_or_set("k", factory, 30) == [1, 2, 3]
        assert cache.get_or_set("k", factory, 30) == [1, 2, 3]
        factory.assert_called_once()

        clock.advance(31)
        cache.get_or_set("k", factory, 30)
        assert factory.call_count == 2

    def test_get_or_set_keeps_stored_none(self, cache):
        factory = Mock(return_value=None)

        assert cache.get_or_set("k", factory, 30) is None
        assert cache.get_or_set("k", factory, 30) is None
        factory.assert_called_once()
        assert "k" in cache

    def test_set_sweeps_expired_entries_after_interval(self, clock):
        cache = TTLCache(clock=clock, sweep_interval=60)
        cache.set("glacier-model:g1:nearest:2024-06-01", "old", 30)
        clock.advance(61)

        cache.set("glacier-model:g1:nearest:2024-06-02", "new", 30)

        assert len(cache) == 1
        assert cache.get("glacier-model:g1:nearest:2024-06-02") == "new"

    def test_set_does_not_sweep_before_interval(self, clock):
        cache = TTLCache(clock=clock, sweep_interval=60)
        cache.set("old", 1, 10)
        clock.advance(30)

        cache.set("new", 2, 10)

        assert len(cache) == 2

    def test_factory_error_not_cached(self, cache):
        factory = Mock(side_effect=requests.exceptions.ConnectionError("down"))

        with pytest.raises(requests.exceptions.ConnectionError):
            cache.get_or_set("k", factory, 30)
        assert "k" not in cache

    def test_delete_and_clear(self, cache):
        cache.set("a", 1, 10)
        cache.set("b", 2, 10)

        assert cache.delete("a") is True
        assert cache.delete("a") is False
        cache.clear()
        assert len(cache) == 0

    def test_negative_ttl_rejected(self, cache):
        with pytest.raises(ValueError):
            cache.set("k", 1, -1)


class TestWindowFetcher:
    """Test the widening-window fetch policy."""

    def test_first_non_empty_wins(self):
        fetch = Mock(side_effect=lambda w: [] if w < 30 else [w])
        fetcher = WindowFetcher([14, 30, 60], logger=Mock())

        result, window = fetcher.fetch(fetch, [])

        assert result == [30]
        assert window == 30
        assert [c.args[0] for c in fetch.call_args_list] == [14, 30]

    def test_request_error_moves_to_next_window(self):
        fetch = Mock(side_effect=[requests.exceptions.Timeout("slow"), ["data"]])
        fetcher = WindowFetcher([12, 24], logger=Mock())

        assert fetcher.fetch(fetch, []) == (["data"], 24)

    def test_all_empty(self):
        fetcher = WindowFetcher([1, 2, 3], logger=Mock())

        assert fetcher.fetch(lambda w: [], []) == ([], None)

    def test_custom_emptiness(self):
        fetcher = WindowFetcher([1, 2], is_empty=lambda r: r is None, logger=Mock())

        assert fetcher.fetch(lambda w: 0 if w == 1 else None, None) == (0, 1)

    def test_mixed_failure_and_empty_returns_empty(self):
        fetch = Mock(side_effect=[requests.exceptions.Timeout("slow"), []])
        fetcher = WindowFetcher([12, 24], logger=Mock())

        assert fetcher.fetch(fetch, []) == ([], None)

    def test_every_window_failing_raises_last_error(self):
        fetch = Mock(side_effect=[
            requests.exceptions.Timeout("slow"),
            requests.exceptions.ConnectionError("down"),
        ])
        fetcher = WindowFetcher([12, 24], logger=Mock())

        with pytest.raises(requests.exceptions.ConnectionError):
            fetcher.fetch(fetch, [])

    def test_other_errors_propagate(self):
        fetcher = WindowFetcher([1, 2], logger=Mock())

        with pytest.raises(KeyError):
            fetcher.fetch(Mock(side_effect=KeyError("bug")), [])

    def test_windows_required(self):
        with pytest.raises(ValueError):
            WindowFetcher([])


class TestObservationService:
    """Test the Frost observation service with a mocked client."""

    @pytest.fixture
    def frost(self):
        return Mock()

    @pytest.fixture
    def service(self, frost):
        return ObservationService(frost=frost, cache=TTLCache(clock=FakeClock()), logger=Mock())

    def test_reduce_latest(self):
        payload = {"data": [
            {"referenceTime": "2024-06-01T10:00:00Z", "observations": [
                {"elementId": "air_temperature", "value": 1.0, "unit": "degC"},
                {"elementId": "wind_speed", "value": 3.0, "unit": "m/s"},
            ]},
            {"referenceTime": "2024-06-01T11:00:00Z", "observations": [
                {"elementId": "air_temperature", "value": 2.0, "unit": "degC"},
            ]},
            {"referenceTime": "2024-06-01T09:00:00Z", "observations": [
                {"elementId": "air_temperature", "value": 0.0, "unit": "degC"},
            ]},
        ]}

        latest = ObservationService.reduce_latest(payload)

        assert latest["air_temperature"] == {"value": 2.0, "unit": "degC", "time": "2024-06-01T11:00:00Z"}
        assert latest["wind_speed"]["value"] == 3.0

    def test_sum_precipitation_hourly(self):
        payload = {"data": [
            {"referenceTime": f"2024-06-01T{h:02d}:00:00Z", "observations": [
                {"elementId": "sum(precipitation_amount PT1H)", "value": 0.5, "unit": "mm"},
            ]}
            for h in range(4)
        ]}

        result = ObservationService.sum_precipitation_hourly(payload, now=END)

        assert result["elementId"] == "sum(precipitation_amount P1D)"
        assert result["value"] == pytest.approx(2.0)
        assert result["time"] == END.isoformat()

    def test_stations_with_latest_temperature_batched_and_cached(self, service, frost):
        sources = [{"id": f"SN{i}", "name": f"S{i}"} for i in range(60)]
        frost.get_sources.return_value = sources

        def observations(ids, element, reference_time):
            return {"data": [
                {"sourceId": s, "referenceTime": "2024-06-01T12:00:00Z",
                 "observations": [{"elementId": "air_temperature", "value": 1.5, "unit": "degC"}]}
                for s in ids[:1]
            ]}

        frost.get_observations.side_effect = observations

        stations = service.get_stations_with_latest_temperature()

        assert len(stations) == 60
        assert frost.get_observations.call_count == 2
        assert [len(c.args[0]) for c in frost.get_observations.call_args_list] == [50, 10]
        assert stations[0]["latestTemperature"]["value"] == 1.5
        assert stations[1]["latestTemperature"] is None
        assert stations[50]["latestTemperature"]["time"] == "2024-06-01T12:00:00Z"

        assert service.get_stations_with_latest_temperature() is stations
        frost.get_sources.assert_called_once()
        assert STATIONS_CACHE_KEY in service.cache

    def test_latest_batch_failure_degrades(self, service, frost):
        frost.get_observations.side_effect = requests.exceptions.ConnectionError("down")

        assert service.fetch_latest_batch(["SN1"], end=END) == {}

    def test_station_list_failure_propagates(self, service, frost):
        frost.get_sources.side_effect = requests.exceptions.HTTPError("500")

        with pytest.raises(requests.exceptions.HTTPError):
            service.get_stations_with_latest_temperature()

    def test_station_observations(self, service, frost, frost_observations):
        frost.get_observations.return_value = frost_observations

        result = service.get_station_observations("SN55700", ["mean(air_temperature P1D)"], end=END)

        assert result["stationId"] == "SN55700"
        assert result["latest"]["mean(air_temperature P1D)"]["value"] == 2.5
        assert frost.get_observations.call_args.args[2] == "2024-06-02T15:00:00Z/2024-06-03T15:00:00Z"

    def test_station_observations_sum_hourly_precipitation(self, service, frost):
        frost.get_observations.return_value = {"data": [
            {"referenceTime": f"2024-06-03T{h:02d}:00:00Z", "observations": [
                {"elementId": "sum(precipitation_amount PT1H)", "value": 1.25, "unit": "mm"},
            ]}
            for h in range(4)
        ]}

        latest = service.get_station_observations("SN1", end=END)["latest"]

        assert latest["sum(precipitation_amount PT1H)"]["value"] == 1.25
        assert latest["sum(precipitation_amount P1D)"] == {
            "value": pytest.approx(5.0),
            "unit": "mm",
            "time": END.isoformat(),
        }

    def test_station_observations_failure(self, service, frost):
        frost.get_observations.side_effect = requests.exceptions.Timeout("slow")

        assert service.get_station_observations("SN1", end=END) == {"stationId": "SN1", "latest": {}}

    def test_daily_series_widens_window(self, service, frost, frost_observations):
        frost.get_observations.side_effect = [{"data": [], "warning": "No data available"}, frost_observations]

        series = service.fetch_daily_series("SN55700", end=END)

        assert [d.date for d in series] == [date(2024, 6, 1), date(2024, 6, 2), date(2024, 6, 3)]
        first, second = frost.get_observations.call_args_list
        assert first.args[2] == "2024-05-21T00:00:00Z/2024-06-04T00:00:00Z"
        assert second.args[2] == "2024-05-05T00:00:00Z/2024-06-04T00:00:00Z"
        assert first.args[1] == ["mean(air_temperature P1D)", "sum(precipitation_amount P1D)"]
        assert first.kwargs == {"time_offsets": "default", "levels": "default"}

    def test_daily_series_single_daily_sum_per_day(self, service, frost):
        frost.get_observations.return_value = {"data": [
            {"sourceId": "SN55700:0", "referenceTime": "2024-06-02T00:00:00.000Z", "observations": [
                {"elementId": "mean(air_temperature P1D)", "value": 3.0, "timeOffset": "PT0H"},
                {"elementId": "sum(precipitation_amount P1D)", "value": 10.0, "timeOffset": "PT6H"},
                {"elementId": "sum(precipitation_amount P1D)", "value": 10.0, "timeOffset": "PT18H"},
            ]},
        ]}

        series = service.fetch_daily_series("SN55700", end=END)

        assert series == [ObservationDay(date(2024, 6, 2), T=3.0, P=10.0)]

    def test_daily_series_every_window_failing_raises(self, service, frost):
        frost.get_observations.side_effect = requests.exceptions.ConnectionError("down")

        with pytest.raises(requests.exceptions.ConnectionError):
            service.fetch_daily_series("SN1", end=END)
        assert frost.get_observations.call_count == 3

    def test_daily_series_trimmed_to_history(self, service, frost):
        start = datetime(2024, 5, 1)
        rows = [
            {"referenceTime": (start + timedelta(days=i)).strftime("%Y-%m-%dT00:00:00Z"),
             "observations": [{"elementId": "mean(air_temperature P1D)", "value": float(i)}]}
            for i in range(20)
        ]
        frost.get_observations.return_value = {"data": rows}

        series = service.fetch_daily_series("SN1", end=END)

        assert len(series) == 14
        assert series[-1].T == 19.0

    def test_daily_series_all_windows_empty(self, service, frost):
        frost.get_observations.return_value = {"data": []}

        assert service.fetch_daily_series("SN1", end=END) == []
        assert frost.get_observations.call_count == 3

    def test_latest_temperature(self, service, frost):
        frost.get_observations.side_effect = [
            requests.exceptions.Timeout("slow"),
            {"data": [{"referenceTime": "2024-06-03T14:00:00Z", "observations": [
                {"elementId": "air_temperature", "value": -0.4}]}]},
        ]

        reading = service.fetch_latest_temperature("SN1", end=END)

        assert reading.celsius == -0.4
        assert frost.get_observations.call_args.args[2] == "2024-06-02T15:00:00Z/2024-06-03T15:00:00Z"

    def test_latest_temperature_none(self, service, frost):
        frost.get_observations.return_value = {"data": []}

        assert service.fetch_latest_temperature("SN1", end=END) is None


class TestNveService:
    """Test the NVE service with a mocked client."""

    @pytest.fixture
    def nve(self):
        client = Mock()
        client.get_stations.return_value = [
            {"stationId": "2.11.0"},
            {"stationId": " "},
            {"stationId": None},
            {"stationId": "12.207.0"},
        ]
        client.get_observations.return_value = [{"stationId": "2.11.0", "observations": []}]
        return client

    @pytest.fixture
    def service(self, nve):
        return NveService(nve=nve, cache=TTLCache(clock=FakeClock()), logger=Mock())

    def test_stations_cached(self, service, nve):
        service.get_stations()
        service.get_stations()

        nve.get_stations.assert_called_once()

    def test_station_ids_skip_blanks(self, service):
        assert service.get_station_ids() == ["2.11.0", "12.207.0"]

    def test_latest(self, service, nve):
        result = service.get_latest("1000", 60, "P1D/")

        assert result == [{"stationId": "2.11.0", "observations": []}]
        nve.get_observations.assert_called_once_with(
            ["2.11.0", "12.207.0"],
            parameters="1000",
            resolution_time=60,
            reference_time="P1D/",
        )

    def test_latest_without_stations(self, nve):
        nve.get_stations.return_value = []
        service = NveService(nve=nve, cache=TTLCache(), logger=Mock())

        with pytest.raises(ValueError, match="No valid station IDs found"):
            service.get_latest()


class TestGlacierCatalog:
    """Test the static glacier dataset."""

    @pytest.fixture
    def catalog(self, glaciers_geojson):
        return GlacierCatalog.from_geojson(glaciers_geojson, logger=Mock())

    def test_haversine_one_degree_latitude(self):
        assert haversine_km(60.0, 7.0, 61.0, 7.0) == pytest.approx(111.195, rel=1e-3)
        assert haversine_km(60.0, 7.0, 60.0, 7.0) == 0.0

    def test_loads_polygons_and_multipolygons(self, catalog):
        assert len(catalog) == 4
        nigardsbreen = catalog.get("2297")
        assert nigardsbreen.latitude == pytest.approx(61.70)
        assert nigardsbreen.longitude == pytest.approx(7.15)
        assert nigardsbreen.elevation == 1550.0
        assert catalog.get("1094").name == "Engabreen"

    def test_incomplete_features_skipped(self):
        data = {"features": [
            {"properties": {"id": "a", "name": "No elevation"},
             "geometry": {"type": "Point", "coordinates": [7.0, 61.0]}},
            {"properties": {"name": "No id", "elevation": 1000},
             "geometry": {"type": "Point", "coordinates": [7.0, 61.0]}},
            {"properties": {"id": "c", "elevation": 1000}, "geometry": None},
            {"properties": {"glacier_id": 7, "mean_elevation": "1200"},
             "geometry": {"type": "Point", "coordinates": [7.0, 61.0]}},
        ]}

        catalog = GlacierCatalog.from_geojson(data, logger=Mock())

        assert len(catalog) == 1
        glacier = catalog.get("7")
        assert glacier.name == "7"
        assert glacier.elevation == 1200.0

    def test_nearest(self, catalog):
        nearest = catalog.nearest(61.70, 7.15, limit=2)

        assert [g.id for g, _ in nearest] == ["2297", "3133"]
        assert nearest[0][1] == pytest.approx(0.0, abs=1e-6)
        assert nearest[0][1] < nearest[1][1]

    def test_nearest_station_requires_elevation(self, catalog, frost_sources):
        stations = [Station.from_frost_source(s) for s in frost_sources["data"]]

        station, distance = GlacierCatalog.nearest_station(catalog.get("2297"), stations)

        assert station.id == "SN55700"
        assert 20 < distance < 50

    def test_nearest_station_none(self, catalog):
        assert GlacierCatalog.nearest_station(catalog.get("2297"), [Station("SN1", "x")]) is None

    def test_from_file(self, fixtures_dir):
        assert len(GlacierCatalog.from_file(str(fixtures_dir / "glaciers.geojson"), logger=Mock())) == 4

    def test_from_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            GlacierCatalog.from_file(str(tmp_path / "missing.geojson"))


class TestGlacierService:
    """Test per-glacier model assembly and degradation."""

    @pytest.fixture
    def catalog(self):
        return GlacierCatalog([Glacier("g1", "Testbreen", 61.70, 7.15, 1507.0)], logger=Mock())

    @pytest.fixture
    def observations(self, frost_sources):
        obs = Mock()
        obs.get_stations.return_value = frost_sources["data"]
        obs.fetch_daily_series.return_value = [
            ObservationDay(date(2024, 6, 1), T=10.0, P=0.0),
            ObservationDay(date(2024, 6, 2), T=12.0, P=4.0),
        ]
        obs.fetch_latest_temperature.return_value = TemperatureReading(END, 11.0)
        return obs

    @pytest.fixture
    def service(self, catalog, observations):
        return GlacierService(
            catalog=catalog,
            observations=observations,
            cache=TTLCache(clock=FakeClock()),
            logger=Mock(),
        )

    def test_full_model_from_nearest_station(self, service, observations):
        result = service.get_model("g1", end=END)

        assert result["dataQuality"] == "full"
        assert result["glacier_name"] == "Testbreen"
        assert len(result["history"]) == 2
        # 1500 m above SKJOLDEN (7 m a.s.l.)
        assert result["today"]["T"] == pytest.approx(12.0 - 0.0065 * 1500.0)
        observations.fetch_daily_series.assert_called_once_with("SN55700", end=END)
        observations.fetch_latest_temperature.assert_not_called()

    def test_result_cached(self, service, observations):
        first = service.get_model("g1", end=END)
        second = service.get_model("g1", end=END)

        assert first is second
        observations.fetch_daily_series.assert_called_once()

    def test_explicit_station(self, service, observations):
        service.get_model("g1", station_id="SN49800", end=END)

        observations.fetch_daily_series.assert_called_once_with("SN49800", end=END)

    def test_unknown_station_gives_none(self, service, observations):
        result = service.get_model("g1", station_id="SN99999", end=END)

        assert result["dataQuality"] == "none"
        observations.fetch_daily_series.assert_not_called()

    def test_series_failure_falls_back_to_latest(self, service, observations):
        observations.fetch_daily_series.side_effect = requests.exceptions.ConnectionError("down")

        result = service.get_model("g1", end=END)

        assert result["dataQuality"] == "today-only"
        assert result["history"] == []
        assert result["today"]["date"] == "2024-06-03"

    def test_temperature_only_series(self, service, observations):
        observations.fetch_daily_series.return_value = [ObservationDay(date(2024, 6, 1), T=5.0)]

        assert service.get_model("g1", end=END)["dataQuality"] == "temp-only"

    def test_all_failures_give_none(self, service, observations):
        observations.fetch_daily_series.side_effect = requests.exceptions.ConnectionError("down")
        observations.fetch_latest_temperature.side_effect = requests.exceptions.ConnectionError("down")

        result = service.get_model("g1", end=END)

        assert result["dataQuality"] == "none"
        assert result["today"] is None

    def test_station_lookup_failure_gives_none(self, service, observations):
        observations.get_stations.side_effect = requests.exceptions.HTTPError("503")

        assert service.get_model("g1", end=END)["dataQuality"] == "none"

    def test_station_lookup_failure_not_cached(self, service, observations, frost_sources):
        observations.get_stations.side_effect = requests.exceptions.ConnectionError("down")
        assert service.get_model("g1", end=END)["dataQuality"] == "none"

        observations.get_stations.side_effect = None
        observations.get_stations.return_value = frost_sources["data"]

        assert service.get_model("g1", end=END)["dataQuality"] == "full"

    def test_series_failure_not_cached(self, service, observations):
        good_series = observations.fetch_daily_series.return_value
        observations.fetch_daily_series.side_effect = requests.exceptions.ConnectionError("down")
        assert service.get_model("g1", end=END)["dataQuality"] == "today-only"

        observations.fetch_daily_series.side_effect = None
        observations.fetch_daily_series.return_value = good_series

        assert service.get_model("g1", end=END)["dataQuality"] == "full"
        assert observations.fetch_daily_series.call_count == 2

    def test_empty_answer_is_cached(self, service, observations):
        observations.fetch_daily_series.return_value = []
        observations.fetch_latest_temperature.return_value = None

        first = service.get_model("g1", end=END)
        second = service.get_model("g1", end=END)

        assert first["dataQuality"] == "none"
        assert first is second

    def test_unknown_glacier(self, service):
        with pytest.raises(GlacierNotFoundError):
            service.get_model("nope")

    def test_nearest_glaciers(self, service):
        result = service.nearest_glaciers(61.70, 7.15, limit=3)

        assert len(result) == 1
        assert result[0]["glacier_id"] == "g1"
        assert result[0]["distance_km"] == 0.0
