"""Tests for the metric mapper and catalog."""

import logging
from unittest.mock import Mock

import pytest

from phpfpm_exporter.collectors import metric_catalog as catalog
from phpfpm_exporter.collectors.metric_catalog import FIELD_MAPPINGS, FieldMapping, all_descriptors
from phpfpm_exporter.collectors.metric_mapper import MetricMapper
from phpfpm_exporter.collectors.status_parser import parse_status
from phpfpm_exporter.exceptions import ObservationConstructionError
from phpfpm_exporter.utils.metrics import MetricObservation, StatusField
from phpfpm_exporter.utils.status import MetricSchema, ValueKind

from tests.payloads import SAMPLE_STATUS


@pytest.fixture
def mapper():
    return MetricMapper(logging.getLogger("test_mapper"))


def _values(observations, fq_name):
    return [(o.labels, o.value) for o in observations if o.descriptor.fq_name == fq_name]


class TestMetricMapper:
    """Test suite for MetricMapper."""

    def test_sample_payload(self, mapper):
        """Test accepted conn, idle and active processes in both schemas."""
        fields = parse_status(b"accepted conn: 5\nidle processes: 2\nactive processes: 3\n")
        observations = mapper.map(fields)

        assert _values(observations, "phpfpm_accepted_connections_total") == [({}, 5.0)]
        assert _values(observations, "phpfpm_accepted_conn") == [({}, 5.0)]
        assert _values(observations, "phpfpm_processes_total") == [
            ({"state": "idle"}, 2.0),
            ({"state": "active"}, 3.0),
        ]
        assert _values(observations, "phpfpm_idle_processes") == [({"state": "idle"}, 2.0)]
        assert _values(observations, "phpfpm_active_processes") == [({"state": "active"}, 3.0)]
        assert len(observations) == 6

    def test_value_kinds(self, mapper):
        observations = mapper.map(parse_status(b"accepted conn: 5\nlisten queue: 1\n"))
        kinds = {o.descriptor.fq_name: o.descriptor.kind for o in observations}

        assert kinds["phpfpm_accepted_connections_total"] is ValueKind.COUNTER
        assert kinds["phpfpm_accepted_conn"] is ValueKind.COUNTER
        assert kinds["phpfpm_listen_queue_connections"] is ValueKind.GAUGE
        assert kinds["phpfpm_listen_queue"] is ValueKind.GAUGE

    def test_current_and_legacy_stay_in_sync(self, mapper):
        """Test that each recognized field has equal current and legacy values."""
        observations = mapper.map(parse_status(SAMPLE_STATUS))

        for field_name, mapping in FIELD_MAPPINGS.items():
            if mapping.current is None:
                continue
            current = [
                o.value for o in observations
                if o.descriptor is mapping.current and o.label_values == mapping.label_values
            ]
            legacy = [o.value for o in observations if o.descriptor is mapping.legacy]
            assert current == legacy, field_name
            assert len(current) == 1, field_name

    def test_total_processes_is_legacy_only(self, mapper):
        observations = mapper.map([StatusField("total processes", 5)])

        assert len(observations) == 1
        assert observations[0].descriptor.fq_name == "phpfpm_total_processes"
        assert observations[0].descriptor.schema is MetricSchema.LEGACY
        assert observations[0].value == 5.0

    def test_unknown_fields_are_dropped(self, mapper):
        assert mapper.map([StatusField("start since", 3521), StatusField("pool", 1)]) == []

    def test_empty_input(self, mapper):
        assert mapper.map([]) == []

    def test_duplicate_fields_produce_duplicate_observations(self, mapper):
        observations = mapper.map([StatusField("slow requests", 1), StatusField("slow requests", 4)])

        assert _values(observations, "phpfpm_slow_requests_total") == [({}, 1.0), ({}, 4.0)]
        assert _values(observations, "phpfpm_slow_requests") == [({}, 1.0), ({}, 4.0)]

    def test_construction_failure_skips_field_in_both_schemas(self):
        """Test that a label mismatch is logged once and the whole field skipped."""
        logger = Mock()
        mappings = {
            "accepted conn": FieldMapping(
                "accepted conn", catalog.ACCEPTED_CONNECTIONS, catalog.LEGACY_IDLE_PROCESSES
            ),
        }
        mapper = MetricMapper(logger, mappings=mappings)

        observations = mapper.map([StatusField("accepted conn", 9), StatusField("other", 1)])

        assert observations == []
        mapper.logger.error.assert_called_once()
        assert mapper.logger.error.call_args[1]["extra"] == {"key": "accepted conn"}

    def test_unrepresentable_value_is_skipped(self):
        """Test that a value too large for a float skips only that field."""
        logger = Mock()
        mapper = MetricMapper(logger)

        observations = mapper.map([
            StatusField("accepted conn", 10 ** 400),
            StatusField("slow requests", 3),
        ])

        assert [o.descriptor.fq_name for o in observations] == [
            "phpfpm_slow_requests_total",
            "phpfpm_slow_requests",
        ]
        mapper.logger.error.assert_called_once()
        assert mapper.logger.error.call_args[1]["extra"] == {"key": "accepted conn"}


class TestMetricObservation:
    """Test suite for observation validation."""

    def test_label_count_mismatch_raises(self):
        with pytest.raises(ObservationConstructionError):
            MetricObservation(catalog.PROCESSES, 1.0)

        with pytest.raises(ObservationConstructionError):
            MetricObservation(catalog.UP, 1.0, ("extra",))

    def test_labels_mapping(self):
        observation = MetricObservation(catalog.PROCESSES, 2.0, ("idle",))
        assert observation.labels == {"state": "idle"}


class TestCatalog:
    """Test suite for the descriptor catalog."""

    def test_all_descriptors(self):
        descriptors = all_descriptors()
        names = [d.fq_name for d in descriptors]

        assert len(descriptors) == 21
        assert len(set(names)) == 21
        assert names[:3] == ["phpfpm_up", "phpfpm_scrape_failures_total", "phpfpm_scrape_failures"]

        current = [d for d in descriptors if d.schema is MetricSchema.CURRENT]
        legacy = [d for d in descriptors if d.schema is MetricSchema.LEGACY]
        assert len(current) == 10
        assert len(legacy) == 11

    def test_current_names(self):
        names = {d.fq_name for d in all_descriptors() if d.schema is MetricSchema.CURRENT}
        assert names == {
            "phpfpm_up",
            "phpfpm_scrape_failures_total",
            "phpfpm_accepted_connections_total",
            "phpfpm_listen_queue_connections",
            "phpfpm_listen_queue_max_connections",
            "phpfpm_listen_queue_length_connections",
            "phpfpm_processes_total",
            "phpfpm_active_max_processes",
            "phpfpm_max_children_reached_total",
            "phpfpm_slow_requests_total",
        }

    def test_mapping_kinds_match_between_schemas(self):
        for mapping in FIELD_MAPPINGS.values():
            if mapping.current is not None:
                assert mapping.current.kind is mapping.legacy.kind
                assert mapping.current.labels == mapping.legacy.labels
