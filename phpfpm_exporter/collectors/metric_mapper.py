"""Translate parsed status fields into metric observations."""

import logging
from typing import Dict, Iterable, List

from ..exceptions import ObservationConstructionError
from ..utils.metrics import MetricObservation, StatusField
from .metric_catalog import FIELD_MAPPINGS, FieldMapping


class MetricMapper:
    """
    Map status fields onto current and legacy metric observations.

    Stateless; a single instance may be shared by concurrent scrapes.
    """

    def __init__(
        self,
        logger: logging.Logger,
        mappings: Dict[str, FieldMapping] = None
    ):
        """
        Initialize mapper.

        Args:
            logger: Logger instance
            mappings: Field table, FIELD_MAPPINGS by default
        """
        self.logger = logger.getChild(self.__class__.__name__)
        self.mappings = FIELD_MAPPINGS if mappings is None else mappings

    def map(self, fields: Iterable[StatusField]) -> List[MetricObservation]:
        """
        Build observations for every recognized field.

        Unknown fields are dropped. A field whose value or observations cannot
        be built is logged and skipped in both schemas, so current and legacy
        output never diverge.

        Args:
            fields: Parsed status fields

        Returns:
            List[MetricObservation]: Observations in field order, current first
        """
        observations = []
        for status_field in fields:
            mapping = self.mappings.get(status_field.name)
            if mapping is None:
                continue

            try:
                observations.extend(self._field_observations(status_field, mapping))
            except ObservationConstructionError as e:
                self.logger.error(
                    f"Failed to create metrics for status field: {e}",
                    extra={"key": status_field.name}
                )

        return observations

    @staticmethod
    def _field_observations(
        status_field: StatusField,
        mapping: FieldMapping
    ) -> List[MetricObservation]:
        try:
            value = float(status_field.value)
        except (OverflowError, ValueError) as e:
            raise ObservationConstructionError(f"value is not representable as a float: {e}")

        return [
            MetricObservation(
                descriptor=descriptor,
                value=value,
                label_values=mapping.label_values
            )
            for descriptor in mapping.descriptors
        ]
