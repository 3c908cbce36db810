"""
Swing Comparator - Compare a subject swing to a model swing

Produces signed differences (subject - model) per metric. No grading:
interpreting the differences is left to the caller.
"""

from dataclasses import dataclass
from typing import Dict, Optional

import pandas as pd

from .angles import Metric, MetricSet


@dataclass(frozen=True)
class DiffSet:
    model_reference_frame: int
    subject_reference_frame: int
    values: Dict[Metric, Optional[float]]

    def __getitem__(self, metric) -> Optional[float]:
        if isinstance(metric, str):
            metric = Metric.from_key(metric)
        return self.values[metric]

    def to_record(self) -> Dict:
        """Flat record; a metric unavailable on either side is None."""
        record = {'model_reference_frame': self.model_reference_frame,
                  'subject_reference_frame': self.subject_reference_frame}
        record.update({m.key: self.values.get(m) for m in Metric})
        return record


class SwingComparator:
    """
    Compare two MetricSets computed with the same handedness convention.
    """

    def compare(self, model: MetricSet, subject: MetricSet) -> DiffSet:
        """
        Signed difference per metric.

        Args:
            model: Metrics of the reference swing
            subject: Metrics of the swing under evaluation

        Returns:
            DiffSet with subject - model, None where either side is unavailable
        """
        values = {}
        for metric in Metric:
            a, b = model[metric], subject[metric]
            values[metric] = None if a is None or b is None else b - a
        return DiffSet(model.reference_frame, subject.reference_frame, values)

    def comparison_table(self, model: MetricSet, subject: MetricSet) -> pd.DataFrame:
        """One row per metric: category, unit, model, subject, difference."""
        diff = self.compare(model, subject)
        rows = []
        for metric in Metric:
            rows.append({
                'metric': metric.key,
                'category': metric.category.value,
                'unit': metric.unit,
                'model': model[metric],
                'subject': subject[metric],
                'difference': diff[metric]
            })
        return pd.DataFrame(rows, columns=['metric', 'category', 'unit',
                                           'model', 'subject', 'difference'])


def compare(model: MetricSet, subject: MetricSet) -> DiffSet:
    return SwingComparator().compare(model, subject)
