"""Expected F-measure maximizers.

Includes:
- ExpectedFMeasureUnderIndependence: exact optimum when labels are independent
- SampleBasedFMeasureMaximizer: general optimum from samples or a probability table
"""

from pcc_inference.fmeasure.independence import AlgorithmComplexity, ExpectedFMeasureUnderIndependence
from pcc_inference.fmeasure.general import DeltaMatrix, FMeasureResult, SampleBasedFMeasureMaximizer

__all__ = [
    "AlgorithmComplexity",
    "ExpectedFMeasureUnderIndependence",
    "DeltaMatrix",
    "FMeasureResult",
    "SampleBasedFMeasureMaximizer",
]
