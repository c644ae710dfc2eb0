__all__ = [
    "ALL_DURATIONS",
    "AggregationOrchestrator",
    "AggregationResult",
    "AggregationSummary",
    "DeleteReport",
    "GenerationReport",
    "IsochroneStore",
    "StationIsochroneGenerator",
    "aggregate",
]

from metroproximity.isochrone.aggregation import AggregationOrchestrator, AggregationResult, AggregationSummary
from metroproximity.isochrone.generation import GenerationReport, StationIsochroneGenerator
from metroproximity.isochrone.store import ALL_DURATIONS, DeleteReport, IsochroneStore
from metroproximity.isochrone.union import aggregate
