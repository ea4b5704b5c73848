from .engine import BASE, SCALE, AggregationEngine

__all__ = ["BASE", "SCALE", "AggregationEngine"]
