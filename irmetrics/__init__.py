"""irmetrics - information retrieval metrics over TREC runs and qrels."""

__version__ = "0.3.0"
