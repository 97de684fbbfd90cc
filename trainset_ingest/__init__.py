"""Trainset feature ingest: normalization and master-merge engine."""

__version__ = "0.1.0"
