"""Data-logging core for a surf-fin ocean sensor: ensembles, encodings, fault log, recorder and upload."""

__version__ = "0.1.0"