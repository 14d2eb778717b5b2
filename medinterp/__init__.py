"""Live medical interpreter backend: streaming bilingual transcript reconciliation."""

__version__ = "0.1.0"
