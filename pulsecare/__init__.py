"""PulseCare donor eligibility, availability and geographic aggregation engine."""

__version__ = "1.0.0"
