"""LinkDash - layered global/personal bookmark dashboard."""

__version__ = "0.1.0"
