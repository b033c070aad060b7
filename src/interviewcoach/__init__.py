"""Interview Coach - topic-based interview practice on time-bounded reasoning agents."""

__version__ = "0.1.0"
