"""Process supervisor for executables chained to database steps."""

__version__ = "0.1.0"
