"""meigen: attributed quote storage with paginated, length-bounded listings."""

__version__ = "0.1.0"
