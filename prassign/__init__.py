"""Teams, pull requests and reviewer assignment, stored in SQLite."""

__version__ = "0.1.0"