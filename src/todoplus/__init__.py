"""ToDo+ backend: task REST API, reminder/archival sweeps and a Matrix bot front door."""

__version__ = "0.1.0"
