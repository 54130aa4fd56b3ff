"""Developer activity telemetry: editor agent and ingestion server."""

__version__ = "0.1.0"
