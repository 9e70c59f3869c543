"""
Shared, cross-cutting code for the torrent index.

`core/` holds the small building blocks every feature uses (the database
handle, schema setup, error types, settings). Feature-specific SQL lives in the
corresponding feature package (e.g. `ingestion/`, `search/`).
"""
