"""Bridge layer between wallsync and the CI server's REST API.

Modules
-------
wire
    Pydantic models for the server's JSON payloads.
mappings
    Per-API-revision conversion of wire payloads into domain entities.
capabilities
    Which features each API revision exposes.
fetcher
    ``RemoteFetcher`` Protocol and the ``httpx``-backed ``HttpFetcher``.
"""
