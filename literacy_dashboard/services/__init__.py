"""Dashboard services.

- data_service: polls and caches the JSON survey resources
- dashboard_service: derives metrics, gates access and serves the API
"""
