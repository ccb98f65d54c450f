"""
Shared, cross-cutting code for the API.

`core/` holds small building blocks that multiple features use
(settings, errors, DB wiring, remote clients). Keep feature-specific SQL and
business logic in the corresponding feature package (e.g. `catalog/`).
"""
