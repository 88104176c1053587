"""
Shared, cross-cutting code for the service.

`core/` holds the small building blocks every feature uses (settings, DB
wiring, logging, startup errors). Keep record-specific SQL and loading logic
in `records/`.
"""
