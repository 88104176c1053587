"""
recordserve: load a CSV of records into PostgreSQL and serve them as JSON.
"""

__version__ = "0.1.0"
