"""
The `records` feature: CSV bulk loading and the `/data` endpoint.
"""
