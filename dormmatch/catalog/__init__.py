"""
Housing catalog.

Responsibilities:
- Read the fixed dorm catalog and the secondary coordinate source.
- Validate and normalise records, pruning malformed sub-fields.
- Keep the loaded catalog in memory for a bounded TTL.
"""
