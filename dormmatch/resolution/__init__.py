"""
External entity resolution.

Responsibilities:
- Map a catalog name to a directory place via fallback queries and
  candidate scoring.
- Fetch rating and review data for the accepted place and reject false
  positives by name.
- Cache resolved quality signals (and misses) per entity, sharing one
  in-flight resolution between concurrent callers.
"""
