"""
Request throttling.

Responsibilities:
- Bound how many ranking requests one client may issue per time window,
  protecting the directory API quota behind quality-cache misses.
"""
