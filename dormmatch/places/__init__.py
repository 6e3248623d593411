"""
External directory integration (Google Places web service).

Responsibilities:
- Manage API configuration and credentials.
- Run text searches biased to a reference point and fetch place details.
- Turn transport failures, bad statuses and malformed payloads into
  ExternalServiceError so callers can degrade gracefully.
"""
