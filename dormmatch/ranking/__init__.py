"""
Dorm ranking engine.

Responsibilities:
- Accept user preferences (room type, budget, campus zone).
- Drop catalog entities that offer no rate for the requested room type.
- Score survivors with deterministic, named weights plus external quality
  signals resolved concurrently through the quality cache.
- Return an ordered, explainable top-K ready for API serialisation.
"""
