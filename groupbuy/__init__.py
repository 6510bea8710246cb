"""GroupBuy: group-buying marketplace backend for street-food vendors.

This package provides a backend service where vendors pool purchase needs
into groups to unlock bulk pricing, with heuristic recommendations, request
matching and a keyword chat assistant.

Modules:
    api: FastAPI application, routers and request plumbing
    recommender: Scoring, matching, pricing and chat heuristics
    store: MongoDB persistence and the group membership state machine
"""

__version__ = "0.1.0"
