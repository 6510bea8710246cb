"""Matching and recommendation engine for GroupBuy.

This module contains the heuristic scoring used across the service: group
recommendations for a user, request-to-group matching, group AI metrics,
price prediction and the keyword chat assistant. No model is trained; all
scores are weighted sums over stored counters or random draws.
"""
