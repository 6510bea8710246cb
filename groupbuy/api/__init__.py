"""FastAPI application module for GroupBuy.

This module contains the application factory, routers, authentication,
error handling and middleware of the marketplace API.
"""
