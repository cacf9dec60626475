"""
Backend package for the bookd musician network.

This package provides a FastAPI application over a hosted relational
database, an auth provider and an image host. Services are thin query
wrappers; workflows coordinate them for the HTTP routes.
"""
