"""
Core business logic for the media feed.

This module is framework-agnostic - it doesn't import FastAPI, SQLAlchemy,
boto3 or any infrastructure concerns. Storage and persistence are reached
through protocols, so the logic can be tested against in-memory fakes.
"""
