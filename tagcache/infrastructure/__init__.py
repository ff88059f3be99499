"""
Infrastructure Module

Backend integrations (Redis cache).
"""
