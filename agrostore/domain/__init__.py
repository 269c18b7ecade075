"""
Domain layer - Core business entities and domain logic.

This layer contains the marketplace entities and business rules,
independent of any infrastructure or framework concerns.
"""
