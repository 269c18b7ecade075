"""
Business logic service layer.

Each service orchestrates domain rules over a unit of work and commits
once per operation.
"""
