"""
Persistence for the planning result cache.
"""
