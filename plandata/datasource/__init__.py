"""
Data sources for planning applications and constraints.
"""
