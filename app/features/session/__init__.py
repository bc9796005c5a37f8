"""
Session context: the resolved principal, route guards and navigation filtering.
"""
