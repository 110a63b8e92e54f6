"""
Coffee World

Coffee shop discovery backend: live crowd levels from check-ins,
reviews with votes, and World ID sign-in.
"""

__version__ = "1.0.0"
