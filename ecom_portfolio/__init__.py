"""
E-Commerce Portfolio Database

Schema, seed data and analytic reports for a small e-commerce store.
"""

__version__ = "1.0.0"
