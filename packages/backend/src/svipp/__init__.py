"""Svipp — ride-home booking backend.

Customers who need a ride home are paired with drivers who relocate the
customer's own car. This package holds the identity and access-control
core: accounts, session tokens and per-resource ownership checks.
"""

__version__ = "0.1.0"
