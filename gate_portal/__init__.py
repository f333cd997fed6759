"""
gate_portal
Examination portal backend: test scheduling, submission scoring and analytics.
"""

__version__ = "1.0.0"
