"""Mental health literacy dashboard.

Serves pre-computed survey results as dashboard view models. Every
subgroup statistic passes through small-group suppression (k=5)
before it leaves the service.
"""

__version__ = "1.0.0"
