"""
Workflow Engine: execution and orchestration of function models.
"""

__version__ = "0.1.0"
