"""Advanced Workflow - Execution engine for multi-step review and approval workflows"""

__version__ = "1.0.0"
