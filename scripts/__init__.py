"""
Maintenance Scripts Module

Available scripts:
    - seed_data.py: Creates sample workflow definitions for testing
    - validate_definition.py: Prints and validates a stored definition

Usage:
    python -m scripts.seed_data
    python -m scripts.validate_definition WFD-xxxxxxxxxxxx
"""
