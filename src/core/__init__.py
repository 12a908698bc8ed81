"""
Core domain models, mathematical primitives, and contracts.

This module contains the foundational building blocks of the assessment
engine that are independent of any pipeline stage.
"""
