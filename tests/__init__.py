"""
Test suite for stock-assessment

Contains:
- tests/unit/          : Unit tests for individual modules and the assessment pipeline
"""
