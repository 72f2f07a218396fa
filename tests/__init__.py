"""
Test suite for the project profitability backend.

Run all tests: pytest
Run unit tests only: pytest tests/unit/
Run specific file: pytest tests/unit/test_hours_parser.py -v
"""
