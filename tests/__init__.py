"""
Test suite for the tenant XML mapping engine.

Run all tests: pytest
Run unit tests only: pytest tests/unit/
Run specific file: pytest tests/unit/test_result_assembler.py -v
"""
