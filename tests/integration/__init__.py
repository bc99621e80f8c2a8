# Integration Tests
"""
Integration tests verify complete user workflows through the HTTP API.

These tests should pass both:
1. BEFORE refactoring (current God module implementation)
2. AFTER refactoring (Repository pattern implementation)

Principle: Test behavior, not implementation.
"""
