"""
Tests for authentication app.

This package contains test modules for:
- test_models.py: User model helpers and constraints
- test_managers.py: UserManager creation rules
- test_serializers.py: Public user payload
- test_views.py: JWT token endpoints

Usage:
    pytest authentication/tests/
    pytest authentication/tests/test_models.py
"""
