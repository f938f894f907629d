"""
Test configuration and fixtures for authentication tests.
"""

import pytest

from authentication.tests.factories import AdminFactory, CustomerFactory, VendorFactory


@pytest.fixture
def customer(db):
    return CustomerFactory()


@pytest.fixture
def vendor(db):
    return VendorFactory()


@pytest.fixture
def admin(db):
    return AdminFactory()
