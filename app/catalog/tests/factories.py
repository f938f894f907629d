"""
Factory Boy factories for catalog models.

Usage:
    from catalog.tests.factories import OrderFactory, ProductFactory

    product = ProductFactory(vendor=vendor)
    order = OrderFactory(customer=customer)
"""

import factory

from authentication.tests.factories import CustomerFactory, VendorFactory
from catalog.models import Order, OrderStatus, Product


class ProductFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Product

    name = factory.Sequence(lambda n: f"Product {n}")
    vendor = factory.SubFactory(VendorFactory)
    price = 19.99


class OrderFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Order

    order_number = factory.Sequence(lambda n: f"ORD-{n:06d}")
    customer = factory.SubFactory(CustomerFactory)
    status = OrderStatus.PENDING
