"""
Catalog application.

Holds the product and order records that chat conversations point at as
their business context. Catalog CRUD, pricing and fulfillment live
elsewhere; this app only owns the rows and their vendor/customer links.

Usage:
    from catalog.models import Order, Product
"""
