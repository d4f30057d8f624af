"""Routers module."""

from . import auth, categories, dashboard, expenses, products, sales, subscription, suppliers, webhooks

__all__ = [
    "auth",
    "categories",
    "dashboard",
    "expenses",
    "products",
    "sales",
    "subscription",
    "suppliers",
    "webhooks",
]
