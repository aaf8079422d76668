"""Payments app package.

Wraps the hosted checkout provider: creating checkout sessions that carry
a booking quote as metadata, retrieving them on confirmation, and
receiving the provider's webhook notifications.
"""
