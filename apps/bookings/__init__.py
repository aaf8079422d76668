"""Bookings app package.

This app holds the booking engine: quoting a stay, confirming it once
the checkout session is paid, and the campsite availability index that
keeps confirmed stays from overlapping. Confirmation takes a row lock on
the campsite and relies on the unique payment session id so a session
never produces more than one booking.
"""
