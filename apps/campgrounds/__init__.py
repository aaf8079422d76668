"""Campgrounds app package.

Holds the bookable inventory: campgrounds and the individually priced,
capacity-bounded campsites inside them. Listing and editing inventory is
done through the Django admin; the booking engine only reads it.
"""
