"""Chalets app package.

This app holds the chalet reservation engine: the storage-agnostic
domain core (availability, rate resolution, pricing, deposits and the
booking lifecycle), the unit of work adapters that serialize bookings
per chalet, and the Django models and admin used to manage chalets,
rate rules and add-ons.
"""
