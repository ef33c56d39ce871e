"""Notifications app package.

Stores templated in-app notifications, per-user delivery preferences and
web-push subscriptions, and sends transactional e-mail (OTP codes, booking
confirmations, cancellations, reminders) through Django's mail backend.
"""
