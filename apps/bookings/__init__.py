"""Bookings app package.

Court reservations: slot selection, overlap checks under row locks,
cancellation with the refund policy and the periodic lifecycle tasks
(expiry of unpaid holds, completion, reminders).
"""
