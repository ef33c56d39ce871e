"""Payments app package.

Gateway orders and signature checks, payment verification, webhook
processing, refunds, receipts and discount coupons.
"""
