"""Core app package.

Cross-cutting building blocks shared by every domain app: the API error
taxonomy and exception handler, the response envelope, pagination,
role-based permissions and small geo/time helpers.
"""
