"""Users app package.

Owns the custom user model (e-mail login, USER / FACILITY_OWNER / ADMIN
roles), one-time passwords for e-mail verification and password reset,
profile management and account soft-deletion. Use
``apps.users.models.User`` as the AUTH_USER_MODEL throughout the project.
"""
