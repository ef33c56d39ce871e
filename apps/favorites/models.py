"""Model definition for favorites.

The ``Favorite`` model is a player's bookmark of a venue. Duplicate
favorites are prevented via a unique constraint.
"""

from __future__ import annotations

from django.db import models  # type: ignore


class Favorite(models.Model):
    """A user's favorite facility."""

    user = models.ForeignKey(
        'users.User', on_delete=models.CASCADE, related_name='favorites'
    )
    facility = models.ForeignKey(
        'facilities.Facility', on_delete=models.CASCADE, related_name='favorited_by'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ('user', 'facility')
        ordering = ['-created_at']

    def __str__(self) -> str:
        return f"Favorite facility {self.facility_id} by user {self.user_id}"
