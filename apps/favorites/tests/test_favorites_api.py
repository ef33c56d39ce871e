from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.core.testing import make_court, make_facility, make_owner, make_user
from apps.facilities.models import Facility
from apps.favorites.models import Favorite


class FavoriteAPITests(APITestCase):
    def setUp(self) -> None:
        self.user = make_user()
        self.facility = make_facility(make_owner())
        make_court(self.facility)
        self.client.force_authenticate(self.user)
        self.url = reverse('favorite-list')

    def test_add_and_list(self) -> None:
        created = self.client.post(self.url, {'facility_id': self.facility.pk}, format='json')
        listing = self.client.get(self.url)

        self.assertEqual(created.status_code, status.HTTP_201_CREATED, created.data)
        results = listing.data['data']['results']
        self.assertEqual(results[0]['facility_id'], self.facility.pk)
        self.assertEqual(results[0]['facility']['sports'], ['BADMINTON'])

    def test_duplicate_favorite_conflicts(self) -> None:
        Favorite.objects.create(user=self.user, facility=self.facility)

        response = self.client.post(self.url, {'facility_id': self.facility.pk}, format='json')

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['code'], 'ALREADY_FAVORITED')

    def test_pending_facility_cannot_be_favorited(self) -> None:
        pending = make_facility(make_owner(), status=Facility.Status.PENDING)

        response = self.client.post(self.url, {'facility_id': pending.pk}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_check_and_remove(self) -> None:
        favorite = Favorite.objects.create(user=self.user, facility=self.facility)
        check_url = reverse('favorite-check', kwargs={'facility_id': self.facility.pk})

        before = self.client.get(check_url)
        removed = self.client.delete(reverse('favorite-detail', args=[favorite.pk]))
        after = self.client.get(check_url)

        self.assertTrue(before.data['data']['is_favorite'])
        self.assertEqual(removed.status_code, status.HTTP_200_OK)
        self.assertFalse(after.data['data']['is_favorite'])

    def test_cannot_remove_someone_elses_favorite(self) -> None:
        favorite = Favorite.objects.create(user=make_user(), facility=self.facility)

        response = self.client.delete(reverse('favorite-detail', args=[favorite.pk]))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_anonymous_denied(self) -> None:
        self.client.force_authenticate(None)

        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
