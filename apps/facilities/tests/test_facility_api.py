"""API tests for facilities, courts, slot blocking and catalog search."""

from __future__ import annotations

from datetime import date, time, timedelta
from decimal import Decimal

from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings.models import Booking
from apps.core.testing import make_admin, make_booking, make_court, make_facility, make_owner, make_user
from apps.facilities.models import Amenity, Court, Facility, TimeSlot


class FacilityCRUDTests(APITestCase):
    def setUp(self) -> None:
        self.owner = make_owner()
        self.client.force_authenticate(self.owner)

    def test_owner_creates_pending_facility(self) -> None:
        parking = Amenity.objects.create(name="Parking")
        payload = {
            "name": "Smash Arena",
            "address": "5 Park Street",
            "city": "Kolkata",
            "amenities": [parking.pk],
            "photos": [{"url": "https://cdn.example.com/a.jpg"}],
        }

        response = self.client.post(reverse("facility-list"), payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        facility = Facility.objects.get(name="Smash Arena")
        self.assertEqual(facility.status, Facility.Status.PENDING)
        self.assertEqual(facility.owner, self.owner)
        self.assertEqual(list(facility.amenities.all()), [parking])
        self.assertEqual(facility.photos.count(), 1)

    def test_player_cannot_create_facility(self) -> None:
        self.client.force_authenticate(make_user())

        response = self.client.post(
            reverse("facility-list"), {"name": "Nope", "address": "x", "city": "y"}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_latitude_without_longitude_rejected(self) -> None:
        payload = {"name": "Geo Arena", "address": "1 Road", "city": "Pune", "latitude": "18.5"}

        response = self.client.post(reverse("facility-list"), payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_core_field_edit_resubmits_for_approval(self) -> None:
        facility = make_facility(self.owner)

        response = self.client.patch(
            reverse("facility-detail", args=[facility.pk]), {"city": "Mysuru"}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["message"], "Facility updated and resubmitted for approval")
        facility.refresh_from_db()
        self.assertEqual(facility.status, Facility.Status.PENDING)

    def test_description_edit_keeps_approval(self) -> None:
        facility = make_facility(self.owner)

        self.client.patch(
            reverse("facility-detail", args=[facility.pk]), {"description": "Now with lights"}, format="json"
        )

        facility.refresh_from_db()
        self.assertEqual(facility.status, Facility.Status.APPROVED)

    def test_other_owner_cannot_edit(self) -> None:
        facility = make_facility(make_owner())

        response = self.client.patch(
            reverse("facility-detail", args=[facility.pk]), {"description": "mine now"}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_pending_facility_hidden_from_public(self) -> None:
        facility = make_facility(make_owner(), status=Facility.Status.PENDING)
        self.client.force_authenticate(None)

        detail = self.client.get(reverse("facility-detail", args=[facility.pk]))
        listing = self.client.get(reverse("facility-list"))

        self.assertEqual(detail.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(listing.data["data"]["pagination"]["total"], 0)

    def test_owner_sees_own_pending_facility(self) -> None:
        facility = make_facility(self.owner, status=Facility.Status.PENDING)

        response = self.client.get(reverse("facility-list"), {"mine": "true"})
        detail = self.client.get(reverse("facility-detail", args=[facility.pk]))

        self.assertEqual(response.data["data"]["pagination"]["total"], 1)
        self.assertEqual(detail.data["data"]["status"], Facility.Status.PENDING)

    def test_delete_facility(self) -> None:
        facility = make_facility(self.owner)

        response = self.client.delete(reverse("facility-detail", args=[facility.pk]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Facility.objects.filter(pk=facility.pk).exists())


class CourtTests(APITestCase):
    def setUp(self) -> None:
        self.owner = make_owner()
        self.facility = make_facility(self.owner)
        self.client.force_authenticate(self.owner)

    def test_add_court(self) -> None:
        payload = {
            "name": "Court A",
            "sport_type": Court.SportType.TENNIS,
            "price_per_hour": "800.00",
            "opening_time": "07:00",
            "closing_time": "21:00",
        }

        response = self.client.post(reverse("facility-courts", args=[self.facility.pk]), payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(self.facility.courts.get().price_per_hour, Decimal("800.00"))

    def test_court_hours_must_be_ordered(self) -> None:
        payload = {
            "name": "Court B",
            "sport_type": Court.SportType.TENNIS,
            "price_per_hour": "800.00",
            "opening_time": "21:00",
            "closing_time": "07:00",
        }

        response = self.client.post(reverse("facility-courts", args=[self.facility.pk]), payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("closing_time", response.data["details"])

    def test_inactive_courts_hidden_from_players(self) -> None:
        make_court(self.facility)
        make_court(self.facility, is_active=False)
        self.client.force_authenticate(make_user())

        response = self.client.get(reverse("facility-courts", args=[self.facility.pk]))

        self.assertEqual(len(response.data["data"]), 1)

    def test_update_court_price(self) -> None:
        court = make_court(self.facility)

        response = self.client.patch(reverse("court-detail", args=[court.pk]), {"price_per_hour": "650"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        court.refresh_from_db()
        self.assertEqual(court.price_per_hour, Decimal("650.00"))


class AvailabilityTests(APITestCase):
    def setUp(self) -> None:
        self.owner = make_owner()
        self.court = make_court(make_facility(self.owner), opening_time=time(8, 0), closing_time=time(12, 0))
        self.day = date.today() + timedelta(days=2)

    def test_availability_marks_booked_and_blocked_slots(self) -> None:
        make_booking(make_user(), self.court, booking_date=self.day, start=time(8, 0), end=time(9, 0))
        TimeSlot.objects.create(
            court=self.court,
            date=self.day,
            start_time=time(10, 0),
            end_time=time(11, 0),
            is_blocked=True,
            block_type=TimeSlot.BlockType.EVENT,
        )

        response = self.client.get(reverse("court-availability", args=[self.court.pk]), {"date": self.day})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        statuses = [slot["status"] for slot in response.data["data"]["slots"]]
        self.assertEqual(statuses, ["booked", "available", "blocked", "available"])
        self.assertEqual(response.data["data"]["summary"]["available"], 2)

    def test_cancelled_booking_does_not_occupy_slot(self) -> None:
        make_booking(
            make_user(),
            self.court,
            booking_date=self.day,
            start=time(8, 0),
            end=time(9, 0),
            status=Booking.Status.CANCELLED,
        )

        response = self.client.get(reverse("court-timeslots", args=[self.court.pk]), {"date": self.day})

        self.assertEqual(response.data["data"]["slots"][0]["status"], "available")

    def test_date_is_required(self) -> None:
        response = self.client.get(reverse("court-availability", args=[self.court.pk]))

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("date", response.data["details"])

    def test_unknown_court(self) -> None:
        response = self.client.get(reverse("court-availability", args=[9999]), {"date": self.day})

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class BlockSlotsTests(APITestCase):
    def setUp(self) -> None:
        self.owner = make_owner()
        self.court = make_court(make_facility(self.owner))
        self.day = date.today() + timedelta(days=3)
        self.url = reverse("court-block-slots", args=[self.court.pk])
        self.client.force_authenticate(self.owner)

    def _payload(self, **extra):
        payload = {
            "dates": [self.day.isoformat()],
            "time_slots": [{"start_time": "10:00", "end_time": "11:00"}],
            "reason": "Net replacement",
            "block_type": TimeSlot.BlockType.MAINTENANCE,
        }
        payload.update(extra)
        return payload

    def test_block_and_list(self) -> None:
        response = self.client.post(self.url, self._payload(), format="json")
        listing = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["data"]["blocked"], 1)
        self.assertEqual(len(listing.data["data"]), 1)

    def test_block_conflicts_with_booking(self) -> None:
        make_booking(make_user(), self.court, booking_date=self.day)

        response = self.client.post(self.url, self._payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["code"], "SLOT_CONFLICT")
        self.assertEqual(len(response.data["details"]["conflicts"]), 1)

    def test_override_blocks_anyway(self) -> None:
        make_booking(make_user(), self.court, booking_date=self.day)

        response = self.client.post(self.url, self._payload(allow_override=True), format="json")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data["data"]["overridden"])

    def test_block_outside_hours(self) -> None:
        payload = self._payload(time_slots=[{"start_time": "23:00", "end_time": "23:30"}])

        response = self.client.post(self.url, payload, format="json")

        self.assertEqual(response.data["code"], "OUTSIDE_OPERATING_HOURS")

    def test_unblock(self) -> None:
        self.client.post(self.url, self._payload(), format="json")

        response = self.client.delete(self.url, {"dates": [self.day.isoformat()]}, format="json")

        self.assertEqual(response.data["data"]["unblocked"], 1)
        self.assertFalse(TimeSlot.objects.filter(is_blocked=True).exists())

    def test_stranger_cannot_block(self) -> None:
        self.client.force_authenticate(make_owner())

        response = self.client.post(self.url, self._payload(), format="json")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class CatalogSearchTests(APITestCase):
    def setUp(self) -> None:
        owner = make_owner()
        self.near = make_facility(
            owner, name="Koramangala Courts", latitude=Decimal("12.935200"), longitude=Decimal("77.624500")
        )
        self.far = make_facility(
            owner, name="Mysore Sports Hub", city="Mysuru", latitude=Decimal("12.295800"), longitude=Decimal("76.639400")
        )
        make_court(self.near, price_per_hour=Decimal("400.00"))
        make_court(self.far, sport_type=Court.SportType.TENNIS, price_per_hour=Decimal("900.00"))
        make_facility(owner, name="Hidden Pending", status=Facility.Status.PENDING)

    def test_search_by_text(self) -> None:
        response = self.client.get(reverse("facility-search"), {"q": "koramangala"})

        results = response.data["data"]["results"]
        self.assertEqual([card["id"] for card in results], [self.near.pk])

    def test_search_by_sport_and_price(self) -> None:
        response = self.client.get(reverse("facility-search"), {"sport_type": "TENNIS", "max_price": 1000})

        results = response.data["data"]["results"]
        self.assertEqual([card["id"] for card in results], [self.far.pk])

    def test_search_sorted_by_price(self) -> None:
        response = self.client.get(reverse("facility-search"), {"sort": "price_high"})

        results = response.data["data"]["results"]
        self.assertEqual([card["id"] for card in results], [self.far.pk, self.near.pk])

    def test_search_rejects_lat_without_lng(self) -> None:
        response = self.client.get(reverse("facility-search"), {"lat": 12.9})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_nearby_uses_radius(self) -> None:
        response = self.client.get(reverse("facility-nearby"), {"lat": 12.9716, "lng": 77.5946, "radius": 20})

        venues = response.data["data"]["venues"]
        self.assertEqual([v["id"] for v in venues], [self.near.pk])
        self.assertLess(venues[0]["distance"], 20)

    def test_search_available_skips_fully_booked(self) -> None:
        day = date.today() + timedelta(days=1)
        court = self.near.courts.get()
        make_booking(make_user(), court, booking_date=day, start=court.opening_time, end=court.closing_time)

        response = self.client.get(reverse("facility-search-available"), {"date": day.isoformat()})

        results = response.data["data"]["results"]
        self.assertEqual([card["id"] for card in results], [self.far.pk])
        self.assertGreater(results[0]["available_courts"], 0)

    def test_trending_lists_approved_only(self) -> None:
        response = self.client.get(reverse("facility-trending"))

        ids = {v["id"] for v in response.data["data"]["venues"]}
        self.assertEqual(ids, {self.near.pk, self.far.pk})

    def test_cities_and_suggestions(self) -> None:
        cities = self.client.get(reverse("facility-cities"))
        suggestions = self.client.get(reverse("facility-suggestions"), {"q": "mys"})

        self.assertEqual(cities.data["data"]["total"], 2)
        self.assertEqual(suggestions.data["data"]["cities"], ["Mysuru"])

    def test_filter_options(self) -> None:
        response = self.client.get(reverse("facility-filters"))

        data = response.data["data"]
        self.assertEqual(data["sports"], ["BADMINTON", "TENNIS"])
        self.assertEqual(data["price_range"]["min"], Decimal("400.00"))


class AmenityTests(APITestCase):
    def test_public_list(self) -> None:
        Amenity.objects.create(name="Showers")

        response = self.client.get(reverse("amenity-list"))

        self.assertEqual(response.data["data"][0]["name"], "Showers")

    def test_only_admin_creates(self) -> None:
        self.client.force_authenticate(make_owner())
        denied = self.client.post(reverse("amenity-list"), {"name": "Cafe"}, format="json")
        self.client.force_authenticate(make_admin())
        created = self.client.post(reverse("amenity-list"), {"name": "Cafe"}, format="json")

        self.assertEqual(denied.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(created.status_code, status.HTTP_201_CREATED)
