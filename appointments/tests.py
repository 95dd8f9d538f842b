# appointments/tests.py
"""
Unit tests for appointments, daily slots and the pending feed
"""
from datetime import date, timedelta
from unittest import mock

from django.core.exceptions import ValidationError
from django.core.management import call_command, CommandError
from django.test import TestCase, Client
from django.urls import reverse
from django.utils import timezone

from core.models import AuditLog
from core.utils import get_manila_today
from users.models import Role, User
from .models import Appointment, AppointmentSlot


BOOKING = {
    'patient_name': 'Juan Dela Cruz',
    'patient_contact': '+639171234567',
    'biting_animal': 'Dog',
    'place_bitten': 'Barangay 1',
}


class AppointmentSlotModelTest(TestCase):

    def setUp(self):
        self.day = get_manila_today() + timedelta(days=2)
        self.slot = AppointmentSlot.objects.create(date=self.day, available_slots=4)

    def test_metrics(self):
        Appointment.objects.create(appointment_date=self.day, **BOOKING)
        Appointment.objects.create(appointment_date=self.day, status='confirmed', **BOOKING)
        Appointment.objects.create(appointment_date=self.day, status='cancelled', **BOOKING)

        self.assertEqual(self.slot.get_metrics(), {
            'available': 4,
            'booked': 2,
            'remaining': 2,
            'percentage': 50,
        })

    def test_zero_capacity_metrics(self):
        self.slot.available_slots = 0
        self.assertEqual(self.slot.get_metrics()['percentage'], 0)
        self.assertEqual(self.slot.get_metrics()['remaining'], 0)

    def test_default_capacity(self):
        self.assertEqual(AppointmentSlot.default_capacity(), 40)


class AppointmentBookingTest(TestCase):

    def setUp(self):
        self.day = get_manila_today() + timedelta(days=1)

    def test_book_pending(self):
        AppointmentSlot.objects.create(date=self.day, available_slots=2)
        appointment = Appointment.book(appointment_date=self.day, **BOOKING)
        self.assertEqual(appointment.status, 'pending')

    def test_no_slot_configured(self):
        with self.assertRaises(ValidationError):
            Appointment.book(appointment_date=self.day, **BOOKING)

    def test_full_day_rejected(self):
        AppointmentSlot.objects.create(date=self.day, available_slots=1)
        Appointment.book(appointment_date=self.day, **BOOKING)
        with self.assertRaises(ValidationError):
            Appointment.book(appointment_date=self.day, **BOOKING)
        self.assertEqual(Appointment.objects.count(), 1)

    def test_cancelled_frees_capacity(self):
        AppointmentSlot.objects.create(date=self.day, available_slots=1)
        first = Appointment.book(appointment_date=self.day, **BOOKING)
        first.cancel('Rescheduled')
        Appointment.book(appointment_date=self.day, **BOOKING)
        self.assertEqual(Appointment.objects.exclude(status='cancelled').count(), 1)


class AppointmentTransitionTest(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(username='nurse', password='pass12345')
        self.appointment = Appointment.objects.create(appointment_date=get_manila_today(), **BOOKING)

    def test_confirm_then_complete(self):
        self.appointment.confirm(self.user)
        self.assertEqual(self.appointment.status, 'confirmed')
        self.assertEqual(self.appointment.confirmed_by, self.user)
        self.assertIsNotNone(self.appointment.confirmed_at)

        self.appointment.complete()
        self.assertEqual(self.appointment.status, 'completed')

    def test_pending_cannot_complete(self):
        with self.assertRaises(ValidationError):
            self.appointment.complete()
        self.appointment.refresh_from_db()
        self.assertEqual(self.appointment.status, 'pending')

    def test_cancelled_is_final(self):
        self.appointment.cancel('No show')
        self.assertEqual(self.appointment.cancellation_reason, 'No show')
        with self.assertRaises(ValidationError):
            self.appointment.confirm(self.user)

    def test_pending_since(self):
        cutoff = timezone.now() - timedelta(minutes=1)
        Appointment.objects.filter(pk=self.appointment.pk).update(created_at=cutoff - timedelta(hours=1))
        newer = Appointment.objects.create(appointment_date=get_manila_today(), **BOOKING)

        self.assertEqual(list(Appointment.pending_since(cutoff)), [newer])
        self.assertEqual(Appointment.pending_since().count(), 2)


class AppointmentViewsTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.staff_role = Role.objects.create(name=Role.STAFF, display_name='Staff', is_default=True)
        self.user = User.objects.create_user(username='nurse', password='pass12345', role=self.staff_role)
        self.client.login(username='nurse', password='pass12345')
        self.day = get_manila_today() + timedelta(days=1)
        self.slot = AppointmentSlot.objects.create(date=self.day, available_slots=10)
        self.appointment = Appointment.objects.create(appointment_date=self.day, **BOOKING)

    def test_list_hides_completed(self):
        done = Appointment.objects.create(appointment_date=self.day, status='completed', **BOOKING)
        response = self.client.get(reverse('appointments:appointment_list'))
        self.assertEqual(response.status_code, 200)
        self.assertNotIn(done, response.context['appointments'])

        response = self.client.get(reverse('appointments:appointment_list'), {'status': 'completed'})
        self.assertIn(done, response.context['appointments'])

    def test_search(self):
        Appointment.objects.create(appointment_date=self.day, **{**BOOKING, 'patient_name': 'Maria Santos'})
        response = self.client.get(reverse('appointments:appointment_list'), {'search': 'maria'})
        self.assertEqual(len(response.context['appointments']), 1)

    def test_book_view(self):
        response = self.client.post(reverse('appointments:appointment_book'), {
            **BOOKING,
            'patient_contact': '0917 123 4567',
            'appointment_date': self.day.isoformat(),
            'time_bitten': '14:30',
        })
        appointment = Appointment.objects.latest('created_at')
        self.assertRedirects(response, reverse('appointments:appointment_detail', kwargs={'pk': appointment.pk}),
                             fetch_redirect_response=False)
        self.assertEqual(appointment.patient_contact, '+639171234567')
        self.assertEqual(appointment.booked_by, self.user)

    @mock.patch('appointments.views.EmailService.send_appointment_confirmed_email', return_value=False)
    def test_confirm(self, send_email):
        response = self.client.post(reverse('appointments:confirm_appointment', kwargs={'pk': self.appointment.pk}))
        self.assertEqual(response.status_code, 302)
        self.appointment.refresh_from_db()
        self.assertEqual(self.appointment.status, 'confirmed')
        send_email.assert_called_once()
        self.assertTrue(AuditLog.objects.filter(action='confirm', object_id=self.appointment.pk).exists())

    def test_complete_pending_is_rejected_htmx(self):
        response = self.client.post(
            reverse('appointments:complete_appointment', kwargs={'pk': self.appointment.pk}),
            HTTP_HX_REQUEST='true'
        )
        self.assertEqual(response.status_code, 400)
        self.appointment.refresh_from_db()
        self.assertEqual(self.appointment.status, 'pending')

    @mock.patch('appointments.views.EmailService.send_appointment_cancelled_email', return_value=False)
    def test_cancel_htmx(self, send_email):
        response = self.client.post(
            reverse('appointments:cancel_appointment', kwargs={'pk': self.appointment.pk}),
            {'reason': 'Patient called'},
            HTTP_HX_REQUEST='true'
        )
        self.assertEqual(response['HX-Trigger'], 'appointmentCancelled')
        self.appointment.refresh_from_db()
        self.assertEqual(self.appointment.cancellation_reason, 'Patient called')

    def test_actions_require_post(self):
        response = self.client.get(reverse('appointments:confirm_appointment', kwargs={'pk': self.appointment.pk}))
        self.assertEqual(response.status_code, 405)

    def test_permission_denied(self):
        Role.objects.filter(pk=self.staff_role.pk).update(permissions={'dashboard': True})
        response = self.client.get(reverse('appointments:appointment_list'))
        self.assertRedirects(response, reverse('core:dashboard'), fetch_redirect_response=False)

    def test_slot_capacity_cannot_drop_below_booked(self):
        Appointment.objects.create(appointment_date=self.day, **BOOKING)
        response = self.client.post(reverse('appointments:slot_update', kwargs={'pk': self.slot.pk}), {
            'available_slots': 1,
            'notes': '',
        })
        self.assertEqual(response.status_code, 200)
        self.slot.refresh_from_db()
        self.assertEqual(self.slot.available_slots, 10)

    def test_delete_slot_keeps_appointments(self):
        self.client.post(reverse('appointments:slot_delete', kwargs={'pk': self.slot.pk}))
        self.assertFalse(AppointmentSlot.objects.exists())
        self.assertTrue(Appointment.objects.filter(pk=self.appointment.pk).exists())

    def test_slot_metrics_api(self):
        response = self.client.get(reverse('appointments:slot_metrics_api'), {'date': self.day.isoformat()})
        data = response.json()
        self.assertTrue(data['configured'])
        self.assertEqual(data['booked'], 1)
        self.assertEqual(data['remaining'], 9)

    def test_slot_metrics_api_bad_date(self):
        response = self.client.get(reverse('appointments:slot_metrics_api'), {'date': 'soon'})
        self.assertEqual(response.status_code, 400)

    def test_slot_calendar_month(self):
        response = self.client.get(reverse('appointments:slot_calendar'),
                                   {'year': self.day.year, 'month': self.day.month})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context['month'], self.day.month)

    def test_slot_calendar_year_out_of_range(self):
        today = get_manila_today()
        for year in ('1', '9999'):
            response = self.client.get(reverse('appointments:slot_calendar'), {'year': year, 'month': '1'})
            self.assertEqual(response.status_code, 200)
            self.assertEqual(response.context['year'], today.year)
            self.assertEqual(response.context['month'], today.month)

    def test_pending_feed(self):
        response = self.client.get(reverse('appointments:pending_feed_api'))
        data = response.json()
        self.assertEqual(data['pending_count'], 1)
        self.assertEqual(data['events'][0]['message'], 'New appointment booked by Juan Dela Cruz')

        response = self.client.get(reverse('appointments:pending_feed_api'), {'since': data['server_time']})
        self.assertEqual(response.json()['events'], [])


class CreateDailySlotsCommandTest(TestCase):

    def test_opens_range_and_keeps_existing(self):
        AppointmentSlot.objects.create(date=date(2025, 3, 3), available_slots=5)
        call_command('create_daily_slots', '2025-03-01', '2025-03-07', '--slots', '12', '--skip-sundays',
                     stdout=mock.MagicMock())

        # 2025-03-02 is a Sunday
        self.assertFalse(AppointmentSlot.objects.filter(date=date(2025, 3, 2)).exists())
        self.assertEqual(AppointmentSlot.objects.count(), 6)
        self.assertEqual(AppointmentSlot.objects.get(date=date(2025, 3, 3)).available_slots, 5)
        self.assertEqual(AppointmentSlot.objects.get(date=date(2025, 3, 4)).available_slots, 12)

    def test_rejects_reversed_range(self):
        with self.assertRaises(CommandError):
            call_command('create_daily_slots', '2025-03-07', '2025-03-01', stdout=mock.MagicMock())


class PendingFeedParsingTest(TestCase):

    def setUp(self):
        self.client = Client()
        staff_role = Role.objects.create(name=Role.STAFF, display_name='Staff', is_default=True)
        User.objects.create_user(username='nurse', password='pass12345', role=staff_role)
        self.client.login(username='nurse', password='pass12345')
        Appointment.objects.create(appointment_date=get_manila_today(), **BOOKING)

    def test_out_of_range_since_is_ignored(self):
        response = self.client.get(reverse('appointments:pending_feed_api'), {'since': '2025-13-01T00:00:00'})
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertTrue(data['success'])
        self.assertEqual(len(data['events']), 1)

    def test_garbage_since_is_ignored(self):
        response = self.client.get(reverse('appointments:pending_feed_api'), {'since': 'yesterday'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()['events']), 1)
