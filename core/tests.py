# core/tests.py
"""
Unit tests for settings, validators, audit logging and the dashboard
"""
from datetime import date, timedelta
from unittest import mock

from django.core.exceptions import ValidationError
from django.core.management import call_command
from django.test import TestCase, SimpleTestCase, Client, override_settings
from django.urls import reverse

from appointments.models import Appointment, AppointmentSlot
from treatments.models import TreatmentRecord
from users.models import Role, User
from .email_service import EmailService, send_email_via_api
from .models import AuditLog, SystemSetting
from .utils import get_manila_today, parse_int
from .validators import clean_name, clean_philippine_phone_number, clean_time_of_day
from .views import booking_calendar


class ValidatorTest(SimpleTestCase):

    def test_phone_normalized(self):
        for raw in ('09171234567', '0917-123-4567', '639171234567', '9171234567', '+63 917 123 4567'):
            self.assertEqual(clean_philippine_phone_number(raw), '+639171234567')

    def test_phone_invalid(self):
        with self.assertRaises(ValidationError):
            clean_philippine_phone_number('12345')
        self.assertEqual(clean_philippine_phone_number(''), '')

    def test_name(self):
        self.assertEqual(clean_name('  Juan   Dela  Cruz '), 'Juan Dela Cruz')
        with self.assertRaises(ValidationError):
            clean_name('J')
        with self.assertRaises(ValidationError):
            clean_name('Juan 3rd')

    def test_time_of_day(self):
        self.assertEqual(clean_time_of_day('7:05'), '07:05')
        self.assertEqual(clean_time_of_day('02:30 PM'), '14:30')
        self.assertEqual(clean_time_of_day(''), '')
        with self.assertRaises(ValidationError):
            clean_time_of_day('noon')

    def test_parse_int(self):
        self.assertEqual(parse_int(' 12 '), 12)
        self.assertIsNone(parse_int('abc'))
        self.assertEqual(parse_int(None, 3), 3)


class SystemSettingTest(TestCase):

    def test_int_setting(self):
        SystemSetting.set_setting('appointments_per_page', '25')
        self.assertEqual(SystemSetting.get_int_setting('appointments_per_page', 10), 25)

        SystemSetting.set_setting('appointments_per_page', 'many')
        self.assertEqual(SystemSetting.get_int_setting('appointments_per_page', 10), 10)

    def test_missing_setting_default(self):
        self.assertEqual(SystemSetting.get_setting('unknown_key', 'fallback'), 'fallback')

    def test_initialize_settings_command(self):
        call_command('initialize_settings', stdout=mock.MagicMock())
        self.assertEqual(SystemSetting.objects.count(), len(SystemSetting.DEFAULTS))

        SystemSetting.set_setting('default_available_slots', '30')
        call_command('initialize_settings', stdout=mock.MagicMock())
        self.assertEqual(SystemSetting.get_int_setting('default_available_slots'), 30)


class AuditLogTest(TestCase):

    def test_log_action(self):
        user = User.objects.create_user(username='nurse', password='pass12345')
        appointment = Appointment.objects.create(
            patient_name='Juan Dela Cruz', patient_contact='+639171234567',
            biting_animal='Dog', place_bitten='Barangay 1', appointment_date=date(2025, 3, 1),
        )

        log = AuditLog.log_action(
            user=user,
            action='confirm',
            model_instance=appointment,
            changes={'status': {'old': 'pending', 'new': 'confirmed'}},
            description='Confirmed appointment'
        )

        self.assertEqual(log.model_name, 'appointment')
        self.assertEqual(log.object_id, appointment.pk)
        self.assertIsNone(log.ip_address)


class EmailServiceTest(TestCase):

    @override_settings(BREVO_API_KEY='')
    def test_skipped_without_api_key(self):
        self.assertFalse(send_email_via_api('juan@example.com', 'Subject', '<p>Hi</p>'))

    def test_skipped_without_patient_email(self):
        appointment = Appointment(patient_name='Juan Dela Cruz', appointment_date=date(2025, 3, 1))
        self.assertFalse(EmailService.send_appointment_confirmed_email(appointment))


class DashboardTest(TestCase):

    def setUp(self):
        self.client = Client()
        staff_role = Role.objects.create(name=Role.STAFF, display_name='Staff', is_default=True)
        User.objects.create_user(username='nurse', password='pass12345', role=staff_role)
        self.today = get_manila_today()

        booking = {
            'patient_name': 'Juan Dela Cruz', 'patient_contact': '+639171234567',
            'biting_animal': 'Dog', 'place_bitten': 'Barangay 1',
        }
        Appointment.objects.create(appointment_date=self.today, **booking)
        Appointment.objects.create(appointment_date=self.today, status='cancelled', **booking)
        TreatmentRecord.objects.create(patient_name='Juan Dela Cruz', d0_date=self.today)
        TreatmentRecord.objects.create(
            patient_name='Maria Santos', d0_date=self.today - timedelta(days=40),
            d0_status='completed', d3_status='completed', d7_status='completed',
            d14_status='completed', d28_30_status='completed',
        )

    def test_requires_login(self):
        response = self.client.get(reverse('core:dashboard'))
        self.assertEqual(response.status_code, 302)
        self.assertIn(reverse('users:login'), response['Location'])

    def test_stats(self):
        self.client.login(username='nurse', password='pass12345')
        response = self.client.get(reverse('core:dashboard'))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context['stats'], {
            'total_appointments': 2,
            'missed_appointments': 1,
            'total_patients': 2,
            'completed_vaccinations': 1,
            'pending_requests': 1,
            'patients_due_today': 1,
        })

    def test_invalid_month_falls_back(self):
        self.client.login(username='nurse', password='pass12345')
        response = self.client.get(reverse('core:dashboard'), {'month': '13', 'year': 'x'})
        self.assertEqual(response.context['month'], self.today.month)
        self.assertEqual(response.context['year'], self.today.year)

    def test_year_out_of_range_falls_back(self):
        self.client.login(username='nurse', password='pass12345')
        for year in ('1', '9999'):
            response = self.client.get(reverse('core:dashboard'), {'month': '1', 'year': year})
            self.assertEqual(response.status_code, 200)
            self.assertEqual(response.context['year'], self.today.year)
            self.assertEqual(response.context['month'], self.today.month)

    def test_booking_calendar(self):
        AppointmentSlot.objects.create(date=self.today, available_slots=15)
        weeks = booking_calendar(self.today.year, self.today.month)

        days = [day for week in weeks for day in week if day]
        today_cell = next(day for day in days if day['date'] == self.today)
        self.assertEqual(today_cell['count'], 1)
        self.assertEqual(today_cell['available_slots'], 15)
        self.assertTrue(all(len(week) == 7 for week in weeks))


class SystemSettingsViewTest(TestCase):

    def setUp(self):
        self.client = Client()
        admin_role = Role.objects.create(name=Role.ADMIN, display_name='Admin', is_default=True)
        User.objects.create_user(username='admin', password='pass12345', role=admin_role)
        self.client.login(username='admin', password='pass12345')

    def test_update_settings(self):
        response = self.client.post(reverse('core:settings'), {
            'clinic_name': 'Bogo Animal Bite Center',
            'clinic_phone': '',
            'clinic_address': 'Bogo City, Cebu',
            'default_available_slots': 30,
            'appointments_per_page': 20,
            'patients_per_group': 6,
            'dose_visibility_hours': 12,
        })

        self.assertRedirects(response, reverse('core:settings'), fetch_redirect_response=False)
        self.assertEqual(SystemSetting.get_int_setting('default_available_slots'), 30)
        self.assertEqual(SystemSetting.get_setting('clinic_name'), 'Bogo Animal Bite Center')
        self.assertTrue(AuditLog.objects.filter(action='update', model_name='systemsetting').exists())


class HealthCheckTest(TestCase):

    def test_health_check(self):
        response = self.client.get(reverse('health_check'))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], 'ok')
