# treatments/tests.py
"""
Unit tests for treatment records, dose tracking and vaccine stock
"""
from datetime import date, datetime, timedelta

from django.core.exceptions import ValidationError
from django.test import TestCase, Client
from django.urls import reverse
from django.utils import timezone

from appointments.models import Appointment, AppointmentSlot
from users.models import Role, User
from .models import TreatmentRecord, DoseUpdate, Vaccine
from . import doses


def make_record(**kwargs):
    fields = {
        'patient_name': 'Juan Dela Cruz',
        'patient_contact': '+639171234567',
        'place_bitten_barangay': 'Barangay 1',
        'biting_animal': 'Dog',
        'd0_date': date(2025, 3, 1),
    }
    fields.update(kwargs)
    record = TreatmentRecord(**fields)
    record.fill_schedule_from_d0()
    record.save()
    return record


def aware(*args):
    return timezone.make_aware(datetime(*args))


class TreatmentRecordModelTest(TestCase):
    """Test dose slots and completion status"""

    def test_schedule_filled_from_d0(self):
        record = make_record()
        self.assertEqual(record.d3_date, date(2025, 3, 4))
        self.assertEqual(record.d7_date, date(2025, 3, 8))
        self.assertEqual(record.d14_date, date(2025, 3, 15))
        self.assertEqual(record.d28_30_date, date(2025, 3, 29))

    def test_explicit_dates_are_kept(self):
        record = make_record(d3_date=date(2025, 3, 5))
        self.assertEqual(record.d3_date, date(2025, 3, 5))

    def test_new_record_is_ongoing(self):
        record = make_record()
        self.assertEqual(record.completion_status, 'ongoing')
        self.assertEqual(record.doses_completed, 0)

    def test_missed_dose_makes_record_incomplete(self):
        record = make_record(d0_status='completed', d3_status='missed')
        self.assertEqual(record.completion_status, 'incomplete')
        self.assertEqual(record.doses_completed, 1)

    def test_all_doses_completed(self):
        record = make_record(
            d0_status='completed', d3_status='completed', d7_status='completed',
            d14_status='completed', d28_30_status='completed',
        )
        self.assertEqual(record.completion_status, 'completed')
        self.assertEqual(record.doses_completed, 5)
        self.assertIn(record, TreatmentRecord.completed_vaccinations())

    def test_today_dose(self):
        record = make_record()
        dose = record.today_dose(date(2025, 3, 8))
        self.assertEqual(dose.number, 3)
        self.assertEqual(dose.label, 'D7')
        self.assertIsNone(record.today_dose(date(2025, 3, 9)))

    def test_today_dose_prefers_earliest_dose(self):
        record = make_record(d3_date=date(2025, 3, 1))
        dose = record.today_dose(date(2025, 3, 1))
        self.assertEqual(dose.number, 1)
        self.assertEqual(dose.label, 'D0')

    def test_partly_completed_record_is_ongoing(self):
        record = make_record(d0_status='completed', d3_status='completed')
        self.assertEqual(record.completion_status, 'ongoing')
        self.assertEqual(record.doses_completed, 2)

    def test_invalid_dose_number(self):
        record = make_record()
        with self.assertRaises(ValidationError):
            record.get_dose(6)

    def test_clean_rejects_unknown_category(self):
        record = TreatmentRecord(patient_name='Maria Santos', exposure_categories=['category_iv'])
        with self.assertRaises(ValidationError):
            record.full_clean()

    def test_clean_dedupes_tags(self):
        record = TreatmentRecord(
            patient_name='Maria Santos',
            exposure_categories=['category_iii', 'category_ii', 'category_iii'],
            treatment_types=['post_exposure', 'post_exposure'],
        )
        record.full_clean()
        self.assertEqual(record.exposure_categories, ['category_ii', 'category_iii'])
        self.assertEqual(record.treatment_types, ['post_exposure'])


class UpdateDoseStatusTest(TestCase):
    """Test staff dose actions"""

    def setUp(self):
        self.user = User.objects.create_user(username='nurse', password='pass12345',
                                             first_name='Ana', last_name='Reyes')
        self.record = make_record()

    def test_mark_completed(self):
        record = doses.update_dose_status(self.record.pk, 1, 'completed', updated_by=self.user)

        self.assertEqual(record.d0_status, 'completed')
        self.assertEqual(record.d0_updated_by, self.user)
        self.assertIsNotNone(record.d0_updated_at)

        update = DoseUpdate.objects.get(treatment_record=self.record)
        self.assertEqual(update.dose_number, 1)
        self.assertEqual(update.previous_status, 'pending')
        self.assertEqual(update.status, 'completed')
        self.assertEqual(update.updated_by_name, 'Ana Reyes')

    def test_history_is_appended(self):
        doses.update_dose_status(self.record.pk, 2, 'missed', updated_by=self.user)
        doses.update_dose_status(self.record.pk, 2, 'completed', updated_by=self.user)

        self.assertEqual(self.record.dose_updates.count(), 2)
        self.record.refresh_from_db()
        self.assertEqual(self.record.d3_status, 'completed')

    def test_invalid_dose_number_leaves_record_unchanged(self):
        with self.assertRaises(ValidationError):
            doses.update_dose_status(self.record.pk, 9, 'completed', updated_by=self.user)
        self.assertEqual(DoseUpdate.objects.count(), 0)

    def test_invalid_status(self):
        with self.assertRaises(ValidationError):
            doses.update_dose_status(self.record.pk, 1, 'pending', updated_by=self.user)
        self.record.refresh_from_db()
        self.assertEqual(self.record.d0_status, 'pending')

    def test_unknown_updater_name(self):
        doses.update_dose_status(self.record.pk, 1, 'completed')
        self.assertEqual(DoseUpdate.objects.get().updated_by_name, 'Unknown')


class DoseStatisticsTest(TestCase):

    def test_counts_per_dose(self):
        make_record(d0_status='completed')
        make_record(patient_name='Maria Santos', d0_status='missed')
        make_record(patient_name='Pedro Penduko')

        stats = doses.dose_statistics()

        self.assertEqual(stats[1], {'pending': 1, 'completed': 1, 'missed': 1, 'total': 3})
        self.assertEqual(stats[2]['pending'], 3)

    def test_patients_by_dose_hides_completed(self):
        make_record(d0_status='completed')
        pending = make_record(patient_name='Maria Santos')

        rows = doses.patients_by_dose(1)
        self.assertEqual([row['record'] for row in rows], [pending])

        rows = doses.patients_by_dose(1, include_completed=True)
        self.assertEqual(len(rows), 2)


class DoseQueueTest(TestCase):
    """Test which patients show as awaiting a dose"""

    def setUp(self):
        self.now = aware(2025, 3, 10, 9, 0)

    def test_d0_pending_always_shown(self):
        record = make_record(d0_date=date(2025, 3, 1))
        self.assertTrue(doses.is_due_in_queue(record, 1, now=self.now, visibility_hours=12))

    def test_recently_completed_dose_stays_visible(self):
        record = make_record(d0_status='completed', d0_updated_at=self.now - timedelta(hours=2))
        self.assertTrue(doses.is_due_in_queue(record, 1, now=self.now, visibility_hours=12))

        record.d0_updated_at = self.now - timedelta(hours=13)
        self.assertFalse(doses.is_due_in_queue(record, 1, now=self.now, visibility_hours=12))

    def test_later_dose_needs_previous_completed(self):
        record = make_record(d0_date=date(2025, 3, 9))
        self.assertFalse(doses.is_due_in_queue(record, 2, now=self.now, visibility_hours=12))

    def test_later_dose_scheduled_ahead_is_shown(self):
        record = make_record(
            d0_date=date(2025, 3, 9),
            d0_status='completed',
            d0_updated_at=self.now - timedelta(hours=1),
        )
        self.assertTrue(doses.is_due_in_queue(record, 2, now=self.now, visibility_hours=12))

    def test_overdue_dose_waits_for_window(self):
        record = make_record(
            d0_date=date(2025, 3, 1),
            d0_status='completed',
            d0_updated_at=self.now - timedelta(hours=2),
        )
        # D3 was due on March 4 and D0 was only just recorded
        self.assertFalse(doses.is_due_in_queue(record, 2, now=self.now, visibility_hours=12))

        record.d0_updated_at = self.now - timedelta(hours=12)
        self.assertTrue(doses.is_due_in_queue(record, 2, now=self.now, visibility_hours=12))

    def test_dose_queue(self):
        waiting = make_record(d0_date=date(2025, 3, 9))
        make_record(patient_name='Maria Santos', d0_status='completed',
                    d0_updated_at=self.now - timedelta(days=2))

        queue = doses.dose_queue(1, now=self.now, visibility_hours=12)
        self.assertEqual([row['record'] for row in queue], [waiting])

    def test_patients_due_today(self):
        due = make_record(d0_date=date(2025, 3, 3))
        make_record(patient_name='Maria Santos', d0_date=date(2025, 3, 4))

        rows = doses.patients_due_today(date(2025, 3, 6))
        self.assertEqual(len(rows), 1)
        record, dose = rows[0]
        self.assertEqual(record, due)
        self.assertEqual(dose.label, 'D3')


class VaccineStockTest(TestCase):

    def setUp(self):
        self.today = date(2025, 3, 10)

    def test_deducts_earliest_expiring(self):
        later = Vaccine.objects.create(vaccine_brand='Verorab', stock_quantity=5,
                                       people_per_vaccine=1, expiry_date=date(2026, 1, 1))
        sooner = Vaccine.objects.create(vaccine_brand='Verorab', stock_quantity=5,
                                        people_per_vaccine=1, expiry_date=date(2025, 6, 1))

        used = Vaccine.deduct_for_brand('verorab', today=self.today)

        self.assertEqual(used, sooner)
        sooner.refresh_from_db()
        later.refresh_from_db()
        self.assertEqual(sooner.stock_quantity, 4)
        self.assertEqual(later.stock_quantity, 5)

    def test_shared_vial(self):
        vaccine = Vaccine.objects.create(vaccine_brand='Speeda', stock_quantity=2,
                                         people_per_vaccine=2, expiry_date=date(2026, 1, 1))

        Vaccine.deduct_for_brand('Speeda', today=self.today)
        vaccine.refresh_from_db()
        self.assertEqual((vaccine.stock_quantity, vaccine.usage_count), (2, 1))

        Vaccine.deduct_for_brand('Speeda', today=self.today)
        vaccine.refresh_from_db()
        self.assertEqual((vaccine.stock_quantity, vaccine.usage_count), (1, 0))

    def test_expired_stock_rejected(self):
        Vaccine.objects.create(vaccine_brand='Verorab', stock_quantity=5,
                               expiry_date=date(2025, 1, 1))
        with self.assertRaises(ValidationError):
            Vaccine.deduct_for_brand('Verorab', today=self.today)

    def test_stock_expiring_today_rejected(self):
        Vaccine.objects.create(vaccine_brand='Verorab', stock_quantity=5,
                               expiry_date=self.today)
        with self.assertRaises(ValidationError):
            Vaccine.deduct_for_brand('Verorab', today=self.today)

    def test_out_of_stock_rejected(self):
        Vaccine.objects.create(vaccine_brand='Verorab', stock_quantity=0,
                               expiry_date=date(2026, 1, 1))
        with self.assertRaises(ValidationError):
            Vaccine.deduct_for_brand('Verorab', today=self.today)

    def test_unknown_brand_is_skipped(self):
        self.assertIsNone(Vaccine.deduct_for_brand('Rabipur', today=self.today))
        self.assertIsNone(Vaccine.deduct_for_brand(''))


class CreateRecordTest(TestCase):
    """Test creating a record from an appointment"""

    def setUp(self):
        self.user = User.objects.create_user(username='nurse', password='pass12345')
        self.appointment_date = timezone.localdate() + timedelta(days=1)
        AppointmentSlot.objects.create(date=self.appointment_date, available_slots=5)
        self.appointment = Appointment.book(
            patient_name='Juan Dela Cruz',
            patient_contact='+639171234567',
            biting_animal='Dog',
            place_bitten='Barangay 2',
            appointment_date=self.appointment_date,
        )

    def test_appointment_completed(self):
        Vaccine.objects.create(vaccine_brand='Verorab', stock_quantity=3,
                               expiry_date=self.appointment_date + timedelta(days=365))
        fields = TreatmentRecord.initial_from_appointment(self.appointment)
        fields.update({'d0_date': self.appointment_date, 'vaccine_brand_name': 'Verorab'})

        record = TreatmentRecord.create_record(self.user, appointment=self.appointment, **fields)

        self.appointment.refresh_from_db()
        self.assertEqual(self.appointment.status, 'completed')
        self.assertEqual(self.appointment.confirmed_by, self.user)
        self.assertEqual(record.place_bitten_barangay, 'Barangay 2')
        self.assertEqual(Vaccine.objects.get().stock_quantity, 2)

    def test_vaccine_failure_rolls_back(self):
        Vaccine.objects.create(vaccine_brand='Verorab', stock_quantity=0,
                               expiry_date=self.appointment_date + timedelta(days=365))
        fields = TreatmentRecord.initial_from_appointment(self.appointment)
        fields.update({'d0_date': self.appointment_date, 'vaccine_brand_name': 'Verorab'})

        with self.assertRaises(ValidationError):
            TreatmentRecord.create_record(self.user, appointment=self.appointment, **fields)

        self.assertEqual(TreatmentRecord.objects.count(), 0)
        self.appointment.refresh_from_db()
        self.assertEqual(self.appointment.status, 'pending')

    def test_cancelled_appointment_rejected(self):
        self.appointment.cancel('No show')
        fields = TreatmentRecord.initial_from_appointment(self.appointment)
        with self.assertRaises(ValidationError):
            TreatmentRecord.create_record(self.user, appointment=self.appointment, **fields)


class TreatmentViewsTest(TestCase):

    def setUp(self):
        self.client = Client()
        staff_role = Role.objects.create(name=Role.STAFF, display_name='Staff', is_default=True)
        self.user = User.objects.create_user(username='nurse', password='pass12345', role=staff_role)
        self.client.login(username='nurse', password='pass12345')
        self.record = make_record()

    def test_dose_tracker(self):
        response = self.client.get(reverse('treatments:dose_tracker'), {'dose': 1})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context['selected_dose'], 1)

    def test_update_dose_status_view(self):
        response = self.client.post(
            reverse('treatments:update_dose_status', kwargs={'pk': self.record.pk}),
            {'dose_number': 1, 'status': 'completed'}
        )
        self.assertRedirects(response, reverse('treatments:record_detail', kwargs={'pk': self.record.pk}),
                             fetch_redirect_response=False)
        self.record.refresh_from_db()
        self.assertEqual(self.record.d0_status, 'completed')

    def test_update_dose_status_follows_local_next(self):
        response = self.client.post(
            reverse('treatments:update_dose_status', kwargs={'pk': self.record.pk}),
            {'dose_number': 1, 'status': 'completed', 'next': reverse('treatments:dose_tracker')}
        )
        self.assertRedirects(response, reverse('treatments:dose_tracker'), fetch_redirect_response=False)

    def test_update_dose_status_ignores_external_next(self):
        response = self.client.post(
            reverse('treatments:update_dose_status', kwargs={'pk': self.record.pk}),
            {'dose_number': 1, 'status': 'completed', 'next': 'https://evil.example.com/'}
        )
        self.assertRedirects(response, reverse('treatments:record_detail', kwargs={'pk': self.record.pk}),
                             fetch_redirect_response=False)

    def test_create_record_requires_login(self):
        self.client.logout()
        url = reverse('treatments:record_create')
        response = self.client.get(url, {'appointment': 99999})
        self.assertEqual(response.status_code, 302)
        self.assertIn(reverse('users:login'), response['Location'])

    def test_create_record_unknown_appointment(self):
        response = self.client.get(reverse('treatments:record_create'), {'appointment': 99999})
        self.assertEqual(response.status_code, 404)

    def test_update_dose_status_htmx_error(self):
        response = self.client.post(
            reverse('treatments:update_dose_status', kwargs={'pk': self.record.pk}),
            {'dose_number': 7, 'status': 'completed'},
            HTTP_HX_REQUEST='true'
        )
        self.assertEqual(response.status_code, 400)

    def test_dose_statistics_api(self):
        response = self.client.get(reverse('treatments:dose_statistics_api'))
        data = response.json()
        self.assertTrue(data['success'])
        self.assertEqual(len(data['doses']), 5)
        self.assertEqual(data['doses'][0]['pending'], 1)

    def test_staff_cannot_manage_vaccines(self):
        response = self.client.get(reverse('treatments:vaccine_list'))
        self.assertRedirects(response, reverse('core:dashboard'), fetch_redirect_response=False)
