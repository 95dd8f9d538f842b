# patients/tests.py
"""
Unit tests for patient history and patient groups
"""
import shutil
import tempfile
from datetime import date, timedelta

from django.core.exceptions import ValidationError
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, Client, override_settings
from django.urls import reverse
from django.utils import timezone

from appointments.models import Appointment
from treatments.models import TreatmentRecord
from users.models import Role, User
from .models import PatientGroup, Prescription, GroupMessage
from . import utils


def make_appointment(name, contact, **kwargs):
    fields = {
        'patient_name': name,
        'patient_contact': contact,
        'biting_animal': 'Dog',
        'place_bitten': 'Barangay 1',
        'appointment_date': date(2025, 3, 1),
    }
    fields.update(kwargs)
    return Appointment.objects.create(**fields)


def make_record(name, contact, **kwargs):
    fields = {'patient_name': name, 'patient_contact': contact, 'd0_date': date(2025, 3, 1)}
    fields.update(kwargs)
    return TreatmentRecord.objects.create(**fields)


class PatientHistoryTest(TestCase):

    def test_groups_by_trimmed_name_and_contact(self):
        first = make_record('Juan Dela Cruz', '+639171234567')
        second = make_record(' Juan Dela Cruz ', '+639171234567 ', d0_status='completed')
        make_record('Maria Santos', '+639181234567')

        history = utils.patient_history()

        self.assertEqual(len(history), 2)
        juan = next(entry for entry in history if entry['name'] == 'Juan Dela Cruz')
        self.assertEqual([row['record'] for row in juan['records']], [second, first])
        self.assertEqual(juan['records'][0]['doses_completed'], 1)
        self.assertEqual(juan['records'][0]['completion_status'], 'ongoing')

    def test_search(self):
        make_record('Juan Dela Cruz', '+639171234567', place_bitten_barangay='Taytayan')
        make_record('Maria Santos', '+639181234567', place_bitten_barangay='Barangay 3')

        history = utils.patient_history('taytayan')
        self.assertEqual([entry['name'] for entry in history], ['Juan Dela Cruz'])


class AvailablePatientsTest(TestCase):

    def test_union_keyed_by_contact(self):
        make_appointment('Juan Dela Cruz', '+639171234567')
        make_record('Juan Dela Cruz', '+639171234567 ')
        make_appointment('Ana Reyes', '+639191234567')

        patients = utils.available_patients()

        self.assertEqual([p['name'] for p in patients], ['Ana Reyes', 'Juan Dela Cruz'])
        self.assertEqual(patients[1]['contact'], '+639171234567')

    def test_most_recent_name_wins(self):
        old = make_appointment('Juan Cruz', '+639171234567')
        Appointment.objects.filter(pk=old.pk).update(created_at=timezone.now() - timedelta(days=10))
        make_record('Juan Dela Cruz', '+639171234567')

        patients = utils.available_patients()
        self.assertEqual(len(patients), 1)
        self.assertEqual(patients[0]['name'], 'Juan Dela Cruz')


class AutoGroupTest(TestCase):

    def setUp(self):
        self.patients = [
            {'name': f'Patient {letter}', 'contact': f'+63917000000{i}'}
            for i, letter in enumerate('ABCDEFG')
        ]

    def test_splits_into_consecutive_chunks(self):
        groups = utils.auto_group(self.patients, 3, 'March Batch')

        self.assertEqual([g.name for g in groups],
                         ['March Batch - Group 1', 'March Batch - Group 2', 'March Batch - Group 3'])
        self.assertEqual([g.members.count() for g in groups], [3, 3, 1])
        self.assertEqual([m.name for m in groups[1].members.all()], ['Patient D', 'Patient E', 'Patient F'])

    def test_invalid_group_size(self):
        with self.assertRaises(ValidationError):
            utils.auto_group(self.patients, 0, 'March Batch')
        self.assertEqual(PatientGroup.objects.count(), 0)

    def test_blank_name(self):
        with self.assertRaises(ValidationError):
            utils.auto_group(self.patients, 2, '  ')


class PatientGroupViewsTest(TestCase):

    def setUp(self):
        self.media_root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.media_root, ignore_errors=True)

        self.client = Client()
        staff_role = Role.objects.create(name=Role.STAFF, display_name='Staff', is_default=True)
        self.user = User.objects.create_user(username='nurse', password='pass12345', role=staff_role,
                                             first_name='Ana', last_name='Reyes')
        self.client.login(username='nurse', password='pass12345')
        self.group = PatientGroup.objects.create(name='March Batch - Group 1', created_by=self.user)

    def test_group_detail(self):
        response = self.client.get(reverse('patients:group_detail', kwargs={'pk': self.group.pk}))
        self.assertEqual(response.status_code, 200)

    def test_create_group_with_selected_patients(self):
        make_appointment('Juan Dela Cruz', '+639171234567')
        make_appointment('Maria Santos', '+639181234567')

        response = self.client.post(reverse('patients:group_create'), {
            'name': 'Follow-up',
            'patients': ['+639181234567'],
        })

        group = PatientGroup.objects.get(name='Follow-up')
        self.assertRedirects(response, reverse('patients:group_detail', kwargs={'pk': group.pk}),
                             fetch_redirect_response=False)
        self.assertEqual([m.name for m in group.members.all()], ['Maria Santos'])

    def test_auto_group_view(self):
        for i in range(4):
            make_appointment(f'Patient {i}', f'+63917000000{i}')

        response = self.client.post(reverse('patients:auto_group'), {'base_name': 'Batch', 'per_group': 3})

        self.assertRedirects(response, reverse('patients:group_list'), fetch_redirect_response=False)
        self.assertTrue(PatientGroup.objects.filter(name='Batch - Group 2').exists())

    def test_post_message(self):
        self.client.post(reverse('patients:post_group_message', kwargs={'pk': self.group.pk}),
                         {'body': 'Bring your vaccination card.'})

        message = GroupMessage.objects.get(group=self.group)
        self.assertEqual(message.sender_name, 'Ana Reyes')

    def test_blank_message_rejected(self):
        self.client.post(reverse('patients:post_group_message', kwargs={'pk': self.group.pk}), {'body': '   '})
        self.assertFalse(GroupMessage.objects.exists())

    def test_upload_and_remove_prescription(self):
        with override_settings(MEDIA_ROOT=self.media_root):
            upload = SimpleUploadedFile('rx.pdf', b'%PDF-1.4 test', content_type='application/pdf')
            self.client.post(reverse('patients:upload_prescription', kwargs={'pk': self.group.pk}),
                             {'file': upload})

            prescription = Prescription.objects.get(group=self.group)
            self.assertEqual(prescription.original_name, 'rx.pdf')

            self.client.post(reverse('patients:remove_prescription',
                                     kwargs={'pk': self.group.pk, 'prescription_pk': prescription.pk}))
            self.assertFalse(Prescription.objects.exists())

    def test_disallowed_extension(self):
        with override_settings(MEDIA_ROOT=self.media_root):
            upload = SimpleUploadedFile('script.exe', b'MZ', content_type='application/octet-stream')
            self.client.post(reverse('patients:upload_prescription', kwargs={'pk': self.group.pk}),
                             {'file': upload})
        self.assertFalse(Prescription.objects.exists())

    def test_delete_group(self):
        response = self.client.post(reverse('patients:group_delete', kwargs={'pk': self.group.pk}))
        self.assertRedirects(response, reverse('patients:group_list'), fetch_redirect_response=False)
        self.assertFalse(PatientGroup.objects.exists())

    def test_group_actions_require_post(self):
        response = self.client.get(reverse('patients:group_delete', kwargs={'pk': self.group.pk}))
        self.assertEqual(response.status_code, 405)
