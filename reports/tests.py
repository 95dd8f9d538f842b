# reports/tests.py
"""
Unit tests for bite-case analytics and the barangay map
"""
from datetime import date

from django.test import TestCase, SimpleTestCase, Client
from django.urls import reverse

from appointments.models import Appointment
from users.models import Role, User
from . import analytics, geo


def row(day, animal='Dog', time_bitten='', age=None, place='Barangay 1'):
    return {
        'appointment_date': day,
        'biting_animal': animal,
        'time_bitten': time_bitten,
        'patient_age': age,
        'place_bitten': place,
    }


class AnimalNormalizationTest(SimpleTestCase):

    def test_variants_share_a_bucket(self):
        rows = [row(date(2025, 3, 1), animal) for animal in ('dog', 'DOG', 'Dog ')]
        breakdown = analytics.animal_type_breakdown(rows)

        self.assertEqual(len(breakdown), 1)
        self.assertEqual(breakdown[0]['animal'], 'Dog')
        self.assertEqual(breakdown[0]['count'], 3)
        self.assertEqual(breakdown[0]['percentage'], 100)

    def test_substring_match_in_order(self):
        self.assertEqual(analytics.normalize_animal('stray dog'), 'Dog')
        self.assertEqual(analytics.normalize_animal('Wildcat'), 'Cat')
        self.assertEqual(analytics.normalize_animal('bat'), 'Bat')

    def test_unknown_animal_capitalized(self):
        self.assertEqual(analytics.normalize_animal(' hAMSTER '), 'Hamster')
        self.assertEqual(analytics.normalize_animal('   '), '')

    def test_sorted_by_count_with_colors(self):
        rows = [row(date(2025, 3, 1), a) for a in ('cat', 'dog', 'dog', 'dog')]
        breakdown = analytics.animal_type_breakdown(rows)

        self.assertEqual([b['animal'] for b in breakdown], ['Dog', 'Cat'])
        self.assertEqual([b['percentage'] for b in breakdown], [75, 25])
        self.assertEqual(breakdown[0]['color'], '#3b82f6')


class TimeAndAgeBucketTest(SimpleTestCase):

    def test_time_slots(self):
        self.assertEqual(analytics.time_slot_for('06:15'), '6:00 AM')
        self.assertEqual(analytics.time_slot_for('13:59:00'), '12:00 PM')
        self.assertEqual(analytics.time_slot_for('21:00'), '8:00 PM')

    def test_unusable_times_skipped(self):
        self.assertIsNone(analytics.time_slot_for('03:00'))
        self.assertIsNone(analytics.time_slot_for('22:30'))
        self.assertIsNone(analytics.time_slot_for('noon'))
        self.assertIsNone(analytics.time_slot_for('25:00'))
        self.assertIsNone(analytics.time_slot_for(''))

    def test_time_breakdown_has_eight_slots(self):
        rows = [row(date(2025, 3, 1), time_bitten=t) for t in ('07:00', '07:30', 'bad')]
        breakdown = analytics.time_of_day_breakdown(rows)

        self.assertEqual(len(breakdown), 8)
        self.assertEqual(breakdown[0]['count'], 2)
        self.assertEqual(sum(slot['count'] for slot in breakdown), 2)

    def test_age_groups(self):
        self.assertEqual(analytics.age_group_for(0), '0-10 years')
        self.assertEqual(analytics.age_group_for('11'), '11-20 years')
        self.assertEqual(analytics.age_group_for(50), '41-50 years')
        self.assertEqual(analytics.age_group_for(87), '51+ years')
        self.assertIsNone(analytics.age_group_for('unknown'))
        self.assertIsNone(analytics.age_group_for(None))


class PeriodAndTrendTest(SimpleTestCase):

    def setUp(self):
        self.today = date(2025, 3, 20)
        self.rows = [
            row(date(2025, 3, 18)),
            row(date(2025, 3, 1)),
            row(date(2025, 1, 5)),
            row(date(2023, 6, 1)),
        ]

    def test_week(self):
        filtered = analytics.filter_period(self.rows, 2025, 'week', today=self.today)
        self.assertEqual(len(filtered), 1)

    def test_month(self):
        filtered = analytics.filter_period(self.rows, 2025, 'month', today=self.today)
        self.assertEqual(len(filtered), 2)

    def test_year(self):
        filtered = analytics.filter_period(self.rows, 2025, 'year', today=self.today)
        self.assertEqual(len(filtered), 3)

    def test_month_before_handles_short_months(self):
        self.assertEqual(analytics._one_month_before(date(2025, 3, 31)), date(2025, 2, 28))
        self.assertEqual(analytics._one_month_before(date(2025, 1, 15)), date(2024, 12, 15))

    def test_monthly_trend(self):
        trend = analytics.monthly_trend(self.rows)
        self.assertEqual(len(trend), 12)
        self.assertEqual(trend[2], {'month': 'Mar', 'cases': 2})

    def test_yearly_trend_zero_filled(self):
        trend = analytics.yearly_trend(self.rows, current_year=2025)
        self.assertEqual([t['year'] for t in trend], [2021, 2022, 2023, 2024, 2025])
        self.assertEqual([t['cases'] for t in trend], [0, 0, 1, 0, 3])

    def test_available_years(self):
        self.assertEqual(analytics.available_years(self.rows, current_year=2026), [2026, 2025, 2023])

    def test_build_analytics(self):
        data = analytics.build_analytics(self.rows, 2025, 'year', today=self.today)
        self.assertEqual(data['total_cases'], 3)
        self.assertEqual(data['top_animal']['animal'], 'Dog')
        self.assertEqual(data['peak_month']['month'], 'Mar')


class GeoTest(SimpleTestCase):

    def test_known_barangay(self):
        self.assertEqual(geo.coordinates_for('Barangay 3'), (11.0400, 124.0000))
        self.assertEqual(geo.coordinates_for('barangay taytayan'), (11.0488, 123.9919))

    def test_partial_match(self):
        self.assertEqual(geo.coordinates_for('Taytayan, Bogo City'), (11.0488, 123.9919))

    def test_unknown_barangay_is_stable(self):
        first = geo.coordinates_for('Cayang')
        self.assertEqual(first, geo.coordinates_for('Cayang'))
        self.assertLessEqual(abs(first[0] - geo.MAP_CENTER[0]), 0.1)
        self.assertLessEqual(abs(first[1] - geo.MAP_CENTER[1]), 0.1)

    def test_fallback_formula(self):
        h = sum(ord(c) for c in 'Cayang')
        lat, lng = geo.fallback_coordinates('Cayang')
        self.assertAlmostEqual(lat, geo.MAP_CENTER[0] + ((h % 200) - 100) / 1000)
        self.assertAlmostEqual(lng, geo.MAP_CENTER[1] + (((h * 7) % 200) - 100) / 1000)

    def test_risk_levels(self):
        self.assertEqual(geo.risk_level(25), ('High', '#ef4444'))
        self.assertEqual(geo.risk_level(10), ('Medium', '#f97316'))
        self.assertEqual(geo.risk_level(5), ('Low', '#eab308'))
        self.assertEqual(geo.risk_level(0), ('Minimal', '#22c55e'))

    def test_map_data_ordering(self):
        markers = geo.barangay_map_data({'Barangay 1': 3, 'Barangay 2': 12})
        self.assertEqual([m['barangay'] for m in markers], ['Barangay 2', 'Barangay 1'])
        self.assertEqual(markers[0]['risk_level'], 'Medium')


class BarangayCountTest(TestCase):

    def setUp(self):
        for place in ('Barangay 1', 'barangay 1 ', 'Barangay 2', ''):
            Appointment.objects.create(
                patient_name='Juan Dela Cruz',
                patient_contact='+639171234567',
                biting_animal='Dog',
                place_bitten=place,
                appointment_date=date(2025, 3, 1),
            )

    def test_case_insensitive_count(self):
        self.assertEqual(geo.barangay_case_count('BARANGAY 1'), 2)
        self.assertEqual(geo.barangay_case_count(''), 0)

    def test_grouped_by_trimmed_place(self):
        counts = geo.barangay_counts()
        self.assertEqual(counts.get('Barangay 2'), 1)
        self.assertNotIn('', counts)


class ReportViewsTest(TestCase):

    def setUp(self):
        self.client = Client()
        staff_role = Role.objects.create(name=Role.STAFF, display_name='Staff', is_default=True)
        User.objects.create_user(username='nurse', password='pass12345', role=staff_role)
        self.client.login(username='nurse', password='pass12345')

    def test_analytics_page(self):
        response = self.client.get(reverse('reports:analytics'), {'period': 'year'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.context['period'], 'year')

    def test_invalid_period_falls_back(self):
        response = self.client.get(reverse('reports:analytics_api'), {'period': 'decade'})
        self.assertEqual(response.json()['period'], 'month')

    def test_map_api(self):
        response = self.client.get(reverse('reports:map_data_api'))
        data = response.json()
        self.assertTrue(data['success'])
        self.assertEqual(data['markers'], [])

    def test_barangay_count_requires_name(self):
        response = self.client.get(reverse('reports:barangay_case_count_api'))
        self.assertEqual(response.status_code, 400)
