# users/tests.py
"""
Unit tests for staff accounts, roles and sign-in
"""
from django.core.management import call_command
from django.test import TestCase, Client
from django.urls import reverse

from core.models import AuditLog
from .models import Role, User


class RoleModelTest(TestCase):

    def test_default_permissions(self):
        admin = Role.objects.create(name=Role.ADMIN, display_name='Admin', is_default=True)
        staff = Role.objects.create(name=Role.STAFF, display_name='Staff', is_default=True)

        self.assertTrue(all(admin.permissions[module] for module in Role.MODULES))
        self.assertTrue(staff.permissions['treatments'])
        self.assertFalse(staff.permissions['vaccines'])
        self.assertFalse(staff.permissions['maintenance'])

    def test_setup_roles_command(self):
        call_command('setup_roles', verbosity=0)
        call_command('setup_roles', verbosity=0)
        self.assertEqual(Role.objects.count(), 2)
        self.assertTrue(Role.objects.get(name=Role.ADMIN).is_protected())


class UserModelTest(TestCase):

    def setUp(self):
        self.staff_role = Role.objects.create(name=Role.STAFF, display_name='Staff', is_default=True)

    def test_has_permission(self):
        user = User.objects.create_user(username='nurse', password='pass12345', role=self.staff_role)
        self.assertTrue(user.has_permission('appointments'))
        self.assertFalse(user.has_permission('maintenance'))
        self.assertFalse(user.has_permission('unknown'))

    def test_no_role_has_no_permissions(self):
        user = User.objects.create_user(username='guest', password='pass12345')
        self.assertFalse(user.has_permission('dashboard'))

    def test_superuser_has_everything(self):
        user = User.objects.create_superuser(username='root', password='pass12345')
        self.assertTrue(user.has_permission('maintenance'))
        self.assertTrue(user.is_admin)

    def test_display_name(self):
        self.assertEqual(User.display_name_for(None), 'Unknown')
        user = User.objects.create_user(username='nurse', password='pass12345')
        self.assertEqual(User.display_name_for(user), 'nurse')
        user.first_name, user.last_name = 'Ana', 'Reyes'
        self.assertEqual(User.display_name_for(user), 'Ana Reyes')

    def test_blocked_statuses(self):
        user = User(username='old', employment_status=User.STATUS_RETIRED)
        self.assertFalse(user.can_sign_in)


class LoginTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.staff_role = Role.objects.create(name=Role.STAFF, display_name='Staff', is_default=True)
        self.user = User.objects.create_user(username='nurse', password='pass12345', role=self.staff_role)

    def test_login(self):
        response = self.client.post(reverse('users:login'), {'username': 'nurse', 'password': 'pass12345'})
        self.assertRedirects(response, reverse('core:dashboard'), fetch_redirect_response=False)

    def test_retired_staff_cannot_sign_in(self):
        self.user.employment_status = User.STATUS_RETIRED
        self.user.save()

        response = self.client.post(reverse('users:login'), {'username': 'nurse', 'password': 'pass12345'})

        self.assertEqual(response.status_code, 200)
        self.assertContains(response, 'Your account is retired')
        self.assertNotIn('_auth_user_id', self.client.session)

    def test_logout(self):
        self.client.login(username='nurse', password='pass12345')
        response = self.client.post(reverse('users:logout'))
        self.assertRedirects(response, reverse('users:login'), fetch_redirect_response=False)
        self.assertNotIn('_auth_user_id', self.client.session)


class UserManagementViewsTest(TestCase):

    def setUp(self):
        self.client = Client()
        self.admin_role = Role.objects.create(name=Role.ADMIN, display_name='Admin', is_default=True)
        self.staff_role = Role.objects.create(name=Role.STAFF, display_name='Staff', is_default=True)
        self.admin = User.objects.create_user(username='admin', password='pass12345', role=self.admin_role)
        self.staff = User.objects.create_user(username='nurse', password='pass12345', role=self.staff_role)
        self.client.login(username='admin', password='pass12345')

    def test_staff_cannot_manage_users(self):
        client = Client()
        client.login(username='nurse', password='pass12345')
        response = client.get(reverse('users:user_list'))
        self.assertRedirects(response, reverse('core:dashboard'), fetch_redirect_response=False)

    def test_create_user(self):
        response = self.client.post(reverse('users:user_create'), {
            'username': 'newnurse',
            'first_name': 'Maria',
            'last_name': 'Santos',
            'email': 'maria@example.com',
            'role': self.staff_role.pk,
            'employment_status': User.STATUS_ACTIVE,
            'is_active': 'on',
            'password1': 'longpassword1',
            'password2': 'longpassword1',
        })
        user = User.objects.get(username='newnurse')
        self.assertRedirects(response, reverse('users:user_detail', kwargs={'pk': user.pk}),
                             fetch_redirect_response=False)
        self.assertTrue(user.check_password('longpassword1'))

    def test_password_mismatch(self):
        self.client.post(reverse('users:user_create'), {
            'username': 'newnurse',
            'role': self.staff_role.pk,
            'employment_status': User.STATUS_ACTIVE,
            'password1': 'longpassword1',
            'password2': 'different12',
        })
        self.assertFalse(User.objects.filter(username='newnurse').exists())

    def test_terminate_staff(self):
        self.client.post(reverse('users:update_employment_status', kwargs={'pk': self.staff.pk}),
                         {'employment_status': User.STATUS_TERMINATED})
        self.staff.refresh_from_db()
        self.assertEqual(self.staff.employment_status, User.STATUS_TERMINATED)
        self.assertTrue(AuditLog.objects.filter(action='status_change', object_id=self.staff.pk).exists())

    def test_cannot_retire_self(self):
        self.client.post(reverse('users:update_employment_status', kwargs={'pk': self.admin.pk}),
                         {'employment_status': User.STATUS_RETIRED})
        self.admin.refresh_from_db()
        self.assertEqual(self.admin.employment_status, User.STATUS_ACTIVE)

    def test_last_admin_keeps_role(self):
        self.client.post(reverse('users:user_update', kwargs={'pk': self.admin.pk}), {
            'username': 'admin',
            'role': self.staff_role.pk,
            'employment_status': User.STATUS_ACTIVE,
            'is_active': 'on',
        })
        self.admin.refresh_from_db()
        self.assertEqual(self.admin.role, self.admin_role)
