from django.core.management.base import BaseCommand
from users.models import Role


class Command(BaseCommand):
    help = 'Create the default admin and staff roles'

    def handle(self, *args, **options):
        roles = [
            (Role.ADMIN, 'Admin', 'Full access including vaccines and maintenance'),
            (Role.STAFF, 'Staff', 'Appointments, dose tracking, patients and reports'),
        ]

        for name, display_name, description in roles:
            role, created = Role.objects.get_or_create(
                name=name,
                defaults={
                    'display_name': display_name,
                    'description': description,
                    'is_default': True,
                }
            )
            if created:
                self.stdout.write(self.style.SUCCESS(f'✓ Created role: {display_name}'))
            elif options.get('verbosity', 1) >= 2:
                self.stdout.write(self.style.WARNING(f'⚠ Already exists: {display_name}'))

        self.stdout.write(self.style.SUCCESS('✓ Roles ready'))
