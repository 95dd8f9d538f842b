from django.core.management.base import BaseCommand
from core.models import SystemSetting


class Command(BaseCommand):
    help = 'Initialize default system settings'

    def handle(self, *args, **options):
        created_keys = SystemSetting.initialize_defaults()

        for key in created_keys:
            self.stdout.write(self.style.SUCCESS(f'✓ Created setting: {key}'))

        skipped_count = len(SystemSetting.DEFAULTS) - len(created_keys)
        if created_keys:
            self.stdout.write(self.style.SUCCESS(
                f'\n✓ Settings initialization complete: {len(created_keys)} created, {skipped_count} already existed'
            ))
        else:
            self.stdout.write(self.style.SUCCESS(
                f'✓ All settings already initialized ({skipped_count} settings)'
            ))
