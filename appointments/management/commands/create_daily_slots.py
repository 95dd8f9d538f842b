# appointments/management/commands/create_daily_slots.py
from datetime import datetime, timedelta

from django.core.management.base import BaseCommand, CommandError

from appointments.models import AppointmentSlot


class Command(BaseCommand):
    help = 'Open daily appointment slots for a date range (existing dates are left untouched)'

    def add_arguments(self, parser):
        parser.add_argument('start', type=str, help='First date (YYYY-MM-DD)')
        parser.add_argument('end', type=str, help='Last date, inclusive (YYYY-MM-DD)')
        parser.add_argument(
            '--slots',
            type=int,
            default=None,
            help='Capacity per day. Defaults to the default_available_slots setting'
        )
        parser.add_argument(
            '--skip-sundays',
            action='store_true',
            help='Do not open slots on Sundays'
        )

    def handle(self, *args, **options):
        try:
            start = datetime.strptime(options['start'], '%Y-%m-%d').date()
            end = datetime.strptime(options['end'], '%Y-%m-%d').date()
        except ValueError:
            raise CommandError('Dates must use the YYYY-MM-DD format')

        if start > end:
            raise CommandError('Start date must not be after end date')

        capacity = options['slots'] if options['slots'] is not None else AppointmentSlot.default_capacity()
        if capacity < 0:
            raise CommandError('Capacity cannot be negative')

        created_count = 0
        skipped_count = 0
        current = start
        while current <= end:
            if options['skip_sundays'] and current.weekday() == 6:
                current += timedelta(days=1)
                continue

            _, created = AppointmentSlot.objects.get_or_create(
                date=current,
                defaults={'available_slots': capacity}
            )
            if created:
                created_count += 1
            else:
                skipped_count += 1
            current += timedelta(days=1)

        self.stdout.write(self.style.SUCCESS(
            f'✓ {created_count} days opened with {capacity} slots, {skipped_count} already existed'
        ))
