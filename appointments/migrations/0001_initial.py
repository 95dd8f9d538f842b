import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='AppointmentSlot',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date', models.DateField(unique=True)),
                ('available_slots', models.PositiveIntegerField(default=40, help_text='Maximum number of appointments for this date')),
                ('notes', models.TextField(blank=True, help_text='Optional notes for this date')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_appointment_slots', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Appointment Slot',
                'verbose_name_plural': 'Appointment Slots',
                'ordering': ['date'],
            },
        ),
        migrations.CreateModel(
            name='Appointment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('patient_name', models.CharField(max_length=200)),
                ('patient_contact', models.CharField(max_length=20)),
                ('patient_email', models.EmailField(blank=True, max_length=254)),
                ('patient_address', models.TextField(blank=True)),
                ('patient_age', models.PositiveIntegerField(blank=True, null=True, validators=[django.core.validators.MinValueValidator(0)])),
                ('patient_sex', models.CharField(blank=True, choices=[('male', 'Male'), ('female', 'Female')], max_length=10)),
                ('date_of_birth', models.DateField(blank=True, null=True)),
                ('biting_animal', models.CharField(help_text='e.g. Dog, Cat', max_length=100)),
                ('place_bitten', models.CharField(help_text='Barangay where the bite happened', max_length=150)),
                ('site_of_bite', models.CharField(blank=True, help_text='Body part', max_length=150)),
                ('date_bitten', models.DateField(blank=True, null=True)),
                ('time_bitten', models.CharField(blank=True, help_text='HH:MM, 24-hour', max_length=20)),
                ('animal_status', models.CharField(blank=True, help_text='e.g. Alive, Dead, Unknown', max_length=100)),
                ('provoked', models.CharField(blank=True, choices=[('provoked', 'Provoked'), ('unprovoked', 'Unprovoked')], max_length=20)),
                ('local_wound_treatment', models.CharField(blank=True, help_text='Washing of bite / first aid given', max_length=200)),
                ('appointment_date', models.DateField()),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('confirmed', 'Confirmed'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], default='pending', max_length=20)),
                ('confirmed_at', models.DateTimeField(blank=True, null=True)),
                ('cancellation_reason', models.TextField(blank=True)),
                ('staff_notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('booked_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='booked_appointments', to=settings.AUTH_USER_MODEL)),
                ('confirmed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='confirmed_appointments', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['status'], name='appt_status_idx'),
                    models.Index(fields=['appointment_date'], name='appt_date_idx'),
                    models.Index(fields=['created_at'], name='appt_created_idx'),
                    models.Index(fields=['place_bitten'], name='appt_place_bitten_idx'),
                    models.Index(fields=['patient_contact'], name='appt_contact_idx'),
                ],
            },
        ),
    ]
