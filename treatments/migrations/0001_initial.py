import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


DOSE_STATUS_CHOICES = [('pending', 'Pending'), ('completed', 'Completed'), ('missed', 'Missed')]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('appointments', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Vaccine',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('vaccine_brand', models.CharField(max_length=100)),
                ('stock_quantity', models.PositiveIntegerField(default=0)),
                ('people_per_vaccine', models.PositiveIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1)])),
                ('usage_count', models.PositiveIntegerField(default=0)),
                ('expiry_date', models.DateField()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['vaccine_brand', 'expiry_date'],
                'indexes': [models.Index(fields=['vaccine_brand', 'expiry_date'], name='vaccine_brand_expiry_idx')],
            },
        ),
        migrations.CreateModel(
            name='TreatmentRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('patient_name', models.CharField(max_length=200)),
                ('patient_contact', models.CharField(blank=True, max_length=20)),
                ('patient_email', models.EmailField(blank=True, max_length=254)),
                ('patient_address', models.TextField(blank=True)),
                ('patient_age', models.PositiveIntegerField(blank=True, null=True)),
                ('patient_sex', models.CharField(blank=True, max_length=10)),
                ('date_of_birth', models.DateField(blank=True, null=True)),
                ('place_bitten_barangay', models.CharField(blank=True, max_length=150)),
                ('biting_animal', models.CharField(blank=True, max_length=100)),
                ('site_of_bite', models.CharField(blank=True, max_length=150)),
                ('date_bitten', models.DateField(blank=True, null=True)),
                ('time_bitten', models.CharField(blank=True, max_length=20)),
                ('animal_status', models.CharField(blank=True, max_length=100)),
                ('status_of_animal_date', models.DateField(blank=True, null=True)),
                ('provoked', models.CharField(blank=True, max_length=20)),
                ('local_wound_treatment', models.CharField(blank=True, max_length=200)),
                ('type_of_exposure', models.CharField(blank=True, choices=[('bite', 'Bite'), ('non_bite', 'Non-bite')], max_length=20)),
                ('exposure_categories', models.JSONField(blank=True, default=list, help_text='Subset of category_i, category_ii, category_iii')),
                ('treatment_types', models.JSONField(blank=True, default=list, help_text='Subset of pre_exposure, post_exposure')),
                ('vaccine_brand_name', models.CharField(blank=True, max_length=100)),
                ('route', models.CharField(blank=True, choices=[('intradermal', 'Intradermal (ID)'), ('intramuscular', 'Intramuscular (IM)')], max_length=20)),
                ('rig', models.CharField(blank=True, help_text='Rabies immunoglobulin given, if any', max_length=100, verbose_name='RIG')),
                ('remarks', models.TextField(blank=True)),
                ('d0_date', models.DateField(blank=True, null=True)),
                ('d0_status', models.CharField(choices=DOSE_STATUS_CHOICES, default='pending', max_length=10)),
                ('d0_updated_at', models.DateTimeField(blank=True, null=True)),
                ('d3_date', models.DateField(blank=True, null=True)),
                ('d3_status', models.CharField(choices=DOSE_STATUS_CHOICES, default='pending', max_length=10)),
                ('d3_updated_at', models.DateTimeField(blank=True, null=True)),
                ('d7_date', models.DateField(blank=True, null=True)),
                ('d7_status', models.CharField(choices=DOSE_STATUS_CHOICES, default='pending', max_length=10)),
                ('d7_updated_at', models.DateTimeField(blank=True, null=True)),
                ('d14_date', models.DateField(blank=True, null=True)),
                ('d14_status', models.CharField(choices=DOSE_STATUS_CHOICES, default='pending', max_length=10)),
                ('d14_updated_at', models.DateTimeField(blank=True, null=True)),
                ('d28_30_date', models.DateField(blank=True, null=True)),
                ('d28_30_status', models.CharField(choices=DOSE_STATUS_CHOICES, default='pending', max_length=10)),
                ('d28_30_updated_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('appointment', models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='treatment_record', to='appointments.appointment')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_treatment_records', to=settings.AUTH_USER_MODEL)),
                ('d0_updated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('d3_updated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('d7_updated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('d14_updated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('d28_30_updated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['patient_name', 'patient_contact'], name='treat_patient_idx'),
                    models.Index(fields=['d0_date'], name='treat_d0_date_idx'),
                    models.Index(fields=['created_at'], name='treat_created_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='DoseUpdate',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('dose_number', models.PositiveSmallIntegerField(choices=[(1, 'D0'), (2, 'D3'), (3, 'D7'), (4, 'D14'), (5, 'D28/30')])),
                ('previous_status', models.CharField(choices=DOSE_STATUS_CHOICES, max_length=10)),
                ('status', models.CharField(choices=DOSE_STATUS_CHOICES, max_length=10)),
                ('dose_date', models.DateField(blank=True, null=True)),
                ('updated_by_name', models.CharField(blank=True, max_length=200)),
                ('updated_at', models.DateTimeField(auto_now_add=True)),
                ('treatment_record', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='dose_updates', to='treatments.treatmentrecord')),
                ('updated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='dose_updates', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-updated_at'],
                'indexes': [models.Index(fields=['treatment_record', 'dose_number'], name='dose_update_record_idx')],
            },
        ),
    ]
