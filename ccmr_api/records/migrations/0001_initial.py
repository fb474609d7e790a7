import django.db.models.deletion
from django.db import migrations, models

OFFICE_CHOICES = [
    ('OPD', 'Office of the Prefect of Discipline'),
    ('GCO', 'Guidance Counseling Office'),
    ('INF', 'Infirmary'),
    ('Administrator', 'Administrator'),
]

REFERRAL_CHOICES = [('None', 'None'), ('Pending', 'Pending'), ('Confirmed', 'Confirmed')]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Student',
            fields=[
                ('student_id', models.CharField(max_length=20, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=150)),
                ('strand', models.CharField(blank=True, default='', max_length=50)),
                ('grade_level', models.CharField(blank=True, default='', max_length=10)),
                ('section', models.CharField(blank=True, default='', max_length=50)),
                ('school_year_semester', models.CharField(blank=True, default='', max_length=50)),
            ],
        ),
        migrations.CreateModel(
            name='OfficeAccount',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('email', models.EmailField(max_length=254, unique=True)),
                ('password', models.CharField(max_length=128)),
                ('name', models.CharField(max_length=100)),
                ('department', models.CharField(blank=True, default='', max_length=100)),
                ('office', models.CharField(choices=OFFICE_CHOICES, max_length=20)),
                ('must_change_password', models.BooleanField(default=False)),
            ],
        ),
        migrations.CreateModel(
            name='CaseRecord',
            fields=[
                ('referral_state', models.CharField(choices=REFERRAL_CHOICES, default='None', max_length=10)),
                ('referred_at', models.DateTimeField(blank=True, null=True)),
                ('referral_confirmed_at', models.DateTimeField(blank=True, null=True)),
                ('case_no', models.AutoField(primary_key=True, serialize=False)),
                ('violation_level', models.CharField(choices=[('Minor', 'Minor'), ('Major', 'Major'), ('Serious', 'Serious')], max_length=10)),
                ('status', models.CharField(choices=[('Ongoing', 'Ongoing'), ('Resolved', 'Resolved')], max_length=10)),
                ('description', models.TextField()),
                ('remarks', models.TextField(blank=True, default='')),
                ('date', models.DateField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='case_records', to='records.student')),
            ],
        ),
        migrations.CreateModel(
            name='MedicalRecord',
            fields=[
                ('referral_state', models.CharField(choices=REFERRAL_CHOICES, default='None', max_length=10)),
                ('referred_at', models.DateTimeField(blank=True, null=True)),
                ('referral_confirmed_at', models.DateTimeField(blank=True, null=True)),
                ('record_id', models.AutoField(primary_key=True, serialize=False)),
                ('subject', models.CharField(max_length=200)),
                ('status', models.CharField(choices=[('Ongoing', 'Ongoing'), ('For Treatment', 'For Treatment'), ('Treated', 'Treated')], max_length=15)),
                ('medical_details', models.TextField()),
                ('remarks', models.TextField(blank=True, default='')),
                ('is_medical', models.BooleanField(default=False)),
                ('is_psychological', models.BooleanField(default=False)),
                ('date', models.DateField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='medical_records', to='records.student')),
            ],
            options={
                'constraints': [
                    models.CheckConstraint(
                        condition=models.Q(('is_medical', True), ('is_psychological', True), _connector='OR'),
                        name='medical_or_psychological',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='CounselingRecord',
            fields=[
                ('record_id', models.AutoField(primary_key=True, serialize=False)),
                ('session_number', models.PositiveIntegerField()),
                ('status', models.CharField(choices=[('To Schedule', 'To Schedule'), ('Scheduled', 'Scheduled'), ('Done', 'Done')], max_length=15)),
                ('date', models.DateField(blank=True, null=True)),
                ('time', models.TimeField(blank=True, null=True)),
                ('concern', models.TextField()),
                ('remarks', models.TextField(blank=True, default='')),
                ('psychological_condition', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('source_case', models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='counseling_record', to='records.caserecord')),
                ('source_medical', models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='counseling_record', to='records.medicalrecord')),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='counseling_records', to='records.student')),
            ],
            options={
                'constraints': [
                    models.UniqueConstraint(fields=('student', 'session_number'), name='unique_session_per_student'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Attachment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('file', models.FileField(upload_to='attachments/%Y/%m/')),
                ('filename', models.CharField(max_length=255)),
                ('display_name', models.CharField(max_length=255)),
                ('size', models.PositiveIntegerField()),
                ('media_type', models.CharField(max_length=100)),
                ('is_medical', models.BooleanField(blank=True, null=True)),
                ('is_psychological', models.BooleanField(blank=True, null=True)),
                ('uploaded_by', models.CharField(choices=OFFICE_CHOICES, max_length=20)),
                ('uploaded_at', models.DateTimeField(auto_now_add=True)),
                ('case_record', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='attachments', to='records.caserecord')),
                ('counseling_record', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='attachments', to='records.counselingrecord')),
                ('medical_record', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='attachments', to='records.medicalrecord')),
            ],
        ),
        migrations.CreateModel(
            name='RecordEdit',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('edited_by', models.CharField(choices=OFFICE_CHOICES, max_length=20)),
                ('edited_at', models.DateTimeField(auto_now_add=True)),
                ('case_record', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='edit_history', to='records.caserecord')),
                ('counseling_record', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='edit_history', to='records.counselingrecord')),
                ('medical_record', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='edit_history', to='records.medicalrecord')),
            ],
            options={
                'ordering': ['edited_at', 'id'],
            },
        ),
        migrations.CreateModel(
            name='Notification',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('receiver', models.CharField(choices=OFFICE_CHOICES, max_length=20)),
                ('sender', models.CharField(choices=OFFICE_CHOICES, max_length=20)),
                ('message', models.CharField(max_length=255)),
                ('record_type', models.CharField(max_length=15)),
                ('record_id', models.PositiveIntegerField()),
                ('is_read', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'ordering': ['-created_at', '-id'],
            },
        ),
    ]
