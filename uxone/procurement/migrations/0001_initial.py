# Generated manually for Demand, DemandLine and DemandSequence models

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Demand',
            fields=[
                ('id', models.CharField(max_length=20, primary_key=True, serialize=False)),
                ('bu', models.CharField(blank=True, default='', max_length=20)),
                ('department', models.CharField(db_index=True, max_length=50)),
                ('user_department', models.CharField(blank=True, max_length=50, null=True)),
                ('account', models.CharField(blank=True, default='', max_length=50)),
                ('approval_route', models.CharField(blank=True, default='', max_length=100)),
                ('expense_account', models.IntegerField(blank=True, null=True)),
                ('expense_description', models.CharField(blank=True, default='', max_length=255)),
                ('expense_gl_class', models.CharField(blank=True, default='', max_length=20)),
                ('expense_stock_type', models.CharField(blank=True, default='', max_length=20)),
                ('expense_order_type', models.CharField(blank=True, default='', max_length=20)),
                ('justification', models.TextField()),
                ('priority_level', models.CharField(choices=[('LOW', 'Low'), ('MEDIUM', 'Medium'), ('HIGH', 'High'), ('URGENT', 'Urgent')], default='MEDIUM', max_length=10)),
                ('expected_delivery_date', models.DateField(blank=True, null=True)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('APPROVED', 'Approved'), ('REJECTED', 'Rejected'), ('ERP_PROCESSING', 'ERP Processing')], db_index=True, default='PENDING', max_length=20)),
                ('department_specific', models.JSONField(blank=True, default=dict)),
                ('attachments', models.JSONField(blank=True, default=list)),
                ('submitted_at', models.DateTimeField(auto_now_add=True)),
                ('approved_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('requester', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='demands', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'demands',
                'ordering': ['-submitted_at'],
                'indexes': [
                    models.Index(fields=['requester', 'status'], name='idx_demand_requester_status'),
                    models.Index(fields=['department', 'status'], name='idx_demand_dept_status'),
                ],
            },
        ),
        migrations.CreateModel(
            name='DemandLine',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('item_description', models.CharField(max_length=500)),
                ('quantity', models.PositiveIntegerField()),
                ('unit_of_measure', models.CharField(default='EA', max_length=10)),
                ('estimated_cost', models.DecimalField(blank=True, decimal_places=2, max_digits=15, null=True)),
                ('specifications', models.TextField(blank=True, default='')),
                ('supplier_preference', models.CharField(blank=True, default='', max_length=255)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('APPROVED', 'Approved'), ('REJECTED', 'Rejected'), ('ERP_PROCESSING', 'ERP Processing')], default='PENDING', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('demand', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='lines', to='procurement.demand')),
            ],
            options={
                'db_table': 'demand_lines',
                'ordering': ['created_at', 'id'],
            },
        ),
        migrations.CreateModel(
            name='DemandSequence',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date', models.CharField(help_text='YYYYMMDD', max_length=8, unique=True)),
                ('sequence', models.PositiveIntegerField(default=0)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'demand_sequences',
            },
        ),
    ]
