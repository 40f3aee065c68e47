# Generated manually for ledger app

import uuid
from decimal import Decimal
from django.core.validators import MinValueValidator
from django.db import migrations, models
import django.db.models.deletion

from apps.ledger.engine.money import CURRENCY_CHOICES


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('people', '0001_initial'),
        ('subscriptions', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Transaction',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=200)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12, validators=[MinValueValidator(Decimal('0.01'))])),
                ('currency', models.CharField(blank=True, choices=CURRENCY_CHOICES, max_length=3)),
                ('split_method', models.CharField(choices=[('equal', 'Equally'), ('amount', 'By Amount'), ('percentage', 'By Percent'), ('shares', 'By Shares'), ('adjustment', 'Adjustments')], default='equal', max_length=20)),
                ('date', models.DateField()),
                ('note', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_transactions', to='people.participant')),
                ('group', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='transactions', to='people.group')),
                ('payer', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='paid_transactions', to='people.participant')),
            ],
            options={
                'db_table': 'transactions',
                'ordering': ['-date', '-created_at'],
            },
        ),
        migrations.CreateModel(
            name='TransactionPayer',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12, validators=[MinValueValidator(Decimal('0.01'))])),
                ('paid_by', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='payer_contributions', to='people.participant')),
                ('transaction', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='payers', to='ledger.transaction')),
            ],
            options={
                'db_table': 'transaction_payers',
                'unique_together': {('transaction', 'paid_by')},
            },
        ),
        migrations.CreateModel(
            name='TransactionSplit',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12)),
                ('raw_amount', models.DecimalField(blank=True, decimal_places=4, max_digits=14, null=True)),
                ('owed_by', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='owed_splits', to='people.participant')),
                ('transaction', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='splits', to='ledger.transaction')),
            ],
            options={
                'db_table': 'transaction_splits',
                'unique_together': {('transaction', 'owed_by')},
            },
        ),
        migrations.CreateModel(
            name='Settlement',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12, validators=[MinValueValidator(Decimal('0.01'))])),
                ('currency', models.CharField(blank=True, choices=CURRENCY_CHOICES, max_length=3)),
                ('date', models.DateField()),
                ('note', models.TextField(blank=True)),
                ('is_full_settlement', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='recorded_settlements', to='people.participant')),
                ('from_person', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='settlements_sent', to='people.participant')),
                ('group', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='settlements', to='people.group')),
                ('subscription', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='settlements', to='subscriptions.subscription')),
                ('to_person', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='settlements_received', to='people.participant')),
            ],
            options={
                'db_table': 'settlements',
                'ordering': ['-date', '-created_at'],
            },
        ),
        migrations.AddIndex(
            model_name='transaction',
            index=models.Index(fields=['group', 'date'], name='transaction_group_i_3c5e7a_idx'),
        ),
        migrations.AddIndex(
            model_name='transaction',
            index=models.Index(fields=['payer', 'date'], name='transaction_payer_i_6d1b2f_idx'),
        ),
        migrations.AddIndex(
            model_name='transaction',
            index=models.Index(fields=['date'], name='transaction_date_9f4a8b_idx'),
        ),
        migrations.AddIndex(
            model_name='transactionsplit',
            index=models.Index(fields=['owed_by'], name='transaction_owed_by_2a7c4d_idx'),
        ),
        migrations.AddIndex(
            model_name='settlement',
            index=models.Index(fields=['from_person', 'to_person'], name='settlements_from_pe_5b8e1a_idx'),
        ),
        migrations.AddIndex(
            model_name='settlement',
            index=models.Index(fields=['group', 'date'], name='settlements_group_i_7e3d9c_idx'),
        ),
        migrations.AddIndex(
            model_name='settlement',
            index=models.Index(fields=['subscription', 'date'], name='settlements_subscri_1f6a2b_idx'),
        ),
    ]
