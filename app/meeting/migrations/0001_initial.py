from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone

FREQUENCY_CHOICES = [
    ('daily', 'Daily'),
    ('weekly', 'Weekly'),
    ('bi-weekly', 'Bi-weekly'),
    ('monthly', 'Monthly'),
    ('quarterly', 'Quarterly'),
]

COMPLETION_CHOICES = [
    ('completed', 'Completed'),
    ('not_completed', 'Not completed'),
    ('pending', 'Pending'),
]


def item_fields(default_status='not_completed'):
    return [
        ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
        ('title', models.CharField(max_length=500)),
        ('order_index', models.PositiveIntegerField(default=0)),
        ('completion_status', models.CharField(choices=COMPLETION_CHOICES, default=default_status, max_length=20)),
        ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
        ('updated_at', models.DateTimeField(auto_now=True)),
        ('assigned_to', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
        ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('team', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='MeetingSeries',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(help_text='Name of the meeting', max_length=200)),
                ('frequency', models.CharField(choices=FREQUENCY_CHOICES, default='weekly', max_length=20)),
                ('parking_lot', models.TextField(blank=True, help_text='Notes parked for a later meeting')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_meeting_series', to=settings.AUTH_USER_MODEL)),
                ('team', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='meeting_series', to='team.team')),
            ],
            options={
                'verbose_name': 'Meeting Series',
                'verbose_name_plural': 'Meeting Series',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='MeetingInstance',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('start_date', models.DateField()),
                ('end_date', models.DateField(blank=True)),
                ('frequency', models.CharField(blank=True, choices=FREQUENCY_CHOICES, max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('series', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='instances', to='meeting.meetingseries')),
            ],
            options={
                'verbose_name': 'Meeting Instance',
                'verbose_name_plural': 'Meeting Instances',
                'ordering': ['-start_date'],
                'constraints': [models.UniqueConstraint(fields=('series', 'start_date'), name='unique_series_start_date')],
            },
        ),
        migrations.CreateModel(
            name='AgendaItem',
            fields=item_fields() + [
                ('notes', models.TextField(blank=True)),
                ('time_minutes', models.PositiveIntegerField(blank=True, null=True)),
                ('series', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='agenda_items', to='meeting.meetingseries')),
            ],
            options={
                'verbose_name': 'Agenda Item',
                'verbose_name_plural': 'Agenda Items',
                'ordering': ['order_index', 'id'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='Priority',
            fields=item_fields(default_status='pending') + [
                ('outcome', models.TextField(blank=True)),
                ('activities', models.TextField(blank=True)),
                ('instance', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='priorities', to='meeting.meetinginstance')),
            ],
            options={
                'verbose_name': 'Priority',
                'verbose_name_plural': 'Priorities',
                'ordering': ['order_index', 'id'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='Topic',
            fields=item_fields() + [
                ('notes', models.TextField(blank=True)),
                ('time_minutes', models.PositiveIntegerField(blank=True, null=True)),
                ('instance', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='topics', to='meeting.meetinginstance')),
            ],
            options={
                'verbose_name': 'Topic',
                'verbose_name_plural': 'Topics',
                'ordering': ['order_index', 'id'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='ActionItem',
            fields=item_fields() + [
                ('notes', models.TextField(blank=True)),
                ('due_date', models.DateField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('series', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='action_items', to='meeting.meetingseries')),
            ],
            options={
                'verbose_name': 'Action Item',
                'verbose_name_plural': 'Action Items',
                'ordering': ['order_index', 'id'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='AgendaTemplate',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True)),
                ('is_system', models.BooleanField(default=False, help_text='Built-in template available to every user')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='agenda_templates', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Agenda Template',
                'verbose_name_plural': 'Agenda Templates',
                'ordering': ['-is_system', 'name'],
            },
        ),
        migrations.CreateModel(
            name='AgendaTemplateItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=500)),
                ('duration_minutes', models.PositiveIntegerField(default=0)),
                ('order_index', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('template', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='meeting.agendatemplate')),
            ],
            options={
                'verbose_name': 'Agenda Template Item',
                'verbose_name_plural': 'Agenda Template Items',
                'ordering': ['order_index', 'id'],
            },
        ),
        migrations.CreateModel(
            name='Comment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('item_type', models.CharField(choices=[('agenda_item', 'Agenda item'), ('priority', 'Priority'), ('topic', 'Topic'), ('action_item', 'Action item')], max_length=20)),
                ('item_id', models.PositiveBigIntegerField()),
                ('content', models.TextField()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='meeting_comments', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Comment',
                'verbose_name_plural': 'Comments',
                'ordering': ['created_at'],
                'indexes': [models.Index(fields=['item_type', 'item_id'], name='comment_item_idx')],
            },
        ),
    ]
