from django.db import migrations, models

import downloads.models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='DownloadJob',
            fields=[
                (
                    'id',
                    models.CharField(
                        default=downloads.models.generate_nanoid,
                        editable=False,
                        max_length=21,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ('source_url', models.URLField(max_length=2048)),
                ('stream_id', models.CharField(max_length=50)),
                ('container', models.CharField(default='mp4', max_length=10)),
                ('filename_hint', models.CharField(blank=True, max_length=500)),
                ('target_height', models.PositiveIntegerField(blank=True, null=True)),
                ('requester_tag', models.CharField(blank=True, max_length=200)),
                ('attempts_allowed', models.PositiveSmallIntegerField(default=2)),
                ('attempts_made', models.PositiveSmallIntegerField(default=0)),
                (
                    'state',
                    models.CharField(
                        choices=[
                            ('queued', 'Queued'),
                            ('active', 'Active'),
                            ('completed', 'Completed'),
                            ('failed', 'Failed'),
                        ],
                        db_index=True,
                        default='queued',
                        max_length=20,
                    ),
                ),
                ('progress', models.PositiveSmallIntegerField(default=0)),
                ('log_path', models.CharField(blank=True, max_length=500)),
                ('error_message', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('started_at', models.DateTimeField(blank=True, null=True)),
                ('finished_at', models.DateTimeField(blank=True, null=True)),
            ],
            options={
                'ordering': ['created_at'],
                'indexes': [
                    models.Index(fields=['state'], name='downloads_d_state_5b1c0e_idx'),
                    models.Index(fields=['created_at'], name='downloads_d_created_9a3f21_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='DownloadRecord',
            fields=[
                (
                    'id',
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name='ID'
                    ),
                ),
                ('requester_tag', models.CharField(blank=True, max_length=200)),
                ('source_url', models.URLField(max_length=2048)),
                ('resolution', models.CharField(blank=True, max_length=50)),
                ('container', models.CharField(max_length=10)),
                ('filename', models.CharField(max_length=500)),
                ('file_size', models.BigIntegerField(blank=True, null=True)),
                ('storage_key', models.CharField(max_length=1024)),
                ('artifact_location', models.TextField()),
                ('job_id', models.CharField(db_index=True, max_length=21)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
    ]
