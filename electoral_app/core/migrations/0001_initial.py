from __future__ import annotations

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models

POSITION_CHOICES = [
    ("presidential", "Presidential"),
    ("governorship", "Governorship"),
    ("senatorial", "Senatorial"),
    ("house_of_reps", "House of Representatives"),
    ("state_assembly", "State Assembly"),
    ("lga_chairman", "LGA Chairmanship"),
    ("councillorship", "Councillorship"),
]

STATUS_CHOICES = [
    ("upcoming", "Upcoming"),
    ("ongoing", "Ongoing"),
    ("completed", "Completed"),
    ("cancelled", "Cancelled"),
]

SCOPE_KIND_CHOICES = [
    ("national", "National"),
    ("state", "State"),
    ("senatorial_district", "Senatorial district"),
    ("lga", "LGA"),
    ("ward", "Ward"),
]


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="State",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=128, unique=True)),
                ("code", models.CharField(max_length=16, unique=True)),
                ("region", models.CharField(blank=True, default="", max_length=64)),
                ("capital", models.CharField(blank=True, default="", max_length=128)),
            ],
            options={
                "ordering": ("name", "id"),
            },
        ),
        migrations.CreateModel(
            name="SenatorialDistrict",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=16, unique=True)),
                ("name", models.CharField(max_length=128)),
                (
                    "state",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="senatorial_districts",
                        to="core.state",
                    ),
                ),
            ],
            options={
                "ordering": ("state__name", "name", "id"),
            },
        ),
        migrations.CreateModel(
            name="Lga",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=16, unique=True)),
                ("name", models.CharField(max_length=128)),
                (
                    "state",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="lgas",
                        to="core.state",
                    ),
                ),
            ],
            options={
                "verbose_name": "LGA",
                "verbose_name_plural": "LGAs",
                "ordering": ("state__name", "name", "id"),
                "constraints": [
                    models.UniqueConstraint(fields=("state", "name"), name="uniq_lga_state_name"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Ward",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=32, unique=True)),
                ("name", models.CharField(max_length=128)),
                ("ward_number", models.PositiveSmallIntegerField(blank=True, null=True)),
                (
                    "lga",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="wards",
                        to="core.lga",
                    ),
                ),
            ],
            options={
                "ordering": ("lga__state__name", "lga__name", "name", "id"),
                "constraints": [
                    models.UniqueConstraint(fields=("lga", "name"), name="uniq_ward_lga_name"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Party",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255, unique=True)),
                ("abbreviation", models.CharField(max_length=16, unique=True)),
                ("color", models.CharField(blank=True, default="", max_length=16)),
                ("is_active", models.BooleanField(default=True)),
            ],
            options={
                "verbose_name_plural": "Parties",
                "ordering": ("abbreviation", "id"),
            },
        ),
        migrations.CreateModel(
            name="Election",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True, default="")),
                ("position", models.CharField(choices=POSITION_CHOICES, max_length=32)),
                (
                    "election_year",
                    models.PositiveSmallIntegerField(
                        validators=[
                            django.core.validators.MinValueValidator(1900),
                            django.core.validators.MaxValueValidator(9999),
                        ]
                    ),
                ),
                ("election_date", models.DateField()),
                (
                    "status",
                    models.CharField(choices=STATUS_CHOICES, db_index=True, default="upcoming", max_length=16),
                ),
                ("scope_kind", models.CharField(choices=SCOPE_KIND_CHOICES, max_length=32)),
                ("scope_unit_id", models.PositiveIntegerField(blank=True, null=True)),
                ("total_votes_cast", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ("-election_year", "position", "title", "id"),
                "indexes": [
                    models.Index(fields=["scope_kind", "scope_unit_id"], name="election_scope"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=(
                            models.Q(scope_kind="national", scope_unit_id__isnull=True)
                            | (~models.Q(scope_kind="national") & models.Q(scope_unit_id__isnull=False))
                        ),
                        name="election_scope_unit_matches_kind",
                    ),
                    models.CheckConstraint(
                        condition=(
                            models.Q(position__in=["lga_chairman"], scope_kind="lga")
                            | models.Q(position__in=["presidential"], scope_kind="national")
                            | models.Q(position__in=["senatorial"], scope_kind="senatorial_district")
                            | models.Q(
                                position__in=["governorship", "house_of_reps", "state_assembly"],
                                scope_kind="state",
                            )
                            | models.Q(position__in=["councillorship"], scope_kind="ward")
                        ),
                        name="election_scope_kind_matches_position",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(scope_unit_id__isnull=False),
                        fields=("position", "election_year", "scope_kind", "scope_unit_id"),
                        name="uniq_election_position_year_unit",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(scope_unit_id__isnull=True),
                        fields=("position", "election_year"),
                        name="uniq_election_position_year_national",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Candidate",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255)),
                ("running_mate", models.CharField(blank=True, default="", max_length=255)),
                ("votes", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "election",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="candidates",
                        to="core.election",
                    ),
                ),
                (
                    "party",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="candidates",
                        to="core.party",
                    ),
                ),
            ],
            options={
                "ordering": ("created_at", "id"),
                "constraints": [
                    models.UniqueConstraint(fields=("election", "party"), name="uniq_candidate_election_party"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Vote",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("voter_id", models.CharField(max_length=128)),
                ("integrity_tag", models.CharField(blank=True, default="", max_length=128)),
                ("cast_at", models.DateTimeField(auto_now_add=True)),
                (
                    "election",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="votes",
                        to="core.election",
                    ),
                ),
                (
                    "candidate",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="ballots",
                        to="core.candidate",
                    ),
                ),
            ],
            options={
                "indexes": [
                    models.Index(fields=["candidate"], name="vote_candidate"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("election", "voter_id"), name="uniq_vote_election_voter"),
                ],
            },
        ),
        migrations.CreateModel(
            name="AuditLogEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("timestamp", models.DateTimeField(auto_now_add=True)),
                ("event_type", models.CharField(max_length=64)),
                ("actor", models.CharField(blank=True, default="", max_length=128)),
                ("payload", models.JSONField(blank=True, default=dict)),
                (
                    "election",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="audit_log",
                        to="core.election",
                    ),
                ),
            ],
            options={
                "verbose_name_plural": "Audit log entries",
                "ordering": ("timestamp", "id"),
                "indexes": [
                    models.Index(fields=["election", "timestamp"], name="audit_el_ts"),
                ],
            },
        ),
    ]
