import uuid

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
            name="ClientCompany",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("name", models.CharField(db_index=True, max_length=255, verbose_name="raison sociale")),
                ("industry", models.CharField(blank=True, default="", max_length=120, verbose_name="secteur")),
                ("relationship_tier", models.CharField(choices=[("1 - Low", "1 - Faible"), ("2 - Medium", "2 - Moyenne"), ("3 - Good", "3 - Bonne"), ("4 - High", "4 - Forte"), ("5 - Excellent", "5 - Excellente")], default="3 - Good", max_length=20, verbose_name="niveau de relation")),
                ("contact_person", models.CharField(blank=True, default="", max_length=255, verbose_name="contact")),
                ("email", models.EmailField(blank=True, default="", max_length=254, verbose_name="e-mail")),
                ("phone", models.CharField(blank=True, default="", max_length=30, verbose_name="telephone")),
                ("address", models.TextField(blank=True, default="", verbose_name="adresse")),
                ("notes", models.TextField(blank=True, default="", verbose_name="notes")),
                ("is_active", models.BooleanField(default=True, verbose_name="actif")),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="clients_created", to=settings.AUTH_USER_MODEL, verbose_name="ajoute par")),
            ],
            options={
                "verbose_name": "client",
                "verbose_name_plural": "clients",
                "ordering": ["name"],
            },
        ),
    ]
