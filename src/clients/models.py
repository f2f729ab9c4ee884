"""Models for the clients app."""
from django.conf import settings
from django.db import models

from core.models import TimeStampedModel


class ClientCompany(TimeStampedModel):
    """A client company that opportunities are sold to."""

    class RelationshipTier(models.TextChoices):
        LOW = "1 - Low", "1 - Faible"
        MEDIUM = "2 - Medium", "2 - Moyenne"
        GOOD = "3 - Good", "3 - Bonne"
        HIGH = "4 - High", "4 - Forte"
        EXCELLENT = "5 - Excellent", "5 - Excellente"

    name = models.CharField("raison sociale", max_length=255, db_index=True)
    industry = models.CharField("secteur", max_length=120, blank=True, default="")
    relationship_tier = models.CharField(
        "niveau de relation",
        max_length=20,
        choices=RelationshipTier.choices,
        default=RelationshipTier.GOOD,
    )
    contact_person = models.CharField("contact", max_length=255, blank=True, default="")
    email = models.EmailField("e-mail", blank=True, default="")
    phone = models.CharField("telephone", max_length=30, blank=True, default="")
    address = models.TextField("adresse", blank=True, default="")
    notes = models.TextField("notes", blank=True, default="")
    is_active = models.BooleanField("actif", default=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="clients_created",
        verbose_name="ajoute par",
    )

    class Meta:
        verbose_name = "client"
        verbose_name_plural = "clients"
        ordering = ["name"]

    def __str__(self):
        return self.name
