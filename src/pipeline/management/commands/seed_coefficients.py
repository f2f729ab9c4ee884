"""Seed the default probability coefficient table."""
from __future__ import annotations

from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction

from pipeline.models import FactorType, ProbabilityCoefficient
from pipeline.scoring import CoefficientCache

DEFAULT_COEFFICIENTS = [
    (FactorType.PROJECT_TYPE, "Integrated services to Business", "0.90"),
    (FactorType.PROJECT_TYPE, "One-time service", "1.00"),
    (FactorType.PROJECT_MATURITY, "Prospection", "0.15"),
    (FactorType.PROJECT_MATURITY, "RFI", "0.25"),
    (FactorType.PROJECT_MATURITY, "RFQ", "0.45"),
    (FactorType.PROJECT_MATURITY, "Negotiation", "0.75"),
    (FactorType.PROJECT_MATURITY, "Contract Signed", "1.00"),
    (FactorType.CLIENT_TYPE, "New", "0.90"),
    (FactorType.CLIENT_TYPE, "Existing", "1.05"),
    (FactorType.CLIENT_RELATIONSHIP, "1 - Low", "0.85"),
    (FactorType.CLIENT_RELATIONSHIP, "2 - Medium", "0.90"),
    (FactorType.CLIENT_RELATIONSHIP, "3 - Good", "1.00"),
    (FactorType.CLIENT_RELATIONSHIP, "4 - High", "1.05"),
    (FactorType.CLIENT_RELATIONSHIP, "5 - Excellent", "1.10"),
    (FactorType.CONSERVATIVE_APPROACH, "Yes", "0.90"),
    (FactorType.CONSERVATIVE_APPROACH, "No", "1.00"),
]


class Command(BaseCommand):
    help = "Seed the probability coefficient table with the default weights."

    def add_arguments(self, parser):
        parser.add_argument(
            "--flush",
            action="store_true",
            help="Deactivate every existing coefficient before seeding.",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        if options["flush"]:
            deactivated = ProbabilityCoefficient.objects.filter(is_active=True).update(is_active=False)
            self.stdout.write(f"Deactivated {deactivated} coefficients.")

        created = updated = 0
        for factor_type, factor_value, weight in DEFAULT_COEFFICIENTS:
            row = ProbabilityCoefficient.objects.filter(
                factor_type=factor_type,
                factor_value=factor_value,
                is_active=True,
            ).first()
            if row is None:
                ProbabilityCoefficient.objects.create(
                    factor_type=factor_type,
                    factor_value=factor_value,
                    coefficient=Decimal(weight),
                )
                created += 1
            elif row.coefficient != Decimal(weight):
                row.coefficient = Decimal(weight)
                row.save(update_fields=["coefficient", "updated_at"])
                updated += 1

        CoefficientCache().invalidate()
        self.stdout.write(self.style.SUCCESS(
            f"Coefficients seeded: {created} created, {updated} updated."
        ))
