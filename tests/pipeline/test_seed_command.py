from decimal import Decimal

import pytest
from django.core.management import call_command

from pipeline.models import ProbabilityCoefficient


@pytest.mark.django_db
def test_seed_creates_default_table():
    call_command("seed_coefficients", verbosity=0)

    assert ProbabilityCoefficient.objects.filter(is_active=True).count() == 16
    rfq = ProbabilityCoefficient.objects.get(factor_type="project_maturity", factor_value="RFQ")
    assert rfq.coefficient == Decimal("0.4500")


@pytest.mark.django_db
def test_seed_is_idempotent_and_restores_weights():
    call_command("seed_coefficients", verbosity=0)
    ProbabilityCoefficient.objects.filter(factor_value="New").update(coefficient=Decimal("0.5"))

    call_command("seed_coefficients", verbosity=0)

    assert ProbabilityCoefficient.objects.count() == 16
    assert ProbabilityCoefficient.objects.get(factor_value="New").coefficient == Decimal("0.9000")


@pytest.mark.django_db
def test_seed_flush_keeps_history():
    call_command("seed_coefficients", verbosity=0)

    call_command("seed_coefficients", "--flush", verbosity=0)

    assert ProbabilityCoefficient.objects.count() == 32
    assert ProbabilityCoefficient.objects.filter(is_active=True).count() == 16
