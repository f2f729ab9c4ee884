from datetime import date
from decimal import Decimal

import pytest
from django.core.cache import cache
from django.core.management import call_command

from accounts.models import Team, User
from clients.models import ClientCompany
from pipeline.management.commands.seed_coefficients import DEFAULT_COEFFICIENTS
from pipeline.scoring import ProbabilityScoringEngine, StaticCoefficientSource


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def team(db):
    return Team.objects.create(name="Equipe Nord")


@pytest.fixture
def other_team(db):
    return Team.objects.create(name="Equipe Sud")


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(
        email="admin@test.com",
        password="testpass123",
        first_name="Admin",
        last_name="User",
        role=User.Role.ADMIN,
    )


@pytest.fixture
def manager_user(db, team):
    user = User.objects.create_user(
        email="manager@test.com",
        password="testpass123",
        first_name="Manager",
        last_name="User",
        role=User.Role.MANAGER,
        team=team,
    )
    team.manager = user
    team.save(update_fields=["manager", "updated_at"])
    return user


@pytest.fixture
def sales_user(db, team):
    return User.objects.create_user(
        email="sales@test.com",
        password="testpass123",
        first_name="Sales",
        last_name="User",
        role=User.Role.SALES,
        team=team,
    )


@pytest.fixture
def other_sales_user(db, other_team):
    return User.objects.create_user(
        email="sales2@test.com",
        password="testpass123",
        first_name="Autre",
        last_name="Commercial",
        role=User.Role.SALES,
        team=other_team,
    )


@pytest.fixture
def client_company(db, sales_user):
    return ClientCompany.objects.create(
        name="Datacenter Services SA",
        industry="Data Center",
        contact_person="Jean Dupont",
        email="jean.dupont@test.com",
        created_by=sales_user,
    )


@pytest.fixture
def coefficients(db):
    call_command("seed_coefficients", verbosity=0)


@pytest.fixture
def static_engine():
    return ProbabilityScoringEngine(StaticCoefficientSource(DEFAULT_COEFFICIENTS))


@pytest.fixture
def opportunity_data(client_company):
    return {
        "project_name": "Maintenance site Douala",
        "service_type": "IFM",
        "sector_type": "Data Center",
        "original_amount": Decimal("100000.00"),
        "project_maturity": "RFQ",
        "client_type": "Existing",
        "client_relationship": "3 - Good",
        "conservative_approach": False,
        "starting_date": date(2025, 1, 15),
        "closing_date": date(2025, 3, 20),
        "client": client_company,
    }
