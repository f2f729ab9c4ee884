"""Main API URL router for /api/v1/."""
from django.urls import include, path
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from api.v1 import dashboard_views
from api.v1 import views as v1_views

router = DefaultRouter()
router.register(r"opportunities", v1_views.OpportunityViewSet, basename="opportunity")
router.register(r"coefficients", v1_views.CoefficientViewSet, basename="coefficient")

app_name = "api"

urlpatterns = [
    path("auth/token/", TokenObtainPairView.as_view(), name="token-obtain"),
    path("auth/token/refresh/", TokenRefreshView.as_view(), name="token-refresh"),
    path("dashboard/individual/", dashboard_views.IndividualDashboardView.as_view(), name="dashboard-individual"),
    path(
        "dashboard/individual/<uuid:user_id>/",
        dashboard_views.IndividualDashboardView.as_view(),
        name="dashboard-individual-user",
    ),
    path("dashboard/team/", dashboard_views.TeamDashboardView.as_view(), name="dashboard-team"),
    path("dashboard/team/<uuid:team_id>/", dashboard_views.TeamDashboardView.as_view(), name="dashboard-team-detail"),
    path("dashboard/global/", dashboard_views.GlobalDashboardView.as_view(), name="dashboard-global"),
    path("", include(router.urls)),
]
