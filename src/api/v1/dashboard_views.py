"""Pipeline dashboards: individual, team and global."""
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.models import Team, User
from api.v1.dashboard_serializers import (
    GlobalDashboardSerializer,
    IndividualDashboardSerializer,
    TeamDashboardSerializer,
)
from api.v1.permissions import (
    IsAdmin,
    IsManagerOrAdmin,
    is_admin_user,
    is_manager_or_admin,
    visible_team_ids,
)
from pipeline.services import global_dashboard, individual_dashboard, team_dashboard


class IndividualDashboardView(APIView):
    """
    GET the caller's own dashboard, or another seller's one.

    Only managers and admins may pass a ``user_id``.
    """

    permission_classes = [IsAuthenticated]

    def get(self, request, user_id=None):
        if user_id is None:
            user = request.user
        else:
            if not is_manager_or_admin(request.user):
                return Response(
                    {"detail": "Vous ne pouvez consulter que votre propre tableau de bord."},
                    status=status.HTTP_403_FORBIDDEN,
                )
            user = get_object_or_404(User.objects.select_related("team"), pk=user_id)
        return Response(IndividualDashboardSerializer(individual_dashboard(user)).data)


class TeamDashboardView(APIView):
    """
    GET a team dashboard.

    Without ``team_id`` the caller's own team is used. Managers may target
    the teams they lead or belong to, admins any team.
    """

    permission_classes = [IsAuthenticated, IsManagerOrAdmin]

    def get(self, request, team_id=None):
        if team_id is None:
            if not request.user.team_id:
                return Response(
                    {"detail": "Vous n'etes rattache a aucune equipe."},
                    status=status.HTTP_400_BAD_REQUEST,
                )
            team_id = request.user.team_id
        elif not is_admin_user(request.user) and team_id not in visible_team_ids(request.user):
            return Response(
                {"detail": "Acces refuse a cette equipe."},
                status=status.HTTP_403_FORBIDDEN,
            )
        team = get_object_or_404(Team.objects.select_related("manager"), pk=team_id)
        return Response(TeamDashboardSerializer(team_dashboard(team)).data)


class GlobalDashboardView(APIView):
    """GET the company-wide dashboard (admins only)."""

    permission_classes = [IsAuthenticated, IsAdmin]

    def get(self, request):
        return Response(GlobalDashboardSerializer(global_dashboard()).data)
