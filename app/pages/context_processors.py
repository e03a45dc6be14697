def team_memberships(request):
    """Context processor to provide the teams of the current user to all templates"""
    context = {
        'user_team_memberships': [],
        'user_admin_team_ids': [],
    }

    if request.user.is_authenticated:
        from team.models import TeamMember

        memberships = list(
            TeamMember.objects
            .filter(user=request.user)
            .select_related('team')
            .order_by('team__name')
        )
        context['user_team_memberships'] = memberships
        context['user_admin_team_ids'] = [m.team_id for m in memberships if m.is_admin]

    return context
