from turfease.schemas import UserType

DASHBOARD_ROUTES: dict[str, str] = {
    UserType.ADMIN: "/admin-dashboard",
    UserType.OWNER: "/owner-dashboard",
    UserType.PLAYER: "/player-dashboard",
}

USER_TYPE_DISPLAY_NAMES: dict[str, str] = {
    UserType.ADMIN: "Administrator",
    UserType.OWNER: "Turf Owner",
    UserType.PLAYER: "Football Player",
}


def dashboard_route(user_type: str | None) -> str:
    # Unknown or missing user types land on the player dashboard
    return DASHBOARD_ROUTES.get(user_type or "", DASHBOARD_ROUTES[UserType.PLAYER])


def user_type_display_name(user_type: str | None) -> str:
    return USER_TYPE_DISPLAY_NAMES.get(
        user_type or "", USER_TYPE_DISPLAY_NAMES[UserType.PLAYER]
    )
