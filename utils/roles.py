BACKOFFICE = "Backoffice"
STATION_OPERATOR = "StationOperator"
EV_OWNER = "EVOwner"

# highest privilege first; a user's primary role is the first one they hold
ROLE_PRECEDENCE = (BACKOFFICE, STATION_OPERATOR, EV_OWNER)
ALL_ROLES = set(ROLE_PRECEDENCE)

# roles that may register without waiting for Backoffice activation
SELF_SERVICE_ROLES = {EV_OWNER}

_LOOKUP = {name.lower(): name for name in ROLE_PRECEDENCE}
_LOOKUP.update({
    "station_operator": STATION_OPERATOR,
    "operator": STATION_OPERATOR,
    "ev_owner": EV_OWNER,
    "owner": EV_OWNER,
})


def normalize_role(value):
    """Map user-supplied role spellings onto the canonical role name, or None."""
    if not isinstance(value, str):
        return None
    return _LOOKUP.get(value.strip().lower())


def role_names(roles):
    names = []
    for role in roles or []:
        name = role if isinstance(role, str) else getattr(role, "name", None)
        if name in ALL_ROLES:
            names.append(name)
    return names


def primary_role(roles):
    held = set(role_names(roles))
    for name in ROLE_PRECEDENCE:
        if name in held:
            return name
    return None
