# permissions.py


def has_payout_permission(member, allowed_role_ids) -> bool:
    """
    Manage Server always passes; otherwise the member needs one of the
    allow-listed roles. Plain users (no guild context) never pass.
    """
    if member is None:
        return False
    perms = getattr(member, "guild_permissions", None)
    if perms is not None and perms.manage_guild:
        return True
    if not allowed_role_ids:
        return False
    return any(role.id in allowed_role_ids for role in getattr(member, "roles", []))
