# Overview: Lookups over the permission definitions and the role table.

from .definitions import PERMISSION_DEFINITIONS
from .roles import ROLE_PERMISSIONS

_KNOWN_CODES = frozenset(code for code, _name, _description, _category in PERMISSION_DEFINITIONS)


def get_all_permission_codes():
    """Every declared code, in declaration order."""
    return [code for code, _name, _description, _category in PERMISSION_DEFINITIONS]


def validate_permission_code(code):
    return code in _KNOWN_CODES


def roles_with_permission(code):
    """Roles whose table entry grants the code (403 diagnostics, `flask perms list`)."""
    return sorted(role for role, codes in ROLE_PERMISSIONS.items() if code in codes)
