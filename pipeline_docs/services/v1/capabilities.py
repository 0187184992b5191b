# pipeline_docs/services/v1/capabilities.py
"""
Capability registry: the closed set of (module, action) pairs a permission
row may name. Route guards refer to capabilities through the enums below.
"""
from enum import Enum
from typing import Union

from common import ValidationFailedError


class Module(str, Enum):
    USERS = "users"
    OBJECTS = "objects"
    DOCUMENTS = "documents"
    ORGSTRUCTURE = "orgstructure"
    ROLES = "roles"
    TRAINING = "training"
    AUDIT = "audit"
    DASHBOARD = "dashboard"
    SETTINGS = "settings"


class Action(str, Enum):
    VIEW = "view"
    CREATE = "create"
    EDIT = "edit"
    DELETE = "delete"
    UPLOAD = "upload"
    MANAGE = "manage"
    EXPORT = "export"


_CRUD = (Action.VIEW, Action.CREATE, Action.EDIT, Action.DELETE)

CAPABILITY_REGISTRY: dict[Module, tuple[Action, ...]] = {
    Module.USERS: _CRUD,
    Module.OBJECTS: _CRUD,
    Module.DOCUMENTS: (Action.VIEW, Action.UPLOAD, Action.EDIT, Action.DELETE),
    Module.ORGSTRUCTURE: _CRUD,
    Module.ROLES: _CRUD,
    Module.TRAINING: _CRUD + (Action.MANAGE,),
    Module.AUDIT: (Action.VIEW, Action.EXPORT),
    Module.DASHBOARD: (Action.VIEW,),
    Module.SETTINGS: (Action.VIEW, Action.MANAGE),
}


def capability_value(item: Union[Module, Action, str]) -> str:
    return item.value if isinstance(item, Enum) else item


def is_registered(module: Union[Module, str], action: Union[Action, str]) -> bool:
    try:
        module_key = Module(capability_value(module))
        action_key = Action(capability_value(action))
    except ValueError:
        return False
    return action_key in CAPABILITY_REGISTRY[module_key]


def validate_capability(module: str, action: str) -> tuple[Module, Action]:
    """
    Resolve a (module, action) pair against the registry.

    Raises:
        ValidationFailedError: pair is not a registered capability
    """
    if not is_registered(module, action):
        raise ValidationFailedError(
            f"Unknown capability {module}:{action}",
            details={"module": module, "action": action},
        )
    return Module(capability_value(module)), Action(capability_value(action))


def all_capabilities() -> list[tuple[Module, Action]]:
    return [
        (module, action)
        for module, actions in CAPABILITY_REGISTRY.items()
        for action in actions
    ]


__all__ = [
    "Module",
    "Action",
    "CAPABILITY_REGISTRY",
    "capability_value",
    "is_registered",
    "validate_capability",
    "all_capabilities",
]
