from __future__ import annotations

import enum
from dataclasses import dataclass
from types import MappingProxyType
from typing import List, Mapping, Sequence

from .constants import MAX_BODY_SIZE
from .errors import ForbiddenError, ValidationError

CUSTOM = "CUSTOM"
PLACEHOLDER = "%s"


class Role(str, enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"

    @classmethod
    def parse(cls, value: str) -> "Role":
        try:
            return cls(value.strip().upper())
        except ValueError:
            raise ValidationError("role", f"unknown role: {value!r}") from None


@dataclass(frozen=True, slots=True)
class CommandSpec:
    template: str
    enabled: bool = True
    admin_only: bool = False

    @property
    def arity(self) -> int:
        return self.template.count(PLACEHOLDER)


REGISTRY: Mapping[str, CommandSpec] = MappingProxyType(
    {
        "KICK": CommandSpec("kick %s", admin_only=True),
        "BAN": CommandSpec("ban %s", admin_only=True),
        "PARDON": CommandSpec("pardon %s", admin_only=True),
        "TELEPORT": CommandSpec("tp %s %s"),
        "GAMEMODE": CommandSpec("gamemode %s %s", admin_only=True),
        "SAY": CommandSpec("say %s", admin_only=True),
        "TIME_SET": CommandSpec("time set %s"),
        "WEATHER_SET": CommandSpec("weather %s"),
        "STOP": CommandSpec("stop", admin_only=True),
        CUSTOM: CommandSpec("%s", admin_only=True),
    }
)


def filter_arguments(args: Sequence[str]) -> List[str]:
    """Drop blank arguments.

    Known defect, kept on purpose: entries are deleted from the list that is
    being walked, so the entry right after a deleted one is never looked at.
    ``["", "", "x"]`` comes back as ``["", "x"]``.
    """
    kept = list(args)
    for index, arg in enumerate(kept):
        if not arg.strip():
            del kept[index]
    return kept


def build_command(
    key: str,
    args: Sequence[str],
    role: Role,
    registry: Mapping[str, CommandSpec] = REGISTRY,
) -> str:
    """Validate a request against the registry and render the RCON command text."""
    kept = filter_arguments(args)

    spec = registry.get(key)
    if spec is None:
        raise ValidationError("command", f"unknown command: {key!r}")
    if not spec.enabled:
        raise ValidationError("command", f"command is disabled: {key!r}")
    if (spec.admin_only or key == CUSTOM) and role is not Role.ADMIN:
        raise ForbiddenError(f"{key} requires ADMIN")

    if key == CUSTOM:
        if not kept:
            raise ValidationError("arguments", "CUSTOM needs the command text as its first argument")
        command = kept[0]
    else:
        if spec.arity != len(kept):
            raise ValidationError(
                "arguments",
                f"{key} takes {spec.arity} argument(s), got {len(kept)}",
            )
        command = spec.template % tuple(kept) if spec.arity else spec.template

    encoded = command.encode("utf-8")
    if len(encoded) > MAX_BODY_SIZE:
        raise ValidationError("arguments", f"command longer than {MAX_BODY_SIZE} bytes")
    if b"\x00" in encoded:
        raise ValidationError("arguments", "command contains a NUL character")
    return command
