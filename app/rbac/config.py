"""
Access-control configuration.

Built once from `Settings` at startup and handed to the sync service;
nothing in the permission core reads the environment itself.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from app.core.config import Settings


@dataclass(frozen=True)
class AutoAssignRule:
    role_slug: str
    patterns: tuple[str, ...]


@dataclass(frozen=True)
class AccessControlConfig:
    auto_sync_on_startup: bool = False
    auto_assign_rules: tuple[AutoAssignRule, ...] = ()

    @classmethod
    def from_rules(
        cls,
        rules: Mapping[str, Sequence[str]],
        auto_sync_on_startup: bool = False,
    ) -> "AccessControlConfig":
        """Rules keep the mapping's iteration order."""
        return cls(
            auto_sync_on_startup=auto_sync_on_startup,
            auto_assign_rules=tuple(
                AutoAssignRule(role_slug=role, patterns=tuple(patterns))
                for role, patterns in rules.items()
            ),
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "AccessControlConfig":
        auto_sync = settings.PERMISSIONS_AUTO_SYNC
        if auto_sync is None:
            auto_sync = not settings.is_production
        return cls.from_rules(settings.PERMISSIONS_AUTO_ASSIGN, auto_sync_on_startup=auto_sync)
