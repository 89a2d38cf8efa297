# /app/methods/users/domain.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Literal, Optional

import pydantic
from pydantic import BaseModel, ConfigDict, Field
from pydantic_core import PydanticSerializationError

from configs.config import (
    DEFAULT_SPACE_LIMIT,
    DEFAULT_UPLOAD_SPEED_LIMIT,
    DEFAULT_DOWNLOAD_SPEED_LIMIT,
)
from .errors import ValidationError

ADMIN_ROLE = "admin"
USER_ROLE = "user"
VISITOR_ROLE = "visitor"
ROLES = frozenset({ADMIN_ROLE, USER_ROLE, VISITOR_ROLE})

THEMES = frozenset({"light", "dark"})
DEFAULT_THEME = "light"
DEFAULT_LAN = "en_US"

SCHEMA_VERSION = 1


class _Record(BaseModel):
    # strict: no "100" → 100, no None for str; assignments are checked too
    model_config = ConfigDict(strict=True, populate_by_name=True, validate_assignment=True)


class _VersionedRecord(_Record):
    """Top-level column blob; "v" is the schema version written next to the fields."""
    v: Literal[1] = SCHEMA_VERSION


class Quota(_VersionedRecord):
    space_limit: int = Field(DEFAULT_SPACE_LIMIT, alias="spaceLimit")
    upload_speed_limit: int = Field(DEFAULT_UPLOAD_SPEED_LIMIT, alias="uploadSpeedLimit")
    download_speed_limit: int = Field(DEFAULT_DOWNLOAD_SPEED_LIMIT, alias="downloadSpeedLimit")


class BgConfig(_Record):
    url: str = ""
    repeat: str = "no-repeat"
    position: str = "center"
    align: str = "fixed"
    bg_color: str = Field("", alias="bgColor")


class Preferences(_VersionedRecord):
    bg: Optional[BgConfig] = Field(default_factory=BgConfig)
    css_url: str = Field("", alias="cssURL")
    lan_pack_url: str = Field("", alias="lanPackURL")
    lan: str = DEFAULT_LAN
    theme: str = DEFAULT_THEME
    avatar: str = ""
    email: str = ""


@dataclass
class User:
    id: int
    name: str
    pwd: str
    role: str = USER_ROLE
    used_space: int = 0
    quota: Optional[Quota] = field(default_factory=Quota)
    preferences: Optional[Preferences] = field(default_factory=Preferences)


def _is_int(v) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def _revalidate(record: _Record, what: str) -> None:
    # the stored form must read back: catches model_construct() and other bypasses
    try:
        type(record).model_validate_json(record.model_dump_json(by_alias=True, warnings=False))
    except (pydantic.ValidationError, PydanticSerializationError) as e:
        raise ValidationError(f"{what}: {e}") from e


def check_role(role: str) -> None:
    if role not in ROLES:
        raise ValidationError(f"unknown role: {role!r}")


def check_quota(quota: Optional[Quota]) -> None:
    if not isinstance(quota, Quota):
        raise ValidationError(f"quota is missing or not a Quota: {quota!r}")
    _revalidate(quota, "quota")
    for name in ("space_limit", "upload_speed_limit", "download_speed_limit"):
        v = getattr(quota, name)
        if v < 0:
            raise ValidationError(f"quota.{name} must be non-negative, got {v!r}")


def check_preferences(prefs: Optional[Preferences], fill_default: bool = False) -> None:
    """Validate preferences; with fill_default, blank fields are reset to defaults in place."""
    if not isinstance(prefs, Preferences):
        raise ValidationError(f"preferences are missing or not Preferences: {prefs!r}")
    _revalidate(prefs, "preferences")
    if prefs.bg is None:
        if not fill_default:
            raise ValidationError("preferences.bg is missing")
        prefs.bg = BgConfig()
    if not prefs.theme and fill_default:
        prefs.theme = DEFAULT_THEME
    if not prefs.lan and fill_default:
        prefs.lan = DEFAULT_LAN
    if prefs.theme not in THEMES:
        raise ValidationError(f"unknown theme: {prefs.theme!r}")
    if not prefs.lan:
        raise ValidationError("preferences.lan is empty")


def check_user(user: User, fill_default: bool = False) -> None:
    """
    Reject a record that cannot be stored.
    With fill_default, a missing quota/preferences is replaced by the defaults
    instead of failing.
    """
    if not _is_int(user.id) or user.id < 0:
        raise ValidationError(f"invalid id: {user.id!r}")
    if user.id == 0 and user.role != VISITOR_ROLE:
        raise ValidationError("id 0 is reserved for visitors")
    if not isinstance(user.name, str) or not user.name:
        raise ValidationError(f"invalid name: {user.name!r}")
    if not isinstance(user.pwd, str) or not user.pwd:
        raise ValidationError("pwd is empty or not a string")
    check_role(user.role)
    if not _is_int(user.used_space) or user.used_space < 0:
        raise ValidationError(f"invalid used_space: {user.used_space!r}")

    if user.quota is None and fill_default:
        user.quota = Quota()
    if user.preferences is None and fill_default:
        user.preferences = Preferences()
    check_quota(user.quota)
    check_preferences(user.preferences, fill_default)

    if user.used_space > user.quota.space_limit:
        raise ValidationError(
            f"used_space {user.used_space} exceeds space_limit {user.quota.space_limit}"
        )
