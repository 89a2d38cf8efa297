# /app/methods/users/codec.py
"""
Text encoding of the structured user columns.

quota      → {"v": 1, "spaceLimit": int, "uploadSpeedLimit": int, "downloadSpeedLimit": int}
preference → {"v": 1, "bg": {"url", "repeat", "position", "align", "bgColor"} | null,
              "cssURL", "lanPackURL", "lan", "theme", "avatar", "email"}

Blobs without "v" predate the version key and are read with the current schema.
Missing fields fall back to the model defaults.
"""
import pydantic

from .domain import SCHEMA_VERSION, Preferences, Quota  # noqa: F401  SCHEMA_VERSION re-exported
from .errors import DecodeError


def _decode(model, blob, what: str):
    try:
        return model.model_validate_json(blob)
    except pydantic.ValidationError as e:
        raise DecodeError(f"{what}: {e}") from e


def encode_quota(quota: Quota) -> str:
    return quota.model_dump_json(by_alias=True)


def decode_quota(blob: str) -> Quota:
    return _decode(Quota, blob, "quota")


def encode_preferences(prefs: Preferences) -> str:
    return prefs.model_dump_json(by_alias=True)


def decode_preferences(blob: str) -> Preferences:
    return _decode(Preferences, blob, "preference")
