import json
import pytest

from methods.users import codec
from methods.users.domain import BgConfig, Preferences, Quota
from methods.users.errors import DecodeError

# ---------------------------
# round trip
# ---------------------------

def test_quota_round_trip():
    q = Quota(space_limit=123456789012, upload_speed_limit=7, download_speed_limit=0)
    assert codec.decode_quota(codec.encode_quota(q)) == q

def test_preferences_round_trip_with_unicode_and_nested_bg():
    p = Preferences(
        bg=BgConfig(url="https://example.org/bg.png", repeat="repeat-x", position="top",
                    align="scroll", bg_color="#fff"),
        css_url="/c.css", lan_pack_url="/zh.json", lan="zh_CN", theme="dark",
        avatar="头像.png", email="a@example.org",
    )
    assert codec.decode_preferences(codec.encode_preferences(p)) == p

def test_encoding_is_versioned_camel_case_json():
    data = json.loads(codec.encode_quota(Quota(space_limit=5)))
    assert data["v"] == codec.SCHEMA_VERSION
    assert data["spaceLimit"] == 5
    prefs = json.loads(codec.encode_preferences(Preferences()))
    assert prefs["bg"]["bgColor"] == ""
    assert "cssURL" in prefs and "lanPackURL" in prefs

# ---------------------------
# lenient reads
# ---------------------------

def test_blob_without_version_uses_current_schema():
    assert codec.decode_quota('{"spaceLimit": 10}') == Quota(space_limit=10)

def test_missing_fields_take_defaults():
    p = codec.decode_preferences('{"theme": "dark"}')
    assert p.theme == "dark"
    assert p.bg == BgConfig()
    assert p.lan == Preferences().lan

# ---------------------------
# corrupt blobs
# ---------------------------

@pytest.mark.parametrize("blob", [
    "not json",
    "",
    "[1, 2]",
    '{"v": 2, "spaceLimit": 1}',
    '{"spaceLimit": "100"}',
    '{"spaceLimit": true}',
])
def test_bad_quota_blob_raises_decode_error(blob):
    with pytest.raises(DecodeError):
        codec.decode_quota(blob)

@pytest.mark.parametrize("blob", [
    '{"bg": "red"}',
    '{"theme": 1}',
    '{"bg": {"url": 5}}',
])
def test_bad_preference_blob_raises_decode_error(blob):
    with pytest.raises(DecodeError):
        codec.decode_preferences(blob)
