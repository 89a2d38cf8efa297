# config.py
from types import SimpleNamespace
from dotenv import load_dotenv, find_dotenv
import os, logging

# --- Load .env (doesn't override real env vars) ---
load_dotenv(find_dotenv(filename=".env"), override=False)

# --- tiny env helper ---
def env(name, default=None, *, required=False, cast=str):
    v = os.getenv(name, default)
    if required and (v is None or v == ""):
        raise RuntimeError(f"{name} is required but missing")
    if v is None:
        return None
    if cast is bool:
        return str(v).lower() in {"1", "true", "yes", "on"}
    if cast is int:
        return int(v)
    if cast is float:
        return float(v)
    return v  # str

# ---------- storage ----------
DATABASE_URL = env("DATABASE_URL", "sqlite:///./users.db")
DB_ECHO      = env("DB_ECHO", False, cast=bool)

# ---------- accounting guard ----------
GUARD_POLL_INTERVAL = env("GUARD_POLL_INTERVAL", 0.05, cast=float)  # seconds between cancel checks
OP_TIMEOUT          = env("OP_TIMEOUT", 0, cast=float)              # 0 → no deadline
STRICT_DELETE       = env("STRICT_DELETE", False, cast=bool)

# ---------- quota defaults ----------
DEFAULT_SPACE_LIMIT          = env("DEFAULT_SPACE_LIMIT", 1024 * 1024 * 1024, cast=int)  # 1 GiB
DEFAULT_UPLOAD_SPEED_LIMIT   = env("DEFAULT_UPLOAD_SPEED_LIMIT", 50 * 1024, cast=int)
DEFAULT_DOWNLOAD_SPEED_LIMIT = env("DEFAULT_DOWNLOAD_SPEED_LIMIT", 50 * 1024, cast=int)

# ---------- Logging ----------
LOG_DIR   = env("LOG_DIR", "")
LOG_NAME  = env("LOG_NAME", "userstore.log")
LOG_LEVEL = env("LOG_LEVEL", "INFO")
log_file_path = os.path.join(LOG_DIR, LOG_NAME) if LOG_DIR else None

_log_kwargs = dict(
    level=getattr(logging, str(LOG_LEVEL).upper(), logging.INFO),
    format="%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    force=True,
)
if log_file_path:
    os.makedirs(LOG_DIR, exist_ok=True)
    logging.basicConfig(filename=log_file_path, **_log_kwargs)
else:
    logging.basicConfig(**_log_kwargs)

# ---------- Pretty namespaces for simple imports ----------
config = SimpleNamespace(
    DATABASE_URL=DATABASE_URL,
    DB_ECHO=DB_ECHO,
    env=env,
)

guard = SimpleNamespace(
    POLL_INTERVAL=GUARD_POLL_INTERVAL,
    OP_TIMEOUT=OP_TIMEOUT,
    STRICT_DELETE=STRICT_DELETE,
)

quota = SimpleNamespace(
    SPACE_LIMIT=DEFAULT_SPACE_LIMIT,
    UPLOAD_SPEED_LIMIT=DEFAULT_UPLOAD_SPEED_LIMIT,
    DOWNLOAD_SPEED_LIMIT=DEFAULT_DOWNLOAD_SPEED_LIMIT,
)

logs = SimpleNamespace(
    LOG_DIR=LOG_DIR,
    LOG_NAME=LOG_NAME,
    FILE=log_file_path,
    logging=logging,  # stdlib logging (already configured)
)

__all__ = ["config", "guard", "quota", "logs"]
