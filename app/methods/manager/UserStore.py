# /app/methods/manager/UserStore.py
from __future__ import annotations
from contextlib import contextmanager
from enum import Enum
from typing import Dict, List, Optional
import logging

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from configs.config import STRICT_DELETE
from methods.database.database import session_scope
from methods.database.models import UserRow
from methods.users import codec
from methods.users.domain import (
    Preferences,
    Quota,
    User,
    check_preferences,
    check_quota,
    check_role,
    check_user,
)
from methods.users.errors import (
    DuplicateKey,
    NegativeUsage,
    NotFound,
    QuotaExceeded,
    StorageUnavailable,
    Unimplemented,
    ValidationError,
)
from observability.ops_metrics import QUOTA_REJECTIONS, time_op
from .AccountingGuard import AccountingGuard
from .OpContext import OpContext

logger = logging.getLogger(__name__)


class Direction(str, Enum):
    INCREASE = "increase"
    DECREASE = "decrease"


class UserStore:
    """
    Account rows in t_user plus usage accounting.

    Every call goes through one AccountingGuard: lookups share it, anything
    that writes holds it exclusively for its whole read-modify-write, so two
    usage updates never interleave regardless of which user they target.
    Validation always happens before the write; a failed call leaves the row
    as it was.
    """
    def __init__(
        self,
        sessions: sessionmaker,
        guard: Optional[AccountingGuard] = None,
        *,
        strict_delete: bool = STRICT_DELETE,
    ) -> None:
        self._sessions = sessions
        self.guard = guard or AccountingGuard()
        self.strict_delete = strict_delete

    # ----- plumbing
    @contextmanager
    def _storage(self, ctx: OpContext):
        """One transaction; driver outages surface as StorageUnavailable."""
        ctx.raise_if_done()
        try:
            with session_scope(self._sessions) as s:
                yield s
        except OperationalError as e:
            logger.error("UserStore.py: [_storage] storage error: %s", e)
            raise StorageUnavailable(str(e.orig or e)) from e

    @contextmanager
    def _write(self, op: str, ctx: Optional[OpContext]):
        ctx = ctx or OpContext.background()
        with time_op(op), self.guard.exclusive(ctx), self._storage(ctx) as s:
            yield s, ctx

    @contextmanager
    def _read(self, op: str, ctx: Optional[OpContext]):
        ctx = ctx or OpContext.background()
        with time_op(op), self.guard.shared(ctx), self._storage(ctx) as s:
            yield s

    @staticmethod
    def _to_user(row: UserRow, with_pwd: bool = True) -> User:
        return User(
            id=row.id,
            name=row.name,
            pwd=row.pwd if with_pwd else "",
            role=row.role,
            used_space=row.used_space,
            quota=codec.decode_quota(row.quota),
            preferences=codec.decode_preferences(row.preference),
        )

    @staticmethod
    def _update(s: Session, user_id: int, values: dict) -> None:
        n = s.query(UserRow).filter(UserRow.id == user_id).update(values, synchronize_session=False)
        if n == 0:
            raise NotFound(f"user {user_id} not found")

    # ----- records
    def add_user(self, user: User, ctx: Optional[OpContext] = None) -> None:
        check_user(user)
        quota_str = codec.encode_quota(user.quota)
        prefs_str = codec.encode_preferences(user.preferences)
        try:
            with self._write("add_user", ctx) as (s, ctx):
                s.add(UserRow(
                    id=user.id,
                    name=user.name,
                    pwd=user.pwd,
                    role=user.role,
                    used_space=user.used_space,
                    quota=quota_str,
                    preference=prefs_str,
                ))
                s.flush()
                ctx.raise_if_done()
        except IntegrityError as e:
            logger.warning("UserStore.py: [add_user] duplicate id=%s or name=%r", user.id, user.name)
            raise DuplicateKey(f"user id {user.id} or name {user.name!r} already exists") from e
        logger.info("UserStore.py: [add_user] added user id=%s name=%r role=%s", user.id, user.name, user.role)

    def del_user(self, user_id: int, ctx: Optional[OpContext] = None) -> None:
        """Delete by id. Missing rows are ignored unless the store is strict."""
        with self._write("del_user", ctx) as (s, ctx):
            n = s.query(UserRow).filter(UserRow.id == user_id).delete(synchronize_session=False)
            ctx.raise_if_done()
            if n == 0:
                if self.strict_delete:
                    raise NotFound(f"user {user_id} not found")
                logger.debug("UserStore.py: [del_user] user %s already absent", user_id)
                return
        logger.info("UserStore.py: [del_user] deleted user id=%s", user_id)

    def get_user(self, user_id: int, ctx: Optional[OpContext] = None) -> User:
        with self._read("get_user", ctx) as s:
            row = s.query(UserRow).filter(UserRow.id == user_id).first()
            if row is None:
                raise NotFound(f"user {user_id} not found")
            return self._to_user(row)

    def get_user_by_name(self, name: str, ctx: Optional[OpContext] = None) -> User:
        with self._read("get_user_by_name", ctx) as s:
            row = s.query(UserRow).filter(UserRow.name == name).first()
            if row is None:
                raise NotFound(f"user {name!r} not found")
            return self._to_user(row)

    def set_user(self, user: User, ctx: Optional[OpContext] = None) -> None:
        """Overwrite every column of an existing row."""
        check_user(user)
        values = {
            UserRow.name: user.name,
            UserRow.pwd: user.pwd,
            UserRow.role: user.role,
            UserRow.used_space: user.used_space,
            UserRow.quota: codec.encode_quota(user.quota),
            UserRow.preference: codec.encode_preferences(user.preferences),
        }
        try:
            with self._write("set_user", ctx) as (s, ctx):
                self._update(s, user.id, values)
                ctx.raise_if_done()
        except IntegrityError as e:
            raise DuplicateKey(f"name {user.name!r} already exists") from e

    def set_pwd(self, user_id: int, pwd: str, ctx: Optional[OpContext] = None) -> None:
        if not isinstance(pwd, str) or not pwd:
            raise ValidationError("pwd is empty or not a string")
        with self._write("set_pwd", ctx) as (s, ctx):
            self._update(s, user_id, {UserRow.pwd: pwd})
            ctx.raise_if_done()

    def set_info(self, user_id: int, role: str, quota: Quota, ctx: Optional[OpContext] = None) -> None:
        """Role + quota. used_space is left alone even if it now exceeds the new limit."""
        check_role(role)
        check_quota(quota)
        quota_str = codec.encode_quota(quota)
        with self._write("set_info", ctx) as (s, ctx):
            self._update(s, user_id, {UserRow.role: role, UserRow.quota: quota_str})
            ctx.raise_if_done()
        logger.info("UserStore.py: [set_info] user=%s role=%s space_limit=%s", user_id, role, quota.space_limit)

    def set_preferences(self, user_id: int, prefs: Preferences, ctx: Optional[OpContext] = None) -> None:
        check_preferences(prefs)
        prefs_str = codec.encode_preferences(prefs)
        with self._write("set_preferences", ctx) as (s, ctx):
            self._update(s, user_id, {UserRow.preference: prefs_str})
            ctx.raise_if_done()

    def list_users(self, ctx: Optional[OpContext] = None) -> List[User]:
        """All rows, unordered. pwd is not selected and comes back empty."""
        with self._read("list_users", ctx) as s:
            return self._list_users(s)

    def _list_users(self, s: Session) -> List[User]:
        # TODO: paginate once callers can pass a cursor
        return [self._to_user(row, with_pwd=False) for row in s.query(UserRow).all()]

    def list_user_ids(self, ctx: Optional[OpContext] = None) -> Dict[str, str]:
        with self._read("list_user_ids", ctx) as s:
            return {u.name: str(u.id) for u in self._list_users(s)}

    # ----- accounting
    def adjust_used(
        self,
        user_id: int,
        direction: Direction,
        amount: int,
        ctx: Optional[OpContext] = None,
    ) -> int:
        """
        Move used_space by `amount` bytes and return the new value.

        Raises QuotaExceeded if an increase would pass quota.space_limit and
        NegativeUsage if a decrease would go below zero; in both cases
        nothing is written.
        """
        try:
            direction = Direction(direction)
        except ValueError as e:
            raise ValidationError(f"unknown direction: {direction!r}") from e
        if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0:
            raise ValidationError(f"amount must be a non-negative integer, got {amount!r}")

        with self._write("adjust_used", ctx) as (s, ctx):
            row = s.query(UserRow).filter(UserRow.id == user_id).first()
            if row is None:
                raise NotFound(f"user {user_id} not found")
            limit = codec.decode_quota(row.quota).space_limit

            if direction is Direction.INCREASE:
                new_used = row.used_space + amount
                if new_used > limit:
                    QUOTA_REJECTIONS.labels(reason="quota_exceeded").inc()
                    logger.info(
                        "UserStore.py: [adjust_used] user=%s +%s refused: %s > limit %s",
                        user_id, amount, new_used, limit,
                    )
                    raise QuotaExceeded(f"user {user_id}: {new_used} bytes exceeds limit {limit}")
            else:
                new_used = row.used_space - amount
                if new_used < 0:
                    QUOTA_REJECTIONS.labels(reason="negative_usage").inc()
                    logger.warning(
                        "UserStore.py: [adjust_used] user=%s -%s refused: would be %s",
                        user_id, amount, new_used,
                    )
                    raise NegativeUsage(f"user {user_id}: used space would become {new_used}")

            ctx.raise_if_done()
            s.query(UserRow).filter(UserRow.id == user_id).update(
                {UserRow.used_space: new_used}, synchronize_session=False
            )
            ctx.raise_if_done()

        logger.debug("UserStore.py: [adjust_used] user=%s %s %s → %s", user_id, direction.value, amount, new_used)
        return new_used

    def set_used(self, user_id: int, incr: bool, capacity: int, ctx: Optional[OpContext] = None) -> int:
        direction = Direction.INCREASE if incr else Direction.DECREASE
        return self.adjust_used(user_id, direction, capacity, ctx)

    def reset_used(self, user_id: int, used: int, ctx: Optional[OpContext] = None) -> None:
        """Administrative overwrite of used_space; no quota or sign check."""
        if not isinstance(used, int) or isinstance(used, bool):
            raise ValidationError(f"used must be an integer, got {used!r}")
        with self._write("reset_used", ctx) as (s, ctx):
            self._update(s, user_id, {UserRow.used_space: used})
            ctx.raise_if_done()
        logger.info("UserStore.py: [reset_used] user=%s used_space set to %s", user_id, used)

    # ----- roles (waiting on grant/revoke)
    def add_role(self, role: str) -> None:
        raise Unimplemented("add_role: role management is not implemented")

    def del_role(self, role: str) -> None:
        raise Unimplemented("del_role: role management is not implemented")

    def list_roles(self) -> Dict[str, bool]:
        raise Unimplemented("list_roles: role management is not implemented")
