"""
CredAdmin - Account Record

A plain data holder for one user account, plus the mapping to and from the
durable file schema (camelCase keys, ISO 8601 timestamps).
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Dict, Optional

# Record id that has never been persisted
UNASSIGNED_ID = 0

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S %Z"


def _ts_out(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _ts_in(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _bool_in(field: str, value: Any) -> bool:
    # bool("false") is True; only real JSON booleans are accepted
    if not isinstance(value, bool):
        raise ValueError(f"{field} must be true or false, got {value!r}")
    return value


def _count_in(field: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"{field} must be a non-negative integer, got {value!r}")
    return value


@dataclass
class AccountRecord:
    """
    One user account.

    `credential` is the TRANSFORMED password (see crypto.hash_password). It
    may be None for accounts that authenticate against an external directory.
    """

    user_name: str
    full_name: Optional[str] = None
    email_address: Optional[str] = None
    credential: Optional[str] = None
    enabled: bool = True
    id: int = UNASSIGNED_ID
    last_successful_login_at: Optional[datetime] = None
    last_failed_login_at: Optional[datetime] = None
    credential_changed_at: Optional[datetime] = None
    bad_login_count: int = 0

    @property
    def persisted(self) -> bool:
        return self.id != UNASSIGNED_ID

    def copy(self) -> "AccountRecord":
        # All fields are immutable values, a shallow copy is a full copy
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userName": self.user_name,
            "fullName": self.full_name,
            "emailAddress": self.email_address,
            "credential": self.credential,
            "enabled": self.enabled,
            "lastSuccessfulLoginAt": _ts_out(self.last_successful_login_at),
            "credentialChangedAt": _ts_out(self.credential_changed_at),
            "badLoginCount": self.bad_login_count,
            "lastFailedLoginAt": _ts_out(self.last_failed_login_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AccountRecord":
        """
        Build a record from its durable form.

        Raises:
            KeyError: If `id` or `userName` is missing
            ValueError / TypeError: If a field has the wrong shape
        """
        return cls(
            id=int(data["id"]),
            user_name=str(data["userName"]),
            full_name=data.get("fullName"),
            email_address=data.get("emailAddress"),
            credential=data.get("credential"),
            enabled=_bool_in("enabled", data.get("enabled", False)),
            last_successful_login_at=_ts_in(data.get("lastSuccessfulLoginAt")),
            credential_changed_at=_ts_in(data.get("credentialChangedAt")),
            bad_login_count=_count_in("badLoginCount", data.get("badLoginCount", 0)),
            last_failed_login_at=_ts_in(data.get("lastFailedLoginAt")),
        )

    def describe(self) -> str:
        """Human-readable one-account summary. The credential is masked."""
        def fmt(value: Optional[datetime]) -> str:
            return value.strftime(TIMESTAMP_FORMAT).strip() if value else "-"

        lines = [
            f"  ID: {self.id}",
            f"  User name: {self.user_name}",
            f"  Full name: {self.full_name or '-'}",
            f"  Email: {self.email_address or '-'}",
            f"  Credential: {'set' if self.credential else 'none'}",
            f"  Enabled: {'yes' if self.enabled else 'no'}",
            f"  Bad login count: {self.bad_login_count}",
            f"  Last login: {fmt(self.last_successful_login_at)}",
            f"  Last failed login: {fmt(self.last_failed_login_at)}",
            f"  Password changed: {fmt(self.credential_changed_at)}",
        ]
        return "\n".join(lines)
