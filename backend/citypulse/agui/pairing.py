"""
Device pairing store.

Unauthenticated AG-UI clients are issued a device id and an 8-character
pairing code. An operator approves the code (CLI or admin API), which moves
the device onto the allow-list. Pending requests expire after a TTL and only
a handful may be pending at once.

With a `path` the state lives in a JSON file so the CLI and the server see the
same allow-list; without one it is process memory only.
"""

import json
import os
import secrets
import tempfile
import threading
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Callable

from citypulse.core.logging import get_logger

log = get_logger(__name__)

CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_LENGTH = 8
ALLOW_PREFIX = "agui:"


class PairingError(RuntimeError):
    pass


@dataclass
class PairingRequest:
    device_id: str
    code: str
    created_at: float


def normalize_allow_entry(entry: str) -> str:
    entry = entry.strip()
    if entry.lower().startswith(ALLOW_PREFIX):
        entry = entry[len(ALLOW_PREFIX):]
    return entry.lower()


def generate_code() -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


class PairingStore:
    def __init__(
        self,
        path: str | os.PathLike | None = None,
        *,
        max_pending: int = 3,
        ttl_seconds: int = 600,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.path = Path(path) if path else None
        self.max_pending = max_pending
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._pending: dict[str, PairingRequest] = {}
        self._allow: list[str] = []

    # ── persistence ───────────────────────────────────────────────────────────

    def _load(self) -> None:
        if self.path is None or not self.path.exists():
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise PairingError(f"Unreadable pairing store {self.path}: {exc}") from exc
        self._pending = {
            item["device_id"]: PairingRequest(**item) for item in data.get("pending", [])
        }
        self._allow = list(data.get("allow_from", []))

    def _save(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "pending": [asdict(req) for req in self._pending.values()],
            "allow_from": self._allow,
        }
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".pairing-")
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(payload, fh, indent=2)
        os.replace(tmp, self.path)

    def _prune(self) -> bool:
        cutoff = self._clock() - self.ttl_seconds
        expired = [d for d, req in self._pending.items() if req.created_at < cutoff]
        for device_id in expired:
            del self._pending[device_id]
        return bool(expired)

    # ── operations ────────────────────────────────────────────────────────────

    def upsert_pairing_request(self, device_id: str) -> str | None:
        """
        Register a pending request and return its code. A device that is
        already pending keeps its code. Returns None when the pending limit
        is reached.
        """
        with self._lock:
            self._load()
            changed = self._prune()
            existing = self._pending.get(device_id)
            if existing is not None:
                code = existing.code
            elif len(self._pending) >= self.max_pending:
                if changed:
                    self._save()
                log.warning("pairing_limit_reached", pending=len(self._pending))
                return None
            else:
                taken = {req.code for req in self._pending.values()}
                code = generate_code()
                while code in taken:
                    code = generate_code()
                self._pending[device_id] = PairingRequest(device_id, code, self._clock())
                changed = True
            if changed:
                self._save()
        log.info("pairing_requested", device_id=device_id, code=code)
        return code

    def list_pending(self) -> list[PairingRequest]:
        with self._lock:
            self._load()
            if self._prune():
                self._save()
            return list(self._pending.values())

    def _take(self, code: str) -> PairingRequest | None:
        code = code.strip().upper()
        self._load()
        self._prune()
        for device_id, req in self._pending.items():
            if req.code == code:
                del self._pending[device_id]
                return req
        return None

    def approve(self, code: str) -> str | None:
        """Move the device behind `code` onto the allow-list; None for unknown or expired codes."""
        with self._lock:
            req = self._take(code)
            if req is None:
                return None
            entry = normalize_allow_entry(req.device_id)
            if entry not in self._allow:
                self._allow.append(entry)
            self._save()
        log.info("pairing_approved", device_id=req.device_id)
        return req.device_id

    def reject(self, code: str) -> str | None:
        with self._lock:
            req = self._take(code)
            if req is None:
                return None
            self._save()
        log.info("pairing_rejected", device_id=req.device_id)
        return req.device_id

    def revoke(self, device_id: str) -> bool:
        entry = normalize_allow_entry(device_id)
        with self._lock:
            self._load()
            if entry not in self._allow:
                return False
            self._allow.remove(entry)
            self._save()
        log.info("device_revoked", device_id=device_id)
        return True

    def read_allow_from(self) -> list[str]:
        with self._lock:
            self._load()
            return [normalize_allow_entry(e) for e in self._allow]

    def is_approved(self, device_id: str) -> bool:
        return device_id.lower() in self.read_allow_from()
