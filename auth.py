"""
Admin authorization.

A single shared secret gates every mutating endpoint. When no secret is
configured the gate is OPEN and lets every request through. That mode exists
for local development only; never deploy without ADMIN_KEY set.
"""

from __future__ import annotations

import enum
import hmac
from dataclasses import dataclass
from typing import Optional

from errors import Forbidden


class AdminPolicy(str, enum.Enum):
    OPEN = "open"
    KEY_REQUIRED = "key_required"


@dataclass(frozen=True)
class AdminGate:
    secret: Optional[str] = None

    @property
    def policy(self) -> AdminPolicy:
        if self.secret:
            return AdminPolicy.KEY_REQUIRED
        return AdminPolicy.OPEN

    def authorize(self, provided_key: Optional[str]) -> bool:
        if self.policy is AdminPolicy.OPEN:
            return True
        if not provided_key:
            return False
        return hmac.compare_digest(provided_key.encode("utf-8"), self.secret.encode("utf-8"))

    def ensure(self, provided_key: Optional[str]) -> None:
        if not self.authorize(provided_key):
            raise Forbidden()
