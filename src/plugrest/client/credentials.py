"""Credentials model and the per-client credential store.

Credentials are replaced wholesale, never merged.  The store serializes
reads and replacements so a response continuation (running on a worker
thread) can swap them while the caller's thread builds the next request.
"""

from __future__ import annotations

import threading
from typing import Any

from pydantic import BaseModel

from plugrest.domain.ids import is_email, is_plug_id_pub


class Credentials(BaseModel):
    """Active identity and secret.

    Exactly one of ``plug_id`` / ``email`` is set, depending on the form
    of the identity passed to :meth:`from_identity`.
    """

    model_config = {"frozen": True}

    plug_id: str | None = None
    email: str | None = None
    password: str | None = None
    is_master: bool = False

    @classmethod
    def from_identity(
        cls,
        identity: str,
        password: Any = None,
        *,
        is_master: bool = False,
    ) -> Credentials:
        plug_id = identity if is_plug_id_pub(identity) else None
        email = identity if plug_id is None and is_email(identity) else None
        # Header values are strings; any truthy secret is accepted.
        secret = None if password is None else str(password)
        return cls(plug_id=plug_id, email=email, password=secret, is_master=is_master)

    @property
    def identity(self) -> str | None:
        return self.plug_id or self.email

    def to_auth(self) -> dict[str, Any] | None:
        """The ``get_auth()`` view: ``{id, password, is_master}`` or None."""
        if self.identity is None:
            return None
        return {"id": self.identity, "password": self.password, "is_master": self.is_master}


class CredentialStore:
    """Lock-guarded holder of the client's current :class:`Credentials`."""

    def __init__(self, credentials: Credentials | None = None) -> None:
        self._lock = threading.Lock()
        self._credentials = credentials or Credentials()

    def get(self) -> Credentials:
        with self._lock:
            return self._credentials

    def replace(self, credentials: Credentials) -> Credentials:
        """Swap in *credentials*, returning the previous value."""
        with self._lock:
            previous, self._credentials = self._credentials, credentials
            return previous
