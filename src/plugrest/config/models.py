"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, plugrest.toml only contains
overrides.  A device needs only ``[auth] id`` and ``password``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

# --- plugrest.toml sections ---


class AuthConfig(BaseModel):
    """[auth] section."""

    model_config = {"frozen": True}

    id: str | None = None
    password: str | None = None
    is_master: bool = False

    def client_params(self) -> dict[str, Any]:
        """Construction options for :class:`~plugrest.client.rest.RestClient`."""
        if not self.id:
            return {}
        params: dict[str, Any] = {"id": self.id, "is_master": self.is_master}
        if self.password:
            params["password"] = self.password
        return params


class ConnectionConfig(BaseModel):
    """[connection] section."""

    model_config = {"frozen": True}

    url: str = "https://api.cloudplugs.com/iot/"
    accept_unauthorized: bool = False
    dont_load_ca: bool = False
    post_only: bool = False
    max_workers: int = Field(default=1, ge=1)

    def client_params(self) -> dict[str, Any]:
        return self.model_dump()

