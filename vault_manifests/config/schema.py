"""Pydantic configuration models for vault-manifests."""

from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from vault_manifests.constants import ENV_SECRET_KEY, ENV_SECRET_PREFIX

# ── Backend configs ──────────────────────────────────────────────────────


class EnvBackendSettings(BaseModel):
    """Secrets read from ``SECRET_<PATH>_<KEY>`` environment variables."""

    type: Literal["env"]
    prefix: str = Field(default=ENV_SECRET_PREFIX, min_length=1)


class FileBackendSettings(BaseModel):
    """Secrets read from a Fernet-encrypted JSON file."""

    type: Literal["file"]
    path: str = Field(default="secrets.enc", min_length=1)
    key_env: str = Field(
        default=ENV_SECRET_KEY,
        min_length=1,
        description="Environment variable holding the Fernet key.",
    )


class DirectoryBackendSettings(BaseModel):
    """Secrets read from plain YAML/JSON files under the secret directory.

    ``path`` is filled from the resolved secret directory when omitted.
    """

    type: Literal["directory"]
    path: Optional[str] = None


class VaultBackendSettings(BaseModel):
    """HashiCorp Vault KV backend."""

    type: Literal["vault"]
    address: str = Field(..., min_length=1, description="Vault server URL.")
    auth_type: Literal["token", "approle"] = "token"
    token: Optional[str] = Field(default=None, repr=False)
    role_id: Optional[str] = None
    secret_id: Optional[str] = Field(default=None, repr=False)
    kv_version: Literal[1, 2] = 2
    auth_mount_path: str = Field(default="approle", min_length=1)
    timeout: float = Field(default=30.0, gt=0)

    @field_validator("address")
    @classmethod
    def _strip_address(cls, v: str) -> str:
        return v.strip().rstrip("/")

    @model_validator(mode="after")
    def _check_credentials(self) -> "VaultBackendSettings":
        if self.auth_type == "token" and not self.token:
            raise ValueError("token auth requires 'token' (or VAULT_TOKEN)")
        if self.auth_type == "approle" and not (self.role_id and self.secret_id):
            raise ValueError(
                "approle auth requires 'role_id' and 'secret_id' "
                "(or AVP_ROLE_ID / AVP_SECRET_ID)"
            )
        return self


BackendSettings = Annotated[
    Union[
        EnvBackendSettings,
        FileBackendSettings,
        DirectoryBackendSettings,
        VaultBackendSettings,
    ],
    Field(discriminator="type"),
]


# ── Top-level config ─────────────────────────────────────────────────────


class VaultManifestsConfig(BaseModel):
    """Validated configuration for one ``generate`` run."""

    backend: BackendSettings = Field(default_factory=lambda: EnvBackendSettings(type="env"))
    path_validation: Optional[str] = Field(
        default=None,
        description="Regular expression every secret path must match.",
    )
    secret_dir: Optional[str] = Field(
        default=None,
        description="Base directory for file-based secrets; GIT_ROOT allowed.",
    )
    verbose: bool = False

    @field_validator("path_validation", "secret_dir")
    @classmethod
    def _blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None
