"""Configuration schemas using Pydantic"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, model_validator


class TrustConfig(BaseModel):
    """Folder trust settings"""
    folder_trust_enabled: bool = False
    trusted_folders_path: Path | None = None  # Default: ~/.config/trustgate/trustedFolders.json


class HookDefinition(BaseModel):
    """A hook reachable by shell command or HTTP"""
    type: Literal["command", "http"] = "command"
    command: str | None = None
    url: str | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    env: dict[str, str] = Field(default_factory=dict)
    timeout: float = Field(default=60.0, gt=0)
    enabled: bool = True

    @model_validator(mode="after")
    def _check_target(self) -> "HookDefinition":
        if self.type == "command" and not self.command:
            raise ValueError("command hooks require 'command'")
        if self.type == "http" and not self.url:
            raise ValueError("http hooks require 'url'")
        return self


class HooksConfig(BaseModel):
    """Lifecycle hooks, keyed by event name (before-agent, after-agent)"""
    enabled: bool = True
    definitions: dict[str, HookDefinition] = Field(default_factory=dict)


class AuditConfig(BaseModel):
    """Audit log settings"""
    enabled: bool = True
    file: str | None = None  # Default: ~/.local/share/trustgate/audit.jsonl


class Config(BaseModel):
    """Main configuration"""
    trust: TrustConfig = Field(default_factory=TrustConfig)
    hooks: HooksConfig = Field(default_factory=HooksConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)
    # None = not yet decided for this workspace; gating only applies when True
    workspace_trusted: bool | None = None
