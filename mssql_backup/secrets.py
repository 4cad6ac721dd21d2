"""Encrypted storage for credentials used by the backup job."""
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List

from cryptography.fernet import Fernet, InvalidToken


class SecretError(Exception):
    """Raised when the secret store cannot be used."""


class SecretNotFoundError(SecretError):
    """Raised when a requested secret is not stored."""


@dataclass
class SecretManager:
    """Keep secrets as Fernet tokens in a JSON file next to a key file."""

    key_path: Path
    secrets_path: Path

    def generate_key(self) -> Path:
        if self.key_path.exists():
            raise SecretError(f"Key file '{self.key_path}' already exists.")
        self.key_path.parent.mkdir(parents=True, exist_ok=True)
        self.key_path.write_bytes(Fernet.generate_key())
        return self.key_path

    def ensure_key_available(self) -> None:
        if not self.key_path.exists():
            raise SecretError(
                f"Key file '{self.key_path}' not found. Create it with the 'init-key' command."
            )

    def set_secret(self, name: str, value: str) -> None:
        if not name or not name.strip():
            raise SecretError("Secret name must not be empty.")
        data = self._load()
        data[name] = self._fernet().encrypt(value.encode("utf-8")).decode("ascii")
        self.secrets_path.parent.mkdir(parents=True, exist_ok=True)
        self.secrets_path.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")

    def get_secret(self, name: str) -> str:
        data = self._load()
        if name not in data:
            raise SecretNotFoundError(f"Secret '{name}' is not stored in '{self.secrets_path}'.")
        try:
            return self._fernet().decrypt(data[name].encode("ascii")).decode("utf-8")
        except InvalidToken as exc:
            raise SecretError(f"Secret '{name}' cannot be decrypted with '{self.key_path}'.") from exc

    def list_secrets(self) -> List[str]:
        return sorted(self._load())

    # ------------------------------------------------------------------
    def _fernet(self) -> Fernet:
        self.ensure_key_available()
        try:
            return Fernet(self.key_path.read_bytes().strip())
        except ValueError as exc:
            raise SecretError(f"Key file '{self.key_path}' does not contain a valid key.") from exc

    def _load(self) -> Dict[str, str]:
        if not self.secrets_path.exists():
            return {}
        try:
            data = json.loads(self.secrets_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise SecretError(f"Secrets file '{self.secrets_path}' is corrupted: {exc}") from exc
        if not isinstance(data, dict):
            raise SecretError(f"Secrets file '{self.secrets_path}' must contain an object.")
        return data


__all__ = ["SecretError", "SecretManager", "SecretNotFoundError"]
