"""SecretsProvider Port Interface.

Contract: Retrieve secret material (the API key) by logical name; no persistence here.
"""

from __future__ import annotations

from typing import Protocol


class SecretsProvider(Protocol):
    def get(self, secret_name: str) -> str: ...

    """
    Retrieve a secret value using its logical name.
    Keeps the API key out of config files and code.
    """
