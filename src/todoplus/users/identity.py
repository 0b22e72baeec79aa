# src/todoplus/users/identity.py

from __future__ import annotations

from typing import Any

from ..core.errors import ClientInputError


class TrustingIdentityVerifier:
    """
    Accepts whatever identity the client sends.

    The web app reads the chat user id on the client side and posts it as-is;
    nothing is signed. Swap in a verifier that checks the platform's signed
    init data to harden this.
    """

    def verify(self, raw_external_id: Any) -> str:
        if raw_external_id is None or isinstance(raw_external_id, bool):
            raise ClientInputError("externalId required")
        if isinstance(raw_external_id, float) and raw_external_id.is_integer():
            raw_external_id = int(raw_external_id)
        external_id = str(raw_external_id).strip()
        if not external_id:
            raise ClientInputError("externalId required")
        return external_id
