"""Key material imported from a key-tool dump."""

from __future__ import annotations

from dataclasses import dataclass, field

# Field order of one record in the dump.
KEY_FIELDS = (
    "secret_phrase",
    "secret_seed",
    "public_key_hex",
    "account_id",
    "public_key_ss58",
    "ss58_address",
)


@dataclass(frozen=True)
class KeyRecord:
    """One key as printed by the node's key tool.

    The two secret fields are kept out of ``repr`` so records can be logged.
    """

    secret_phrase: str = field(repr=False)
    secret_seed: str = field(repr=False)
    public_key_hex: str
    account_id: str
    public_key_ss58: str
    ss58_address: str
    labels_ok: bool = True  # False when a line carried the wrong label

    @property
    def address(self) -> str:
        return self.ss58_address

    def missing_fields(self) -> list[str]:
        """Names of the key fields that are empty."""
        return [name for name in KEY_FIELDS if not getattr(self, name)]

    def is_valid(self) -> bool:
        """True if the record is usable as a signer."""
        return self.labels_ok and not self.missing_fields()
