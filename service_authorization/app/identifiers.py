"""
Steam account identifier parsing and canonicalization.

Accepts the three textual forms Steam uses for account ids and reduces
them to the canonical 64-bit decimal form used as cache key and API
parameter. Parsing and validity follow the node `steamid` package
(SteamID.js), except that a part that overflows its bit field is
rejected instead of being masked into the neighbouring fields.
"""

import re
from dataclasses import dataclass
from enum import IntEnum

from shared.errors import InvalidIdentifierError


class Universe(IntEnum):
    INVALID = 0
    PUBLIC = 1
    BETA = 2
    INTERNAL = 3
    DEV = 4


class AccountType(IntEnum):
    INVALID = 0
    INDIVIDUAL = 1
    MULTISEAT = 2
    GAMESERVER = 3
    ANON_GAMESERVER = 4
    PENDING = 5
    CONTENT_SERVER = 6
    CLAN = 7
    CHAT = 8
    P2P_SUPER_SEEDER = 9
    ANON_USER = 10


class Instance(IntEnum):
    ALL = 0
    DESKTOP = 1
    CONSOLE = 2
    WEB = 4


ACCOUNT_ID_MASK = 0xFFFFFFFF
ACCOUNT_INSTANCE_MASK = 0x000FFFFF

# Chat ids carry their flavour in the top bits of the instance
CHAT_INSTANCE_CLAN = (ACCOUNT_INSTANCE_MASK + 1) >> 1
CHAT_INSTANCE_LOBBY = (ACCOUNT_INSTANCE_MASK + 1) >> 2

TYPE_CHARS = {
    "I": AccountType.INVALID,
    "U": AccountType.INDIVIDUAL,
    "M": AccountType.MULTISEAT,
    "G": AccountType.GAMESERVER,
    "A": AccountType.ANON_GAMESERVER,
    "P": AccountType.PENDING,
    "C": AccountType.CONTENT_SERVER,
    "g": AccountType.CLAN,
    "T": AccountType.CHAT,
    "a": AccountType.ANON_USER,
}

# Digit runs are capped at the width of their field
LEGACY_PATTERN = re.compile(r"^STEAM_([0-5]):([0-1]):([0-9]{1,10})$")
BRACKETED_PATTERN = re.compile(r"^\[([a-zA-Z]):([0-5]):([0-9]{1,10})(:[0-9]{1,7})?\]$")
STEAM64_PATTERN = re.compile(r"^[0-9]+$")

# Digits in 2**64 - 1
STEAM64_MAX_DIGITS = 20


@dataclass(frozen=True)
class SteamID:
    """Decoded Steam account identifier."""
    universe: int
    type: int
    instance: int
    account_id: int

    @classmethod
    def parse(cls, raw: str) -> "SteamID":
        """Parse any supported textual form. Raises InvalidIdentifierError."""
        if raw is None or not raw.strip():
            raise InvalidIdentifierError("Identifier is empty")

        value = raw.strip()

        match = LEGACY_PATTERN.match(value)
        if match:
            universe, low_bit, high = (int(group) for group in match.groups())
            account_id = (high * 2) + low_bit
            if account_id > ACCOUNT_ID_MASK:
                raise InvalidIdentifierError("Account number out of range")

            return cls(
                universe=universe or Universe.PUBLIC,
                type=AccountType.INDIVIDUAL,
                instance=Instance.DESKTOP,
                account_id=account_id
            )

        match = BRACKETED_PATTERN.match(value)
        if match:
            type_char, universe, account_id, instance_part = match.groups()
            account_id = int(account_id)
            if account_id > ACCOUNT_ID_MASK:
                raise InvalidIdentifierError("Account number out of range")

            instance = Instance.ALL
            if instance_part:
                instance = int(instance_part[1:])
                if instance > ACCOUNT_INSTANCE_MASK:
                    raise InvalidIdentifierError("Instance out of range")
            elif type_char == "U":
                instance = Instance.DESKTOP

            if type_char == "c":
                instance |= CHAT_INSTANCE_CLAN
                account_type = AccountType.CHAT
            elif type_char == "L":
                instance |= CHAT_INSTANCE_LOBBY
                account_type = AccountType.CHAT
            elif type_char in TYPE_CHARS:
                account_type = TYPE_CHARS[type_char]
            else:
                raise InvalidIdentifierError("Unknown account type", details={"type": type_char})

            return cls(
                universe=int(universe),
                type=account_type,
                instance=instance,
                account_id=account_id
            )

        if STEAM64_PATTERN.match(value):
            if len(value) > STEAM64_MAX_DIGITS:
                raise InvalidIdentifierError("Identifier out of range")

            steam64 = int(value)
            if steam64 >> 64:
                raise InvalidIdentifierError("Identifier out of range")

            high = steam64 >> 32
            return cls(
                universe=(high >> 24) & 0xFF,
                type=(high >> 20) & 0xF,
                instance=high & ACCOUNT_INSTANCE_MASK,
                account_id=steam64 & ACCOUNT_ID_MASK
            )

        raise InvalidIdentifierError("Unknown identifier format")

    def is_valid(self) -> bool:
        """Steam's own plausibility check for a decoded id."""
        if self.type <= AccountType.INVALID or self.type > AccountType.ANON_USER:
            return False

        if self.universe <= Universe.INVALID or self.universe > Universe.DEV:
            return False

        if self.type == AccountType.INDIVIDUAL and (self.account_id == 0 or self.instance > Instance.WEB):
            return False

        if self.type == AccountType.CLAN and (self.account_id == 0 or self.instance != Instance.ALL):
            return False

        if self.type == AccountType.GAMESERVER and self.account_id == 0:
            return False

        return True

    def steam64(self) -> str:
        """Canonical 64-bit decimal form."""
        return str(
            (self.universe << 56)
            | (self.type << 52)
            | (self.instance << 32)
            | self.account_id
        )


def normalize_account_id(raw: str) -> str:
    """Validate a caller-supplied identifier and return its canonical AccountID."""
    steam_id = SteamID.parse(raw)
    if not steam_id.is_valid():
        raise InvalidIdentifierError("Identifier failed validity check", details={"identifier": raw})
    return steam_id.steam64()
