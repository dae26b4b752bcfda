"""Deterministic IPv4 address cloaking.

Each octet prefix of the address (``a``, ``a.b``, ``a.b.c``, ``a.b.c.d``) is
hashed with its own secret key, so a cloak for ``10.1.2.3`` shares its trailing
labels with every other cloak in ``10.1.2.0/24`` without revealing the octets.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import hashlib
import ipaddress


IPV4_KEY_COUNT = 4
_LABEL_LENGTH = 8


class CloakingError(ValueError):
    pass


@dataclass(frozen=True, slots=True)
class CloakConfig:
    enabled: bool = False
    netname: str = ""
    ipv4_keys: tuple[str, ...] = field(default_factory=tuple)


def cloak_ipv4(address: str, config: CloakConfig) -> str:
    try:
        parsed = ipaddress.IPv4Address(address)
    except ValueError as exc:
        raise CloakingError(f"'{address}' is not an IPv4 address") from exc
    if not config.netname:
        raise CloakingError("cloaking netname is empty")
    if len(config.ipv4_keys) < IPV4_KEY_COUNT:
        raise CloakingError(f"not enough IPv4 keys: need {IPV4_KEY_COUNT}, got {len(config.ipv4_keys)}")
    if any(not key for key in config.ipv4_keys[:IPV4_KEY_COUNT]):
        raise CloakingError("IPv4 cloaking keys must not be empty")

    octets = str(parsed).split(".")
    labels: list[str] = []
    for index, key in enumerate(config.ipv4_keys[:IPV4_KEY_COUNT]):
        prefix = ".".join(octets[: index + 1])
        digest = hashlib.sha3_256(key.encode("utf-8") + prefix.encode("ascii")).hexdigest()
        labels.append(digest[:_LABEL_LENGTH])
    labels.reverse()
    return ".".join([*labels, config.netname])
