"""TLS server contexts for configured listeners."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import ssl
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from ircdconf.config.errors import ConfigSchemaError, FatalConfigError
from ircdconf.core.identifiers import CasefoldError, casefold_name


@dataclass(frozen=True, slots=True)
class TLSListenerConfig:
    name: str
    cert: str
    key: str

    def build_context(self) -> ssl.SSLContext:
        if not self.cert or not self.key:
            raise FatalConfigError(f"tls cert+key: listener '{self.name}' needs both a cert and a key")
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        try:
            context.load_cert_chain(certfile=self.cert, keyfile=self.key)
        except (OSError, ssl.SSLError) as exc:
            raise FatalConfigError(f"tls cert+key: invalid pair for listener '{self.name}': {exc}") from exc
        return context


def parse_tls_listeners(raw: Any) -> list[TLSListenerConfig]:
    if raw is None:
        return []
    if not isinstance(raw, dict):
        raise ConfigSchemaError("'server.tls-listeners' must be an object")
    listeners: list[TLSListenerConfig] = []
    for name, item in raw.items():
        if not isinstance(item, dict):
            raise ConfigSchemaError(f"tls listener '{name}' must be an object")
        cert = str(item.get("cert") or "").strip()
        key = str(item.get("key") or "").strip()
        listeners.append(TLSListenerConfig(name=str(name), cert=cert, key=key))
    return listeners


def build_tls_listeners(
    listeners: Iterable[TLSListenerConfig],
    logger: logging.Logger,
) -> Mapping[str, ssl.SSLContext]:
    contexts: dict[str, ssl.SSLContext] = {}
    for listener in listeners:
        context = listener.build_context()
        try:
            name = casefold_name(listener.name)
        except CasefoldError as exc:
            logger.warning(
                "could not casefold tls listener '%s', dropping it: %s",
                listener.name,
                exc,
                extra={"log_type": "server"},
            )
            continue
        contexts[name] = context
    return MappingProxyType(contexts)
