"""Dataclasses for the server configuration and the top-level validator."""

from __future__ import annotations

from dataclasses import dataclass, field
import ipaddress
import logging
import ssl
from typing import Any, Mapping

from ircdconf.config.errors import (
    ConfigParseError,
    ConfigSchemaError,
    ConfigValidationError,
    FatalConfigError,
)
from ircdconf.config.logging_directives import (
    LoggingDirective,
    normalize_logging_directives,
    parse_raw_logging_directives,
)
from ircdconf.config.opers import (
    OperClass,
    Operator,
    bind_operators,
    parse_raw_oper_classes,
    parse_raw_operators,
    resolve_oper_classes,
)
from ircdconf.config.tls import TLSListenerConfig, build_tls_listeners, parse_tls_listeners
from ircdconf.config.units import ByteSize, ParsedDuration
from ircdconf.core.cloaking import CloakConfig, CloakingError, cloak_ipv4
from ircdconf.core.identifiers import is_hostname
from ircdconf.core.logging import get_logger
from ircdconf.core.passwords import PasswordDecodeError, decode_password_hash


CLOAKING_PROBE_ADDRESS = "8.8.8.8"
DEFAULT_MAX_SENDQ = "16k"
MIN_LINE_LENGTH = 512
MAX_PORT = 65535
VALID_REGISTRATION_CALLBACKS = {"none", "mailto"}


@dataclass(frozen=True, slots=True)
class NetworkConfig:
    name: str
    ip_cloaking: CloakConfig = field(default_factory=CloakConfig)


@dataclass(frozen=True, slots=True)
class STSConfig:
    enabled: bool = False
    duration: ParsedDuration | None = None
    port: int = 0
    preload: bool = False

    def value(self) -> str:
        """Render the STS capability value advertised to clients."""
        seconds = int(self.duration.seconds) if self.duration is not None else 0
        value = f"duration={seconds}"
        if self.enabled and self.port > 0:
            value += f",port={self.port}"
        if self.enabled and self.preload:
            value += ",preload"
        return value


@dataclass(frozen=True, slots=True)
class RestAPIConfig:
    enabled: bool = False
    listen: str = ""


@dataclass(frozen=True, slots=True)
class ConnectionLimitsConfig:
    enabled: bool = False
    cidr_len_ipv4: int = 32
    cidr_len_ipv6: int = 64
    ips_per_subnet: int = 0
    exempted: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ConnectionThrottleConfig:
    enabled: bool = False
    cidr_len_ipv4: int = 32
    cidr_len_ipv6: int = 64
    max_connections: int = 0
    duration: ParsedDuration | None = None
    ban_duration: ParsedDuration | None = None
    ban_message: str = ""
    exempted: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ServerConfig:
    name: str
    listen: tuple[str, ...]
    max_sendq: ByteSize
    password: bytes | None = field(default=None, repr=False)
    ws_listen: str = ""
    tls_listeners: tuple[TLSListenerConfig, ...] = ()
    sts: STSConfig = field(default_factory=STSConfig)
    rest_api: RestAPIConfig = field(default_factory=RestAPIConfig)
    check_ident: bool = False
    motd: str = ""
    connection_limits: ConnectionLimitsConfig = field(default_factory=ConnectionLimitsConfig)
    connection_throttle: ConnectionThrottleConfig = field(default_factory=ConnectionThrottleConfig)


@dataclass(frozen=True, slots=True)
class DatastoreConfig:
    path: str


@dataclass(frozen=True, slots=True)
class MailtoTLSConfig:
    enabled: bool = False
    insecure_skip_verify: bool = False
    server_name: str = ""


@dataclass(frozen=True, slots=True)
class MailtoCallbackConfig:
    server: str = ""
    port: int = 0
    tls: MailtoTLSConfig = field(default_factory=MailtoTLSConfig)
    username: str = ""
    password: str = field(default="", repr=False)
    sender: str = ""
    verify_message_subject: str = ""
    verify_message: str = ""


@dataclass(frozen=True, slots=True)
class AccountRegistrationConfig:
    enabled: bool = False
    enabled_callbacks: tuple[str, ...] = ()
    mailto: MailtoCallbackConfig = field(default_factory=MailtoCallbackConfig)


@dataclass(frozen=True, slots=True)
class AccountsConfig:
    registration: AccountRegistrationConfig = field(default_factory=AccountRegistrationConfig)
    authentication_enabled: bool = False


@dataclass(frozen=True, slots=True)
class ChannelsConfig:
    registration_enabled: bool = False


@dataclass(frozen=True, slots=True)
class LineLenConfig:
    tags: int
    rest: int


@dataclass(frozen=True, slots=True)
class LimitsConfig:
    nicklen: int
    channellen: int
    awaylen: int
    kicklen: int
    topiclen: int
    linelen: LineLenConfig
    chan_list_modes: int = 0
    monitor_entries: int = 0
    whowas_entries: int = 0


@dataclass(frozen=True, slots=True)
class IRCdConfig:
    network: NetworkConfig
    server: ServerConfig
    datastore: DatastoreConfig
    accounts: AccountsConfig
    channels: ChannelsConfig
    limits: LimitsConfig
    logging: tuple[LoggingDirective, ...]
    oper_classes: Mapping[str, OperClass]
    operators: Mapping[str, Operator]
    tls_listeners: Mapping[str, ssl.SSLContext]


def _section(data: dict[str, Any], key: str, *, label: str | None = None) -> dict[str, Any]:
    raw = data.get(key)
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigSchemaError(f"'{label or key}' must be an object")
    return raw


def _parse_bool_value(raw: Any, *, field_name: str, default: bool) -> bool:
    if raw is None:
        return default
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, str):
        normalized = raw.strip().lower()
        if normalized in {"1", "true", "yes", "on"}:
            return True
        if normalized in {"0", "false", "no", "off"}:
            return False
    raise ConfigSchemaError(f"'{field_name}' must be a boolean")


def _parse_int_value(raw: Any, *, field_name: str, default: int, minimum: int | None = 0) -> int:
    if raw is None:
        return default
    if isinstance(raw, bool):
        raise ConfigSchemaError(f"'{field_name}' must be an integer")
    try:
        value = int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigSchemaError(f"'{field_name}' must be an integer") from exc
    if minimum is not None and value < minimum:
        raise ConfigSchemaError(f"'{field_name}' must be greater than or equal to {minimum}")
    return value


def _parse_raw_list(raw: Any, *, field_name: str) -> list[Any]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ConfigSchemaError(f"'{field_name}' must be a list")
    return raw


def _parse_string_list(raw: Any, *, field_name: str) -> tuple[str, ...]:
    items = _parse_raw_list(raw, field_name=field_name)
    return tuple(str(item).strip() for item in items if str(item).strip())


def _parse_exempted(raw: Any, *, field_name: str) -> tuple[str, ...]:
    exempted = _parse_string_list(raw, field_name=field_name)
    for entry in exempted:
        try:
            ipaddress.ip_network(entry, strict=False)
        except ValueError as exc:
            raise ConfigValidationError(f"invalid {field_name} entry '{entry}'") from exc
    return exempted


def _parse_cidr_lengths(raw: dict[str, Any], *, section: str) -> tuple[int, int]:
    cidr_len_ipv4 = _parse_int_value(raw.get("cidr-len-ipv4"), field_name=f"{section}.cidr-len-ipv4", default=32)
    if cidr_len_ipv4 > 32:
        raise ConfigValidationError(f"{section} cidr-len-ipv4 must be between 0 and 32")
    cidr_len_ipv6 = _parse_int_value(raw.get("cidr-len-ipv6"), field_name=f"{section}.cidr-len-ipv6", default=64)
    if cidr_len_ipv6 > 128:
        raise ConfigValidationError(f"{section} cidr-len-ipv6 must be between 0 and 128")
    return cidr_len_ipv4, cidr_len_ipv6


def _parse_duration_field(raw: Any, *, label: str, custom: bool = False) -> ParsedDuration:
    try:
        return ParsedDuration.parse("" if raw is None else str(raw), custom=custom)
    except ConfigParseError as exc:
        raise type(exc)(f"could not parse {label}: {exc}", exc.raw) from exc


def _parse_sts(raw: dict[str, Any]) -> STSConfig:
    enabled = _parse_bool_value(raw.get("enabled"), field_name="server.sts.enabled", default=False)
    preload = _parse_bool_value(raw.get("preload"), field_name="server.sts.preload", default=False)
    if not enabled:
        return STSConfig(enabled=False, preload=preload)
    duration = _parse_duration_field(raw.get("duration"), label="STS duration", custom=True)
    port = _parse_int_value(raw.get("port"), field_name="server.sts.port", default=0, minimum=None)
    if port < 0 or port > MAX_PORT:
        raise ConfigValidationError(f"STS port is incorrect, should be 0 if disabled: {port}")
    return STSConfig(enabled=True, duration=duration, port=port, preload=preload)


def _parse_connection_limits(raw: dict[str, Any]) -> ConnectionLimitsConfig:
    section = "server.connection-limits"
    cidr_len_ipv4, cidr_len_ipv6 = _parse_cidr_lengths(raw, section=section)
    return ConnectionLimitsConfig(
        enabled=_parse_bool_value(raw.get("enabled"), field_name=f"{section}.enabled", default=False),
        cidr_len_ipv4=cidr_len_ipv4,
        cidr_len_ipv6=cidr_len_ipv6,
        ips_per_subnet=_parse_int_value(raw.get("ips-per-subnet"), field_name=f"{section}.ips-per-subnet", default=0),
        exempted=_parse_exempted(raw.get("exempted"), field_name=f"{section}.exempted"),
    )


def _parse_connection_throttle(raw: dict[str, Any]) -> ConnectionThrottleConfig:
    section = "server.connection-throttling"
    enabled = _parse_bool_value(raw.get("enabled"), field_name=f"{section}.enabled", default=False)
    cidr_len_ipv4, cidr_len_ipv6 = _parse_cidr_lengths(raw, section=section)
    duration: ParsedDuration | None = None
    ban_duration: ParsedDuration | None = None
    if enabled:
        duration = _parse_duration_field(raw.get("duration"), label="connection-throttle duration")
        ban_duration = _parse_duration_field(raw.get("ban-duration"), label="connection-throttle ban-duration")
    return ConnectionThrottleConfig(
        enabled=enabled,
        cidr_len_ipv4=cidr_len_ipv4,
        cidr_len_ipv6=cidr_len_ipv6,
        max_connections=_parse_int_value(raw.get("max-connections"), field_name=f"{section}.max-connections", default=0),
        duration=duration,
        ban_duration=ban_duration,
        ban_message=str(raw.get("ban-message") or ""),
        exempted=_parse_exempted(raw.get("exempted"), field_name=f"{section}.exempted"),
    )


def _parse_ip_cloaking(raw: dict[str, Any]) -> CloakConfig:
    section = "network.ip-cloaking"
    return CloakConfig(
        enabled=_parse_bool_value(raw.get("enabled"), field_name=f"{section}.enabled", default=False),
        netname=str(raw.get("netname") or "").strip(),
        ipv4_keys=tuple(
            str(item) for item in _parse_raw_list(raw.get("ipv4-keys"), field_name=f"{section}.ipv4-keys")
        ),
    )


def _parse_accounts(raw: dict[str, Any]) -> AccountsConfig:
    registration_raw = _section(raw, "registration", label="accounts.registration")
    callbacks_raw = _section(registration_raw, "callbacks", label="accounts.registration.callbacks")
    mailto_raw = _section(callbacks_raw, "mailto", label="accounts.registration.callbacks.mailto")
    mailto_tls_raw = _section(mailto_raw, "tls", label="accounts.registration.callbacks.mailto.tls")

    enabled_callbacks = tuple(
        item.lower()
        for item in _parse_string_list(
            registration_raw.get("enabled-callbacks"),
            field_name="accounts.registration.enabled-callbacks",
        )
    )
    for callback in enabled_callbacks:
        if callback not in VALID_REGISTRATION_CALLBACKS:
            raise ConfigValidationError(f"invalid account registration callback '{callback}'")

    mailto_port = _parse_int_value(
        mailto_raw.get("port"),
        field_name="accounts.registration.callbacks.mailto.port",
        default=0,
    )
    if mailto_port > MAX_PORT:
        raise ConfigValidationError("accounts.registration.callbacks.mailto.port must be between 0 and 65535")
    mailto = MailtoCallbackConfig(
        server=str(mailto_raw.get("server") or "").strip(),
        port=mailto_port,
        tls=MailtoTLSConfig(
            enabled=_parse_bool_value(
                mailto_tls_raw.get("enabled"),
                field_name="accounts.registration.callbacks.mailto.tls.enabled",
                default=False,
            ),
            insecure_skip_verify=_parse_bool_value(
                mailto_tls_raw.get("insecure_skip_verify"),
                field_name="accounts.registration.callbacks.mailto.tls.insecure_skip_verify",
                default=False,
            ),
            server_name=str(mailto_tls_raw.get("servername") or "").strip(),
        ),
        username=str(mailto_raw.get("username") or ""),
        password=str(mailto_raw.get("password") or ""),
        sender=str(mailto_raw.get("sender") or "").strip(),
        verify_message_subject=str(mailto_raw.get("verify-message-subject") or ""),
        verify_message=str(mailto_raw.get("verify-message") or ""),
    )
    return AccountsConfig(
        registration=AccountRegistrationConfig(
            enabled=_parse_bool_value(
                registration_raw.get("enabled"),
                field_name="accounts.registration.enabled",
                default=False,
            ),
            enabled_callbacks=enabled_callbacks,
            mailto=mailto,
        ),
        authentication_enabled=_parse_bool_value(
            raw.get("authentication-enabled"),
            field_name="accounts.authentication-enabled",
            default=False,
        ),
    )


def _parse_limits(raw: dict[str, Any]) -> LimitsConfig:
    linelen_raw = _section(raw, "linelen", label="limits.linelen")
    return LimitsConfig(
        nicklen=_parse_int_value(raw.get("nicklen"), field_name="limits.nicklen", default=0),
        channellen=_parse_int_value(raw.get("channellen"), field_name="limits.channellen", default=0),
        awaylen=_parse_int_value(raw.get("awaylen"), field_name="limits.awaylen", default=0),
        kicklen=_parse_int_value(raw.get("kicklen"), field_name="limits.kicklen", default=0),
        topiclen=_parse_int_value(raw.get("topiclen"), field_name="limits.topiclen", default=0),
        linelen=LineLenConfig(
            tags=_parse_int_value(linelen_raw.get("tags"), field_name="limits.linelen.tags", default=0),
            rest=_parse_int_value(linelen_raw.get("rest"), field_name="limits.linelen.rest", default=0),
        ),
        chan_list_modes=_parse_int_value(raw.get("chan-list-modes"), field_name="limits.chan-list-modes", default=0),
        monitor_entries=_parse_int_value(raw.get("monitor-entries"), field_name="limits.monitor-entries", default=0),
        whowas_entries=_parse_int_value(raw.get("whowas-entries"), field_name="limits.whowas-entries", default=0),
    )


def _decode_server_password(raw: Any) -> bytes | None:
    encoded = str(raw or "").strip()
    if not encoded:
        return None
    try:
        return decode_password_hash(encoded)
    except PasswordDecodeError as exc:
        raise FatalConfigError(f"decode password error for server password: {exc}") from exc


def parse_config(data: dict[str, Any], *, logger: logging.Logger | None = None) -> IRCdConfig:
    if not isinstance(data, dict):
        raise ConfigSchemaError("configuration document must be an object")
    log = logger or get_logger("ircdconf.config")

    network_raw = _section(data, "network")
    server_raw = _section(data, "server")
    datastore_raw = _section(data, "datastore")
    limits_raw = _section(data, "limits")

    network_name = str(network_raw.get("name") or "").strip()
    if not network_name:
        raise ConfigValidationError("network name missing")
    server_name = str(server_raw.get("name") or "").strip()
    if not server_name:
        raise ConfigValidationError("server name missing")
    if not is_hostname(server_name):
        raise ConfigValidationError("server name must match the format of a hostname")
    datastore_path = str(datastore_raw.get("path") or "").strip()
    if not datastore_path:
        raise ConfigValidationError("datastore path missing")
    listen = _parse_string_list(server_raw.get("listen"), field_name="server.listen")
    if not listen:
        raise ConfigValidationError("server listening addresses missing")

    limits = _parse_limits(limits_raw)
    if (
        limits.nicklen < 1
        or limits.channellen < 2
        or limits.awaylen < 1
        or limits.kicklen < 1
        or limits.topiclen < 1
    ):
        raise ConfigValidationError("limits aren't set up properly, check them and make them sane")

    sts = _parse_sts(_section(server_raw, "sts", label="server.sts"))

    ip_cloaking = _parse_ip_cloaking(_section(network_raw, "ip-cloaking", label="network.ip-cloaking"))
    if ip_cloaking.enabled:
        try:
            cloak_ipv4(CLOAKING_PROBE_ADDRESS, ip_cloaking)
        except CloakingError as exc:
            raise ConfigValidationError(f"IPv4 cloaking config is incorrect: {exc}") from exc

    connection_throttle = _parse_connection_throttle(
        _section(server_raw, "connection-throttling", label="server.connection-throttling")
    )

    if limits.linelen.tags < MIN_LINE_LENGTH or limits.linelen.rest < MIN_LINE_LENGTH:
        raise ConfigValidationError(
            f"line lengths must be {MIN_LINE_LENGTH} or greater (check the linelen section under limits)"
        )

    logging_directives = normalize_logging_directives(parse_raw_logging_directives(data.get("logging")))

    max_sendq_raw = server_raw.get("max-sendq")
    max_sendq_text = DEFAULT_MAX_SENDQ if max_sendq_raw is None else str(max_sendq_raw)
    try:
        max_sendq = ByteSize.parse(max_sendq_text)
    except ConfigParseError as exc:
        raise type(exc)(f"could not parse maximum SendQ size: {exc}", exc.raw) from exc

    rest_api_raw = _section(server_raw, "rest-api", label="server.rest-api")
    tls_listener_configs = tuple(parse_tls_listeners(server_raw.get("tls-listeners")))
    server = ServerConfig(
        name=server_name,
        listen=listen,
        max_sendq=max_sendq,
        password=_decode_server_password(server_raw.get("password")),
        ws_listen=str(server_raw.get("ws-listen") or "").strip(),
        tls_listeners=tls_listener_configs,
        sts=sts,
        rest_api=RestAPIConfig(
            enabled=_parse_bool_value(rest_api_raw.get("enabled"), field_name="server.rest-api.enabled", default=False),
            listen=str(rest_api_raw.get("listen") or "").strip(),
        ),
        check_ident=_parse_bool_value(server_raw.get("check-ident"), field_name="server.check-ident", default=False),
        motd=str(server_raw.get("motd") or ""),
        connection_limits=_parse_connection_limits(
            _section(server_raw, "connection-limits", label="server.connection-limits")
        ),
        connection_throttle=connection_throttle,
    )

    channels_registration_raw = _section(_section(data, "channels"), "registration", label="channels.registration")
    channels = ChannelsConfig(
        registration_enabled=_parse_bool_value(
            channels_registration_raw.get("enabled"),
            field_name="channels.registration.enabled",
            default=False,
        ),
    )

    oper_classes = resolve_oper_classes(parse_raw_oper_classes(data.get("oper-classes")))
    operators = bind_operators(parse_raw_operators(data.get("opers")), oper_classes)
    tls_listeners = build_tls_listeners(tls_listener_configs, log)

    return IRCdConfig(
        network=NetworkConfig(name=network_name, ip_cloaking=ip_cloaking),
        server=server,
        datastore=DatastoreConfig(path=datastore_path),
        accounts=_parse_accounts(_section(data, "accounts")),
        channels=channels,
        limits=limits,
        logging=logging_directives,
        oper_classes=oper_classes,
        operators=operators,
        tls_listeners=tls_listeners,
    )
