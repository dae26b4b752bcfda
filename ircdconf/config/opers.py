"""Operator-class resolution and operator binding."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

from ircdconf.config.errors import (
    ConfigSchemaError,
    DuplicateOperatorError,
    FatalConfigError,
    MissingBaseClassError,
    OperClassCycleError,
    OperatorNameError,
    UnknownOperClassError,
)
from ircdconf.core.identifiers import CasefoldError, casefold_name
from ircdconf.core.passwords import PasswordDecodeError, decode_password_hash


_VOWELS = frozenset("aeiou")


@dataclass(frozen=True, slots=True)
class RawOperClass:
    name: str
    title: str = ""
    whois_line: str = ""
    extends: str = ""
    capabilities: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class OperClass:
    name: str
    title: str
    whois_line: str
    capabilities: frozenset[str]

    def has_capability(self, capability: str) -> bool:
        return capability in self.capabilities


@dataclass(frozen=True, slots=True)
class RawOperator:
    name: str
    class_name: str
    vhost: str = ""
    whois_line: str = ""
    password: str = ""
    modes: str = ""


@dataclass(frozen=True, slots=True)
class Operator:
    name: str
    oper_class: OperClass
    whois_line: str
    vhost: str
    password: bytes = field(repr=False)
    modes: str


def default_whois_line(title: str) -> str:
    article = "an" if title[:1].lower() in _VOWELS else "a"
    return f"is {article} {title}"


def parse_raw_oper_classes(raw: Any) -> dict[str, RawOperClass]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigSchemaError("'oper-classes' must be an object")
    classes: dict[str, RawOperClass] = {}
    for name, item in raw.items():
        if not isinstance(item, dict):
            raise ConfigSchemaError(f"oper class '{name}' must be an object")
        capabilities = item.get("capabilities", []) or []
        if not isinstance(capabilities, list):
            raise ConfigSchemaError(f"oper class '{name}' capabilities must be a list")
        classes[str(name)] = RawOperClass(
            name=str(name),
            title=str(item.get("title") or ""),
            whois_line=str(item.get("whois-line") or ""),
            extends=str(item.get("extends") or ""),
            capabilities=tuple(str(capability) for capability in capabilities),
        )
    return classes


def parse_raw_operators(raw: Any) -> dict[str, RawOperator]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigSchemaError("'opers' must be an object")
    operators: dict[str, RawOperator] = {}
    for name, item in raw.items():
        if not isinstance(item, dict):
            raise ConfigSchemaError(f"oper '{name}' must be an object")
        operators[str(name)] = RawOperator(
            name=str(name),
            class_name=str(item.get("class") or ""),
            vhost=str(item.get("vhost") or ""),
            whois_line=str(item.get("whois-line") or ""),
            password=str(item.get("password") or ""),
            modes=str(item.get("modes") or ""),
        )
    return operators


def resolve_oper_classes(raw_classes: Mapping[str, RawOperClass]) -> Mapping[str, OperClass]:
    """Flatten the ``extends`` hierarchy into one capability set per class.

    Classes may be listed in any order. Each pass resolves every class whose
    base is already resolved; a pass that resolves nothing new means the
    remaining classes can never resolve.
    """
    resolved: dict[str, OperClass] = {}
    previous_size = -1
    while True:
        if len(resolved) == previous_size:
            raise OperClassCycleError()
        previous_size = len(resolved)

        deferred = False
        for name, info in raw_classes.items():
            if name in resolved:
                continue
            base: OperClass | None = None
            if info.extends:
                base = resolved.get(info.extends)
                if base is None:
                    if info.extends not in raw_classes:
                        raise MissingBaseClassError(name, info.extends)
                    deferred = True
                    continue

            capabilities = set(base.capabilities) if base is not None else set()
            capabilities.update(info.capabilities)
            resolved[name] = OperClass(
                name=name,
                title=info.title,
                whois_line=info.whois_line or default_whois_line(info.title),
                capabilities=frozenset(capabilities),
            )

        if not deferred:
            break
    return MappingProxyType(resolved)


def bind_operators(
    raw_operators: Mapping[str, RawOperator],
    oper_classes: Mapping[str, OperClass],
) -> Mapping[str, Operator]:
    operators: dict[str, Operator] = {}
    for raw_name, info in raw_operators.items():
        try:
            name = casefold_name(raw_name)
        except CasefoldError as exc:
            raise OperatorNameError(f"could not casefold oper name '{raw_name}': {exc}") from exc
        if name in operators:
            raise DuplicateOperatorError(f"oper '{raw_name}' duplicates another oper named '{name}'")

        try:
            password = decode_password_hash(info.password)
        except PasswordDecodeError as exc:
            raise FatalConfigError(f"decode password error for oper '{name}': {exc}") from exc

        oper_class = oper_classes.get(info.class_name)
        if oper_class is None:
            raise UnknownOperClassError(name, info.class_name)

        operators[name] = Operator(
            name=name,
            oper_class=oper_class,
            whois_line=info.whois_line or oper_class.whois_line,
            vhost=info.vhost,
            password=password,
            modes=info.modes.strip(),
        )
    return MappingProxyType(operators)
