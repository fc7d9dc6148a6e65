"""String Type

Features:
- Length limits counted in characters or encoded bytes
- Pattern, alphanum, token, hex, base64, GUID, ISO date/duration and credit card checks
- Conversions (normalize, case, trim, replacements, truncate) applied during coercion
- '' is denied by default and reported as any.empty
"""
from __future__ import annotations

import re
import unicodedata
from typing import Any

from joist.errors import ErrorCode, Ok, assert_schema

from ..coercion import ISO8601ToDateTime
from ..common import UNDEFINED, compare, is_limit
from ..ref import Reference
from ..registry import Coercion, RuleArg, RuleDefinition
from ..schema import Schema
from ..validator import Outcome
from ..values import Values
from .any import LIMIT_ARG, LIMIT_OPERATORS, define

_ALPHANUM = re.compile(r"^[a-zA-Z0-9]+$")
_TOKEN = re.compile(r"^\w+$", re.ASCII)
_HEX = re.compile(r"^[a-f0-9]+$", re.IGNORECASE)
_GUID = re.compile(r"^([\[{(]?)[0-9a-f]{8}(-?)[0-9a-f]{4}\2([0-9a-f])[0-9a-f]{3}\2[0-9a-f]{4}\2[0-9a-f]{12}([\]})]?)$",
    re.IGNORECASE)
_GUID_BRACKETS = {"": "", "{": "}", "[": "]", "(": ")"}
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}(?:[T ]\d{2}:\d{2}(?::\d{2}(?:[.,]\d+)?)?(?:[Zz]|[+-]\d{2}:?\d{2})?)?$")
_ISO_DURATION = re.compile(
    r"^[-+]?P(?!$)(?:\d+(?:[.,]\d+)?Y)?(?:\d+(?:[.,]\d+)?M)?(?:\d+(?:[.,]\d+)?W)?(?:\d+(?:[.,]\d+)?D)?"
    r"(?:T(?=\d)(?:\d+(?:[.,]\d+)?H)?(?:\d+(?:[.,]\d+)?M)?(?:\d+(?:[.,]\d+)?S)?)?$")
_BASE64 = {
    (True, False): re.compile(r"^(?:[A-Za-z0-9+/]{4})*(?:[A-Za-z0-9+/]{2}==|[A-Za-z0-9+/]{3}=)?$"),
    (False, False): re.compile(r"^(?:[A-Za-z0-9+/]{4})*(?:[A-Za-z0-9+/]{2}(?:==)?|[A-Za-z0-9+/]{3}=?)?$"),
    (True, True): re.compile(r"^(?:[A-Za-z0-9\-_]{4})*(?:[A-Za-z0-9\-_]{2}==|[A-Za-z0-9\-_]{3}=)?$"),
    (False, True): re.compile(r"^(?:[A-Za-z0-9\-_]{4})*(?:[A-Za-z0-9\-_]{2}(?:==)?|[A-Za-z0-9\-_]{3}=?)?$"),
}
_NORMALIZATION_FORMS = ("NFC", "NFD", "NFKC", "NFKD")
_ENCODINGS = ("utf-8", "utf8", "ascii", "latin-1", "latin1", "utf-16", "utf-16le", "utf-16be", "utf-32")


def _is_pattern(value: Any) -> bool:
    return isinstance(value, re.Pattern)


def _iso_date(value: str) -> str | None:
    """Normalized ISO string of value, or None when it is not an ISO date."""
    if not _ISO_DATE.match(value): return None
    match ISO8601ToDateTime()(value):
        case Ok(parsed):
            text = parsed.isoformat(timespec="milliseconds")
            return text[:-6] + "Z" if text.endswith("+00:00") else text
    return None


class StringSchema(Schema):
    type = "string"

    def _init(self) -> None:
        self._invalids = Values([""])
        self._terms["replacements"] = ()

    # Length

    def min(self, limit: int | Reference, encoding: str | None = None) -> StringSchema:
        return self._length("min", limit, encoding)

    def max(self, limit: int | Reference, encoding: str | None = None) -> StringSchema:
        return self._length("max", limit, encoding)

    def length(self, limit: int | Reference, encoding: str | None = None) -> StringSchema:
        return self._length("length", limit, encoding)

    def _length(self, name: str, limit: Any, encoding: str | None) -> StringSchema:
        assert_schema(encoding is None or encoding.lower() in _ENCODINGS, "Invalid encoding:", encoding)
        return self._add_rule(name, method="length", args={"limit": limit, "encoding": encoding},
            operator=LIMIT_OPERATORS[name])

    # Formats

    def pattern(self, regex: re.Pattern | str, name: str | None = None, invert: bool = False) -> StringSchema:
        """Require (or with ``invert`` forbid) a regex match anywhere in the value."""
        if isinstance(regex, str): regex = re.compile(regex)
        assert_schema(_is_pattern(regex), "regex must be a compiled pattern")
        assert_schema(name is None or isinstance(name, str), "name must be a string")
        return self._add_rule("pattern", args={"regex": regex, "name": name, "invert": bool(invert)})

    regex = pattern

    def alphanum(self) -> StringSchema:
        return self._add_rule("alphanum")

    def token(self) -> StringSchema:
        return self._add_rule("token")

    def hex(self, byte_aligned: bool = False) -> StringSchema:
        return self._add_rule("hex", args={"byte_aligned": bool(byte_aligned)})

    def base64(self, padding_required: bool = True, url_safe: bool = False) -> StringSchema:
        return self._add_rule("base64", args={"padding_required": bool(padding_required), "url_safe": bool(url_safe)})

    def guid(self, version: str | list[str] | None = None) -> StringSchema:
        """GUID/UUID, optionally restricted to versions (``"uuidv4"``)."""
        versions = None
        if version is not None:
            versions = [version] if isinstance(version, str) else list(version)
            for item in versions:
                assert_schema(re.fullmatch(r"uuidv[1-8]", str(item).lower()), "Invalid guid version:", item)
            versions = [v.lower() for v in versions]
        return self._add_rule("guid", args={"version": versions})

    uuid = guid

    def iso_date(self) -> StringSchema:
        return self._add_rule("iso_date")

    def iso_duration(self) -> StringSchema:
        return self._add_rule("iso_duration")

    def credit_card(self) -> StringSchema:
        return self._add_rule("credit_card")

    # Conversions

    def case(self, direction: str) -> StringSchema:
        assert_schema(direction in ("lower", "upper"), "Invalid case:", direction)
        return self._add_rule("case", args={"direction": direction})

    def lowercase(self) -> StringSchema:
        return self.case("lower")

    def uppercase(self) -> StringSchema:
        return self.case("upper")

    def trim(self, enabled: bool = True) -> StringSchema:
        assert_schema(isinstance(enabled, bool), "enabled must be a boolean")
        return self._add_rule("trim", args={"enabled": enabled})

    def normalize(self, form: str = "NFC") -> StringSchema:
        assert_schema(form in _NORMALIZATION_FORMS, "normalization form must be one of", ", ".join(_NORMALIZATION_FORMS))
        return self._add_rule("normalize", args={"form": form})

    def replace(self, pattern: re.Pattern | str, replacement: str) -> StringSchema:
        """Substitute every match of pattern during coercion (``\\1`` group syntax)."""
        if isinstance(pattern, str): pattern = re.compile(re.escape(pattern))
        assert_schema(_is_pattern(pattern), "pattern must be a compiled pattern")
        assert_schema(isinstance(replacement, str), "replacement must be a string")
        return self._add_terms("replacements", ({"pattern": pattern, "replacement": replacement},))

    def truncate(self, enabled: bool = True) -> StringSchema:
        """Cut values longer than the ``max`` limit instead of failing."""
        return self._set_flag("truncate", True if enabled else UNDEFINED)

    def insensitive(self) -> StringSchema:
        return self._set_flag("insensitive", True)


# ============================================================================
# Coercion and base check
# ============================================================================

def _coerce(value: str, helpers) -> Outcome | None:
    schema = helpers.schema
    normalize = schema._rules_named("normalize")
    if normalize: value = unicodedata.normalize(normalize[-1].args["form"], value)

    case = schema._rules_named("case")
    if case: value = value.upper() if case[-1].args["direction"] == "upper" else value.lower()

    trim = schema._rules_named("trim")
    if trim and trim[-1].args["enabled"]: value = value.strip()

    for replacement in schema._terms.get("replacements") or ():
        value = replacement["pattern"].sub(replacement["replacement"], value)

    hex_rule = schema._rules_named("hex")
    if hex_rule and hex_rule[-1].args["byte_aligned"] and len(value) % 2: value = "0" + value

    if schema._rules_named("iso_date"):
        normalized = _iso_date(value)
        if normalized is not None: value = normalized

    if schema._flags.get("truncate"):
        maximum = schema._rules_named("max")
        if maximum:
            limit = maximum[-1].args["limit"]
            if isinstance(limit, Reference): limit = limit.resolve(value, helpers.state, helpers.prefs)
            if is_limit(limit): value = value[:limit]

    return Outcome(value)


def _base(value: Any, helpers) -> Outcome | None:
    if isinstance(value, str): return None
    return Outcome(value, [helpers.error(ErrorCode.STRING_BASE)])


# ============================================================================
# Rules
# ============================================================================

def _length(value: str, helpers, args: dict, rule) -> Any:
    encoding = args.get("encoding")
    size = len(value.encode(encoding)) if encoding else len(value)
    if compare(size, args["limit"], rule.operator): return value
    return helpers.error(f"string.{rule.name}", {"limit": args["limit"], "encoding": encoding})


def _pattern(value: str, helpers, args: dict, rule) -> Any:
    regex = args["regex"]
    if bool(regex.search(value)) != args["invert"]: return value
    code = "string.pattern" + (".invert" if args["invert"] else "") + (".name" if args["name"] else ".base")
    return helpers.error(code, {"name": args["name"], "regex": regex.pattern})


def _matcher(regex: re.Pattern, code: ErrorCode):
    def validate(value: str, helpers, args: dict, rule) -> Any:
        if regex.match(value): return value
        return helpers.error(code)
    return validate


def _hex(value: str, helpers, args: dict, rule) -> Any:
    if not _HEX.match(value): return helpers.error(ErrorCode.STRING_HEX)
    if args["byte_aligned"] and len(value) % 2: return helpers.error(ErrorCode.STRING_HEX_ALIGN)
    return value


def _base64(value: str, helpers, args: dict, rule) -> Any:
    if _BASE64[(args["padding_required"], args["url_safe"])].match(value): return value
    return helpers.error(ErrorCode.STRING_BASE64)


def _guid(value: str, helpers, args: dict, rule) -> Any:
    match = _GUID.match(value)
    if match and _GUID_BRACKETS.get(match.group(1)) == match.group(4):
        versions = args.get("version")
        if not versions or f"uuidv{match.group(3)}" in versions: return value
    return helpers.error(ErrorCode.STRING_GUID)


def _iso_date_rule(value: str, helpers, args: dict, rule) -> Any:
    if _iso_date(value) is not None: return value
    return helpers.error(ErrorCode.STRING_ISO_DATE)


def _credit_card(value: str, helpers, args: dict, rule) -> Any:
    if not value.isdigit(): return helpers.error(ErrorCode.STRING_CREDIT_CARD)
    total = 0
    for i, char in enumerate(reversed(value)):
        digit = int(char) * (2 if i % 2 else 1)
        total += digit - 9 if digit > 9 else digit
    if total % 10 == 0 and total > 0: return value
    return helpers.error(ErrorCode.STRING_CREDIT_CARD)


def _case(value: str, helpers, args: dict, rule) -> Any:
    upper = args["direction"] == "upper"
    if value == (value.upper() if upper else value.lower()): return value
    return helpers.error(ErrorCode.STRING_UPPERCASE if upper else ErrorCode.STRING_LOWERCASE)


def _trim(value: str, helpers, args: dict, rule) -> Any:
    if not args["enabled"] or value == value.strip(): return value
    return helpers.error(ErrorCode.STRING_TRIM)


def _normalize(value: str, helpers, args: dict, rule) -> Any:
    if value == unicodedata.normalize(args["form"], value): return value
    return helpers.error(ErrorCode.STRING_NORMALIZE, {"form": args["form"]})


STRING_RULES: dict[str, RuleDefinition] = {
    "length": RuleDefinition("length", _length, args=(LIMIT_ARG, RuleArg("encoding", ref=False))),
    "pattern": RuleDefinition("pattern", _pattern, args=(RuleArg("regex", _is_pattern, "must be a compiled pattern", ref=False),),
        multi=True),
    "alphanum": RuleDefinition("alphanum", _matcher(_ALPHANUM, ErrorCode.STRING_ALPHANUM)),
    "token": RuleDefinition("token", _matcher(_TOKEN, ErrorCode.STRING_TOKEN)),
    "hex": RuleDefinition("hex", _hex),
    "base64": RuleDefinition("base64", _base64),
    "guid": RuleDefinition("guid", _guid),
    "iso_date": RuleDefinition("iso_date", _iso_date_rule),
    "iso_duration": RuleDefinition("iso_duration", _matcher(_ISO_DURATION, ErrorCode.STRING_ISO_DURATION)),
    "credit_card": RuleDefinition("credit_card", _credit_card),
    "case": RuleDefinition("case", _case, convert=True),
    "trim": RuleDefinition("trim", _trim, convert=True),
    "normalize": RuleDefinition("normalize", _normalize, convert=True),
}

STRING_MESSAGES = {
    ErrorCode.STRING_BASE: '"{label}" must be a string',
    ErrorCode.STRING_MIN: '"{label}" length must be at least {limit} characters long',
    ErrorCode.STRING_MAX: '"{label}" length must be less than or equal to {limit} characters long',
    ErrorCode.STRING_LENGTH: '"{label}" length must be {limit} characters long',
    ErrorCode.STRING_PATTERN_BASE: '"{label}" with value "{value}" fails to match the required pattern: {regex}',
    ErrorCode.STRING_PATTERN_NAME: '"{label}" with value "{value}" fails to match the {name} pattern',
    ErrorCode.STRING_PATTERN_INVERT_BASE: '"{label}" with value "{value}" matches the inverted pattern: {regex}',
    ErrorCode.STRING_PATTERN_INVERT_NAME: '"{label}" with value "{value}" matches the inverted {name} pattern',
    ErrorCode.STRING_ALPHANUM: '"{label}" must only contain alpha-numeric characters',
    ErrorCode.STRING_TOKEN: '"{label}" must only contain alpha-numeric and underscore characters',
    ErrorCode.STRING_HEX: '"{label}" must only contain hexadecimal characters',
    ErrorCode.STRING_HEX_ALIGN: '"{label}" hex decoded representation must be byte aligned',
    ErrorCode.STRING_BASE64: '"{label}" must be a valid base64 string',
    ErrorCode.STRING_GUID: '"{label}" must be a valid GUID',
    ErrorCode.STRING_ISO_DATE: '"{label}" must be in iso format',
    ErrorCode.STRING_ISO_DURATION: '"{label}" must be a valid ISO 8601 duration',
    ErrorCode.STRING_CREDIT_CARD: '"{label}" must be a credit card',
    ErrorCode.STRING_LOWERCASE: '"{label}" must only contain lowercase characters',
    ErrorCode.STRING_UPPERCASE: '"{label}" must only contain uppercase characters',
    ErrorCode.STRING_TRIM: '"{label}" must not have leading or trailing whitespace',
    ErrorCode.STRING_NORMALIZE: '"{label}" must be unicode normalized in the {form} form',
}

def _describe(schema: StringSchema, codec) -> dict:
    replacements = schema._terms["replacements"]
    if not replacements: return {}
    return {"replacements": [{"pattern": codec.encode(item["pattern"]), "replacement": item["replacement"]}
        for item in replacements]}


def _build(obj: StringSchema, desc: dict, codec) -> StringSchema:
    for item in desc.get("replacements", ()):
        obj = obj.replace(codec.decode(item["pattern"]), item["replacement"])
    return obj


define("string", StringSchema, base_check=_base, coerce=Coercion((str,), _coerce), rules=STRING_RULES,
    messages=STRING_MESSAGES, build=_build, describe=_describe)
