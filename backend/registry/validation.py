"""Field-level request validation.

Validation never stops at the first problem: every violated field is
reported in a single `{field: message}` mapping so a client can fix a
payload in one round trip.
"""

from typing import Any, Dict, Iterable, Mapping, Type

from pydantic import BaseModel, ValidationError

# transport locations FastAPI prefixes onto error locations
_LOCATIONS = {"body", "query", "path", "header", "cookie"}
_PREFIXES = ("Value error, ", "Assertion failed, ")


def _field_key(loc: Iterable[Any]) -> str:
    parts = [str(p) for p in loc]
    if len(parts) > 1 and parts[0] in _LOCATIONS:
        parts = parts[1:]
    return ".".join(parts) or "__root__"


def _clean_message(msg: str) -> str:
    for prefix in _PREFIXES:
        if msg.startswith(prefix):
            return msg[len(prefix):]
    return msg


def violations_from_errors(errors: Iterable[Mapping[str, Any]]) -> Dict[str, str]:
    """Convert pydantic/FastAPI error entries into a field -> message map.

    Several messages for one field are joined with `"; "` in the order
    they were reported.
    """
    out: Dict[str, str] = {}
    for err in errors:
        if err.get("type") == "json_invalid":
            # the location of a JSON syntax error is a character offset
            key = "body"
        else:
            key = _field_key(err.get("loc", ()))
        msg = _clean_message(str(err.get("msg", "invalid value")))
        if key in out:
            if msg not in out[key].split("; "):
                out[key] = f"{out[key]}; {msg}"
        else:
            out[key] = msg
    return out


def collect_violations(shape: Type[BaseModel], payload: Any) -> Dict[str, str]:
    """Validate `payload` against `shape` and return every violation.

    Returns an empty dict when the payload is valid.
    """
    try:
        shape.model_validate(payload)
    except ValidationError as exc:
        return violations_from_errors(exc.errors())
    return {}
