"""Parser for ``crm configure show`` object definitions.

The crm shell prints a primitive as one logical line, wrapped with
backslash continuations:

    primitive vip ocf:heartbeat:IPaddr2 \\
        params ip=10.0.0.10 cidr_netmask=24 \\
        meta target-role=Started \\
        op monitor interval=10s timeout=20s

Only the agent and the ``params``/``meta`` attribute sets are reconciled.
Operations are write-only and are skipped here.
"""

from __future__ import annotations

import logging
import re
import shlex

from .errors import ObjectKindMismatchError, ParseError
from .models import AttributeNamespace, LiveState

logger = logging.getLogger(__name__)

PRIMITIVE_KEYWORD = "primitive"

# Keywords that open a clause in a primitive definition
SECTION_KEYWORDS = frozenset({"params", "meta", "op", "utilization"})

_CONTINUATION_PATTERN = re.compile(r"\\[ \t]*\r?\n[ \t]*")
_HEADER_PATTERN = re.compile(r"\A(?P<kind>\S+)(?:\s+(?P<id>\S+))?(?:\s+(?P<agent>\S+))?")


def _fold_continuations(raw_text: str) -> str:
    return _CONTINUATION_PATTERN.sub(" ", raw_text).strip()


def _tokenize(name: str, definition: str) -> list[str]:
    lexer = shlex.shlex(definition, posix=True)
    lexer.whitespace_split = True
    lexer.commenters = ""
    # crm prints backslashes literally, e.g. params path=C:\data
    lexer.escape = ""
    try:
        return list(lexer)
    except ValueError as e:
        raise ParseError(f"Cannot tokenize definition of '{name}': {e}") from e


def _section_pairs(
    name: str, tokens: list[str], namespace: AttributeNamespace
) -> dict[str, str]:
    """Collect key=value pairs from every clause opened by ``namespace``."""
    pairs: dict[str, str] = {}
    section: str | None = None

    for token in tokens:
        if token in SECTION_KEYWORDS:
            section = token
            continue
        if section != namespace.value:
            continue

        key, sep, value = token.partition("=")
        if not sep or not key:
            raise ParseError(
                f"Couldn't understand '{token}' in {namespace.value} section "
                f"of primitive '{name}'"
            )
        pairs[key] = value

    return pairs


def extract_attributes(
    name: str, definition: str, namespace: AttributeNamespace
) -> dict[str, str]:
    """Extract one attribute namespace from a primitive definition.

    Args:
        name: Primitive name, used in error messages.
        definition: Raw or folded definition text.
        namespace: Which clause to extract.

    Returns:
        Mapping of key to unquoted value; empty if the clause is absent.

    Raises:
        ParseError: If a clause contains a token that is not key=value.
    """
    tokens = _tokenize(name, _fold_continuations(definition))
    return _section_pairs(name, tokens[3:], namespace)


def parse_definition(name: str, raw_text: str | None, *, strict: bool = False) -> LiveState | None:
    """Parse the definition of a named CIB object into a LiveState.

    Args:
        name: Primitive name the definition was queried for.
        raw_text: Output of ``crm configure show <name>``; empty if missing.
        strict: Raise instead of returning None when the object is not a
            primitive with this name.

    Returns:
        LiveState for an existing primitive, None if it does not exist.

    Raises:
        ParseError: If the definition is a primitive but is malformed.
        ObjectKindMismatchError: In strict mode, if the object is not a primitive.
    """
    if raw_text is None or not raw_text.strip():
        return None

    logger.debug("CIB object definition", extra={"resource": name, "definition": raw_text})

    definition = _fold_continuations(raw_text)
    match = _HEADER_PATTERN.match(definition)
    if match is None:
        raise ParseError(f"Empty definition for '{name}'")

    kind = match.group("kind")
    object_id = match.group("id")
    agent = match.group("agent")

    if kind == PRIMITIVE_KEYWORD and object_id is None:
        raise ParseError(f"Primitive definition for '{name}' has no name")

    if kind != PRIMITIVE_KEYWORD or object_id != name:
        if strict:
            raise ObjectKindMismatchError(
                f"CIB object '{name}' is a '{kind} {object_id}', not a primitive"
            )
        logger.warning(
            "Resource was not a primitive",
            extra={"resource": name, "object_kind": kind},
        )
        return None

    if agent is None or agent in SECTION_KEYWORDS:
        raise ParseError(f"Primitive definition for '{name}' has no agent")

    tokens = _tokenize(name, definition)[3:]
    params = _section_pairs(name, tokens, AttributeNamespace.PARAMETER)
    meta = _section_pairs(name, tokens, AttributeNamespace.META)

    logger.debug(
        "Detected primitive attributes",
        extra={"resource": name, "agent": agent, "params": params, "meta": meta},
    )

    return LiveState(name=name, definition=raw_text, agent=agent, params=params, meta=meta)
