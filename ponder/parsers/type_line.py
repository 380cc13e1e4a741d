"""
Type line parser.

Splits a free-text type line such as "Legendary Creature — Elf Druid"
into supertype, main types and subtypes.
"""

from ponder.models.card import TypeLine

SUBTYPE_DELIMITER = " — "

SUPERTYPES = frozenset({"Legendary", "Basic", "Ongoing", "Snow", "World", "Hero", "Elite"})


def is_token_type_line(type_line: str | None) -> bool:
    """Check whether a type line describes a token rather than a real card."""
    if not type_line:
        return False
    return "Token" in type_line.split()


def parse_type_line(type_line: str | None) -> TypeLine:
    """
    Parse a type line into its taxonomy.

    Only the first word can be a supertype, and only if it is one of
    SUPERTYPES. Token type lines yield an empty result.

    Examples:
        "Legendary Creature — Elf Druid" -> ("Legendary", ("Creature",), ("Elf", "Druid"))
        "Instant" -> (None, ("Instant",), ())
    """
    if not type_line or not type_line.strip() or is_token_type_line(type_line):
        return TypeLine()

    if SUBTYPE_DELIMITER in type_line:
        type_part, subtype_part = type_line.split(SUBTYPE_DELIMITER, 1)
    else:
        type_part, subtype_part = type_line, ""

    words = type_part.split()
    supertype = None
    if words and words[0] in SUPERTYPES:
        supertype = words.pop(0)

    return TypeLine(
        supertype=supertype,
        types=tuple(words),
        subtypes=tuple(subtype_part.split()),
    )
