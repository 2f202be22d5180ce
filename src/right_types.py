"""
RightsLedger - Right Type Registry

The closed set of royalty income categories every split calculation is
keyed on, plus the small vocabularies that classify interested parties.

Adding a right type means updating this enum only; the split validator and
the inheritance resolver iterate over ``ALL_RIGHT_TYPES`` and never name a
right type directly.
"""

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

# =============================================================================
# Constants
# =============================================================================

FULL_SHARE = Decimal("100")
ZERO_SHARE = Decimal("0")


# =============================================================================
# Enums
# =============================================================================


class RightType(Enum):
    """Royalty right categories with independently tracked splits."""

    PERFORMANCE = "performance"
    MECHANICAL = "mechanical"
    PRINT = "print"
    SYNCH = "synch"
    GRAND_RIGHTS = "grand_rights"
    KARAOKE = "karaoke"

    @property
    def field_name(self) -> str:
        """Column name used for this right type on a party record."""
        return f"{self.value}_percentage"


ALL_RIGHT_TYPES: tuple[RightType, ...] = tuple(RightType)


class ControlledStatus(Enum):
    """Whether a party's interest is administered under this contract."""

    CONTROLLED = "C"
    NON_CONTROLLED = "NC"


class PartyType(Enum):
    """Role an interested party plays in the agreement."""

    WRITER = "writer"
    PRODUCER = "producer"
    PUBLISHER = "publisher"
    ADMINISTRATOR = "administrator"
    CO_PUBLISHER = "co_publisher"
    LABEL = "label"


# =============================================================================
# Helpers
# =============================================================================


def parse_right_type(value: Any) -> RightType:
    """
    Coerce a right type name into a RightType.

    Accepts the enum itself, its value ("performance") or the party column
    name ("performance_percentage").

    Raises:
        ValueError: If the name does not match a known right type
    """
    if isinstance(value, RightType):
        return value
    name = str(value).strip().lower()
    if name.endswith("_percentage"):
        name = name[: -len("_percentage")]
    return RightType(name)


def to_percentage(value: Any) -> Decimal:
    """
    Convert a raw percentage into a Decimal without range checking.

    None and empty strings read as 0. Floats go through ``str`` so that
    33.3 stays 33.3 rather than its binary expansion.

    Raises:
        ValueError: If the value is not a finite number
    """
    if value is None or value == "":
        return ZERO_SHARE
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except InvalidOperation as e:
            raise ValueError(f"Invalid percentage: {value!r}") from e
    # NaN and Infinity cannot be ordered against other shares
    if not result.is_finite():
        raise ValueError(f"Invalid percentage: {value!r}")
    return result


_TRUE_WORDS = frozenset(("true", "1", "yes", "y"))
_FALSE_WORDS = frozenset(("false", "0", "no", "n"))


def to_flag(value: Any, name: str = "flag") -> bool:
    """
    Read a yes/no field strictly.

    Accepts JSON booleans, 0 and 1, and the strings true/false, yes/no,
    y/n and 1/0 in any case.

    Raises:
        ValueError: For None or any other value
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    raise ValueError(f"Invalid value for {name}: {value!r}")


def empty_shares() -> dict[RightType, Decimal]:
    """A share map with every right type at 0%."""
    return {right_type: ZERO_SHARE for right_type in ALL_RIGHT_TYPES}
