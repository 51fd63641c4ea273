"""
Enum Utilities for VARCHAR-based Status Fields

STORAGE STANDARD:
━━━━━━━━━━━━━━━━━
• Database: VARCHAR(50) - NOT a database ENUM
• SQLAlchemy: String(50) (or StatusType for legacy-aware columns)
• Pydantic: Python Enum for API validation
• API Response: string value

LEGACY VALUES:
━━━━━━━━━━━━━━
Older rows carry mixed-case status strings ("Pending", "In Progress",
"Completed"). They are mapped onto canonical values once, when the row is
loaded (see printshop.db_types.StatusType). Queries that filter by status
must match the canonical value AND its legacy spellings, use
expand_with_aliases() for that.

USAGE PATTERNS:
━━━━━━━━━━━━━━━
1. Normalize a loaded value:
   normalize_legacy("In Progress", TASK_STATUS_ALIASES)  -> "IN_PROGRESS"

2. Filter including legacy rows:
   Task.status.in_(expand_with_aliases(TaskStatus.COMPLETED, TASK_STATUS_ALIASES))

3. Accept case-insensitive input in schemas:
   normalize_method = create_lowercase_validator('payment_method', VALID_PAYMENT_METHODS)
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Set, Type


def get_enum_value(value: Any) -> str:
    """
    Safely get string value from an enum or string.

    Examples:
        >>> get_enum_value(TaskStatus.INVOICED)
        'INVOICED'
        >>> get_enum_value("INVOICED")
        'INVOICED'
        >>> get_enum_value(None)
        None
    """
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    return str(value)


def enum_values(enum_class: Type[Enum]) -> list:
    """Get all values from an enum class."""
    return [e.value for e in enum_class]


def enum_comment(enum_class: Type[Enum]) -> str:
    """Comma-separated valid values, for VARCHAR column comments."""
    return ", ".join(enum_values(enum_class))


# =============================================================================
# LEGACY ALIASES
# =============================================================================

def normalize_legacy(value: Any, aliases: Dict[str, str]) -> Any:
    """
    Map a legacy spelling onto its canonical value.

    Unknown values are returned unchanged.

    Examples:
        >>> normalize_legacy("Pending", {"Pending": "INVOICED"})
        'INVOICED'
        >>> normalize_legacy("INVOICED", {"Pending": "INVOICED"})
        'INVOICED'
    """
    if value is None:
        return None
    value = get_enum_value(value)
    return aliases.get(value, value)


def expand_with_aliases(value: Any, aliases: Dict[str, str]) -> List[str]:
    """
    Canonical value plus every legacy spelling that maps onto it.

    Examples:
        >>> expand_with_aliases("COMPLETED", {"Completed": "COMPLETED"})
        ['COMPLETED', 'Completed']
    """
    canonical = normalize_legacy(value, aliases)
    return [canonical] + [legacy for legacy, target in aliases.items() if target == canonical]


# =============================================================================
# CASE NORMALIZATION FOR PYDANTIC SCHEMAS
# =============================================================================

def normalize_to_lowercase(
    value: Any,
    valid_values: Set[str],
    aliases: Optional[Dict[str, str]] = None,
) -> Any:
    """
    Normalize a string value to lowercase if it's a valid value.

    Returns the original value otherwise so Pydantic raises the
    validation error.

    Examples:
        >>> normalize_to_lowercase('CASH', {'cash', 'card'})
        'cash'
        >>> normalize_to_lowercase('credit', {'credits'}, {'credit': 'credits'})
        'credits'
    """
    if value is None or not isinstance(value, str):
        return value
    lower_v = value.strip().lower()
    if aliases and lower_v in aliases:
        lower_v = aliases[lower_v]
    if lower_v in valid_values:
        return lower_v
    return value


def create_lowercase_validator(
    field_name: str,
    valid_values: Set[str],
    aliases: Optional[Dict[str, str]] = None,
) -> classmethod:
    """
    Create a Pydantic field_validator that normalizes values to lowercase.

    Usage:
        class MySchema(BaseModel):
            payment_method: PaymentMethod

            normalize_method = create_lowercase_validator('payment_method', VALID_PAYMENT_METHODS)
    """
    from pydantic import field_validator

    @field_validator(field_name, mode='before')
    @classmethod
    def validate(cls, v):
        return normalize_to_lowercase(v, valid_values, aliases)

    return validate


# =============================================================================
# PRE-DEFINED VALID VALUE SETS
# =============================================================================

VALID_PAYMENT_METHODS = {"cash", "card", "cheque", "credits", "online"}

PAYMENT_METHOD_ALIASES = {"credit": "credits", "check": "cheque"}

VALID_BRANCH_TYPES = {"main", "sub"}
