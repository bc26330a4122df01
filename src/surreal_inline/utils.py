import re

# Shared identifier validation regex, used for table, field and column names.
SAFE_IDENTIFIER_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

_CAMEL_BOUNDARY_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def validate_identifier(name: str, context: str = "identifier") -> None:
    """Validate that a string is a safe SurrealQL identifier.

    Raises:
        ValueError: If the name contains characters outside ``[a-zA-Z0-9_]``
            or does not start with a letter/underscore.
    """
    if not SAFE_IDENTIFIER_RE.match(name):
        raise ValueError(
            f"Invalid {context}: {name!r}. "
            "Only letters, digits, and underscores are allowed "
            "(must start with a letter or underscore)."
        )


def escape_single_quotes(value: str) -> str:
    """Escape single quotes for embedding in SurrealQL string literals.

    SurrealDB uses doubled single quotes (``''``) for escaping inside
    single-quoted strings.
    """
    return value.replace("'", "''")


def table_name_for(entity_name: str) -> str:
    """
    Derive a default table name from an entity name.

    Examples:
        table_name_for("Vendor")         # "vendor"
        table_name_for("PurchaseOrder")  # "purchase_order"
        table_name_for("Acme.Vendor")    # "vendor"
    """
    base = entity_name.rsplit(".", 1)[-1]
    return _CAMEL_BOUNDARY_RE.sub("_", base).lower()
