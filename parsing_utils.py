"""Utility functions for parsing resource quantities and inline building specifications."""

from buildings import Building, make_building


def _validate_has_separator(text: str, separator: str, expected: str) -> None:
    """Validate that text contains a separator.

    Precondition:
        text is a non-None string

    Postcondition:
        raises ValueError if separator not in text, otherwise returns None

    Args:
        text: string to validate
        separator: required separator
        expected: human readable description of the expected format

    Raises:
        ValueError: if text does not contain the separator
    """
    if separator not in text:
        raise ValueError(f"Invalid format: '{text}'. Expected '{expected}'")


def _parse_quantity_value(quantity_str: str, resource: str) -> float:
    """Convert quantity string to float.

    Precondition:
        quantity_str is a non-None string
        resource is a non-None string (used for error messages)

    Postcondition:
        returns float value of quantity_str, always > 0

    Raises:
        ValueError: if quantity_str cannot be converted to float or is not positive
    """
    try:
        quantity = float(quantity_str)
    except ValueError as exc:
        raise ValueError(
            f"Invalid quantity '{quantity_str}' for {resource}. Must be a number."
        ) from exc
    if quantity <= 0:
        raise ValueError(f"Invalid quantity '{quantity_str}' for {resource}. Must be positive.")
    return quantity


def parse_resource_quantity(text: str) -> tuple[str, float]:
    """Parse a 'Resource:Quantity' string into a (resource, quantity) tuple.

    Precondition:
        text is a non-None string in format "Resource:Quantity"

    Postcondition:
        returns (resource_name, quantity) where resource_name is trimmed
        and non-empty, and quantity is a positive float

    Args:
        text: String in format "Resource:Quantity" (e.g., "Iron Ore:2")

    Returns:
        Tuple of (resource_name, quantity)

    Raises:
        ValueError: If format is invalid, the resource name is blank,
            or quantity is not a positive number
    """
    _validate_has_separator(text, ":", "Resource:Quantity")
    resource, quantity_str = text.split(":", 1)
    resource = resource.strip()
    if not resource:
        raise ValueError(f"Invalid format: '{text.strip()}'. Resource name is empty")
    return resource, _parse_quantity_value(quantity_str.strip(), resource)


def parse_resource_list(text: str | None) -> list[tuple[str, float]]:
    """Parse comma-separated Resource:Quantity pairs into a list of tuples.

    Precondition:
        text is a string (may be empty, whitespace-only or None)

    Postcondition:
        returns list of (resource_name, quantity) tuples in input order
        empty/whitespace text returns empty list
        empty items (e.g. from a trailing comma) are skipped

    Raises:
        ValueError: if any item has invalid Resource:Quantity format
    """
    if not text or not text.strip():
        return []

    return [parse_resource_quantity(item) for item in text.split(",") if item.strip()]


def parse_building_spec(text: str) -> Building:
    """Parse an inline building specification.

    Precondition:
        text is a string in format "Name = In:Qty, In:Qty -> Out:Qty, Out:Qty"
        either resource list may be empty

    Postcondition:
        returns Building with name trimmed and resources in written order

    Args:
        text: e.g. "Steel Mill = Iron Ore:2, Coal:1 -> Steel:1"

    Returns:
        Building described by text

    Raises:
        ValueError: if '=' or '->' is missing, the name is blank,
            or a resource item is invalid
    """
    _validate_has_separator(text, "=", "Name = Inputs -> Outputs")
    name, recipe = text.split("=", 1)
    name = name.strip()
    if not name:
        raise ValueError(f"Invalid format: '{text}'. Building name is empty")

    _validate_has_separator(recipe, "->", "Name = Inputs -> Outputs")
    inputs_text, outputs_text = recipe.split("->", 1)

    return make_building(name, parse_resource_list(inputs_text), parse_resource_list(outputs_text))
