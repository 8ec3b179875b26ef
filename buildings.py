"""Building records and registry loading for production chain analysis."""

import json
import logging
from dataclasses import dataclass
from typing import Iterable

_LOGGER = logging.getLogger("chaingraphery")


@dataclass(frozen=True)
class ResourceAmount:
    """a named resource and its per-cycle quantity"""

    name: str
    quantity: float


@dataclass(frozen=True)
class Building:
    """a production building: what it consumes and produces per cycle"""

    name: str
    inputs: tuple[ResourceAmount, ...] = ()
    outputs: tuple[ResourceAmount, ...] = ()


def resource_key(name: str) -> str:
    """Normalize a resource name for producer/consumer matching.

    Precondition:
        name is a string

    Postcondition:
        returns name with surrounding whitespace removed, case-folded
        two names match iff their keys are equal

    Args:
        name: resource name as written on a building

    Returns:
        comparison key for the resource
    """
    return name.strip().casefold()


def make_building(
    name: str,
    inputs: Iterable[tuple[str, float]] = (),
    outputs: Iterable[tuple[str, float]] = (),
) -> Building:
    """Build a Building from (resource, quantity) pairs.

    Precondition:
        inputs and outputs are iterables of (resource_name, quantity) pairs

    Postcondition:
        returns a Building with the pairs converted to ResourceAmounts
        order of inputs and outputs is preserved
        quantities are converted to float

    Args:
        name: building name
        inputs: consumed resources per cycle
        outputs: produced resources per cycle

    Returns:
        new Building
    """
    return Building(
        name,
        tuple(ResourceAmount(resource, float(quantity)) for resource, quantity in inputs),
        tuple(ResourceAmount(resource, float(quantity)) for resource, quantity in outputs),
    )


def _parse_quantity(value, building_name: str, resource_name: str) -> float:
    """Convert a raw quantity to a positive float.

    Raises:
        ValueError: if value is not numeric or not positive
    """
    if isinstance(value, bool):
        raise ValueError(
            f"Invalid quantity {value!r} for {resource_name} in '{building_name}'. Must be a number."
        )
    try:
        quantity = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            f"Invalid quantity {value!r} for {resource_name} in '{building_name}'. Must be a number."
        ) from exc
    if quantity <= 0:
        raise ValueError(
            f"Invalid quantity {value!r} for {resource_name} in '{building_name}'. Must be positive."
        )
    return quantity


def _parse_resource_entries(entries, building_name: str) -> tuple[ResourceAmount, ...]:
    """Convert a list of {"name", "quantity"} dicts into ResourceAmounts.

    Precondition:
        entries is a list of dicts (or None)

    Postcondition:
        returns tuple of ResourceAmount in list order
        resource names are stripped of surrounding whitespace

    Raises:
        ValueError: if an entry has no name or an invalid quantity
    """
    resources = []
    for entry in entries or []:
        resource_name = str(entry.get("name") or entry.get("resourceName") or "").strip()
        if not resource_name:
            raise ValueError(f"Resource without a name in '{building_name}'")
        quantity = _parse_quantity(entry.get("quantity"), building_name, resource_name)
        resources.append(ResourceAmount(resource_name, quantity))
    return tuple(resources)


def building_from_dict(data: dict) -> Building:
    """Create a Building from a parsed dataset record.

    Precondition:
        data is a dict in either the dataset shape
            {"name", "consumption": {"inputs": [...]}, "production": {"outputs": [...]}}
        or the flat shape
            {"name", "inputs": [...], "outputs": [...]}
        resource entries are {"name": str, "quantity": number}

    Postcondition:
        returns a Building with ordered inputs and outputs
        unrelated keys (construction cost, pollution, workers) are ignored

    Args:
        data: one building record

    Returns:
        Building built from the record

    Raises:
        ValueError: if the name is missing or any resource entry is invalid
    """
    name = str(data.get("name") or "").strip()
    if not name:
        raise ValueError(f"Building without a name: {data!r}")

    if "consumption" in data or "production" in data:
        raw_inputs = (data.get("consumption") or {}).get("inputs")
        raw_outputs = (data.get("production") or {}).get("outputs")
    else:
        raw_inputs = data.get("inputs")
        raw_outputs = data.get("outputs")

    return Building(
        name,
        _parse_resource_entries(raw_inputs, name),
        _parse_resource_entries(raw_outputs, name),
    )


def buildings_from_data(data) -> list[Building]:
    """Create the ordered registry from parsed JSON data.

    Precondition:
        data is either a list of building records or a dataset dict
        with a "buildings" list

    Postcondition:
        returns buildings in record order
        duplicate names are kept and logged as a warning

    Raises:
        ValueError: if the top-level shape is not recognized or a record is invalid
    """
    if isinstance(data, dict):
        records = data.get("buildings")
    else:
        records = data
    if not isinstance(records, list):
        raise ValueError("Invalid registry: expected a list of buildings or an object with a 'buildings' list")

    buildings = [building_from_dict(record) for record in records]

    seen = set()
    for building in buildings:
        if building.name in seen:
            _LOGGER.warning("Duplicate building name '%s'; the first occurrence wins producer lookups", building.name)
        seen.add(building.name)

    return buildings


def load_buildings_from_json(filepath: str) -> list[Building]:
    """Load an ordered building registry from a JSON file.

    Precondition:
        filepath is a readable path to a JSON file

    Postcondition:
        returns buildings in file order

    Args:
        filepath: path to the JSON file

    Returns:
        list of Building

    Raises:
        ValueError: if the file is not valid JSON or contains invalid records
    """
    with open(filepath, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in {filepath}: {exc}") from exc

    buildings = buildings_from_data(data)
    _LOGGER.info("Loaded %s buildings from %s", len(buildings), filepath)
    return buildings


def building_to_dict(building: Building) -> dict:
    """Convert a Building to the flat JSON shape."""
    return {
        "name": building.name,
        "inputs": [{"name": r.name, "quantity": r.quantity} for r in building.inputs],
        "outputs": [{"name": r.name, "quantity": r.quantity} for r in building.outputs],
    }


def save_buildings_to_json(filepath: str, buildings: list[Building]) -> None:
    """Save a building registry to a JSON file in the flat shape.

    Precondition:
        filepath is a writable path

    Postcondition:
        file contains {"buildings": [...]} in registry order
        load_buildings_from_json(filepath) returns an equal list

    Args:
        filepath: path to the JSON file
        buildings: registry to save
    """
    with open(filepath, "w", encoding="utf-8") as f:
        json.dump({"buildings": [building_to_dict(b) for b in buildings]}, f, indent=2)
    _LOGGER.info("Saved %s buildings to %s", len(buildings), filepath)
