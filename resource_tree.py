"""Production chain resolution: roots, supply chains, ratios and layout."""

import logging
import math
import re
from collections import defaultdict, deque
from dataclasses import dataclass, field

from frozendict import frozendict

from buildings import Building, resource_key

_LOGGER = logging.getLogger("chaingraphery")

# Layout spacing between buildings of a level, and between levels
DEFAULT_HORIZONTAL_SPACING = 150.0
DEFAULT_VERTICAL_SPACING = 200.0

MARKET = "market"
BUILDING = "building"


@dataclass(frozen=True)
class LayoutSpacing:
    """spacing constants for chain layout"""

    horizontal: float = DEFAULT_HORIZONTAL_SPACING
    vertical: float = DEFAULT_VERTICAL_SPACING


@dataclass
class Position:
    """layout coordinates of a building"""

    x: float = 0.0
    y: float = 0.0


@dataclass
class ChainBuildingInput:
    """an input of a chain building and where it comes from"""

    resource_name: str
    quantity: float
    source_type: str  # MARKET or BUILDING
    source_building: str | None = None


@dataclass
class ChainBuildingOutput:
    """an output of a chain building and every building consuming it"""

    resource_name: str
    quantity: float
    consumers: list[str] = field(default_factory=list)


@dataclass
class ChainBuilding:
    """a building placed in a production chain"""

    name: str
    level: int
    inputs: list[ChainBuildingInput]
    outputs: list[ChainBuildingOutput]
    ratio: float = 1.0
    position: Position = field(default_factory=Position)


@dataclass
class ProductionChain:
    """all buildings feeding one final product building"""

    id: str
    name: str
    buildings: list[ChainBuilding]
    final_products: list[str]
    root_inputs: list[str]


@dataclass
class ResourceTree:
    """resolved chains plus the buildings no chain reached"""

    chains: list[ProductionChain] = field(default_factory=list)
    isolated_buildings: list[ChainBuilding] = field(default_factory=list)
    total_chains: int = 0


@dataclass
class ResolutionContext:
    """State shared by every chain traversal of one resolve() call.

    Attributes:
        buildings: the registry, in order
        producers: resource key -> indices of buildings producing it, registry order
        consumers: resource key -> indices of buildings consuming it, registry order
        visited: indices of buildings already placed in some chain
    """

    buildings: tuple[Building, ...]
    producers: frozendict
    consumers: frozendict
    visited: set[int] = field(default_factory=set)


def _index_resources(buildings: tuple[Building, ...], attribute: str) -> frozendict:
    """Index buildings by the resources listed in one of their attributes.

    Precondition:
        attribute is "inputs" or "outputs"

    Postcondition:
        returns frozendict mapping resource key -> tuple of building indices
        indices are in registry order, each listed once per resource key
    """
    index = defaultdict(list)
    for building_index, building in enumerate(buildings):
        for resource in getattr(building, attribute):
            indices = index[resource_key(resource.name)]
            if not indices or indices[-1] != building_index:
                indices.append(building_index)
    return frozendict({key: tuple(indices) for key, indices in index.items()})


def create_context(buildings: list[Building]) -> ResolutionContext:
    """Create the resolution context for a registry.

    Precondition:
        buildings is an ordered list of Building

    Postcondition:
        returns context with producer and consumer indexes built once
        visited set is empty
    """
    registry = tuple(buildings)
    return ResolutionContext(
        registry,
        _index_resources(registry, "outputs"),
        _index_resources(registry, "inputs"),
    )


def _find_producer(context: ResolutionContext, resource_name: str, consumer_index: int) -> int | None:
    """Return the index of the first building producing a resource, excluding the consumer itself."""
    for producer_index in context.producers.get(resource_key(resource_name), ()):
        if producer_index != consumer_index:
            return producer_index
    return None


def _find_consumer_names(context: ResolutionContext, resource_name: str, producer_index: int) -> list[str]:
    """Return the names of all other buildings consuming a resource."""
    return [
        context.buildings[consumer_index].name
        for consumer_index in context.consumers.get(resource_key(resource_name), ())
        if consumer_index != producer_index
    ]


def _is_consumed_by_other(context: ResolutionContext, resource_name: str, producer_index: int) -> bool:
    return any(
        consumer_index != producer_index
        for consumer_index in context.consumers.get(resource_key(resource_name), ())
    )


def find_final_product_buildings(buildings: list[Building], context: ResolutionContext | None = None) -> list[Building]:
    """Find the buildings whose outputs no other building consumes.

    Precondition:
        buildings is an ordered list of Building
        context is None or was created from buildings

    Postcondition:
        returns the qualifying buildings in registry order
        a building with no outputs qualifies
        empty registry returns empty list

    Args:
        buildings: the registry
        context: optional precomputed resolution context

    Returns:
        list of chain root buildings
    """
    context = context or create_context(buildings)
    return [context.buildings[root_index] for root_index in _find_root_indices(context)]


def _find_root_indices(context: ResolutionContext) -> list[int]:
    return [
        building_index
        for building_index, building in enumerate(context.buildings)
        if not any(_is_consumed_by_other(context, output.name, building_index) for output in building.outputs)
    ]


def _create_chain_building(
    context: ResolutionContext,
    building_index: int,
    level: int,
    chain_visited: set[int] | None = None,
) -> tuple[ChainBuilding, list[int]]:
    """Create the ChainBuilding record of a registry building.

    Precondition:
        building_index is a valid registry index
        chain_visited is None (record outside any chain) or the indices visited by the current chain

    Postcondition:
        inputs whose first producer is usable are sourced from that building
        while tracing, a producer claimed by an earlier chain is not usable:
            the input is market sourced
        outputs list every other building consuming them
        returns the record and the producer indices to explore next

    Returns:
        tuple of (ChainBuilding, producer indices in input order)
    """
    building = context.buildings[building_index]

    inputs = []
    producers = []
    for resource in building.inputs:
        producer_index = _find_producer(context, resource.name, building_index)
        claimed_elsewhere = (
            chain_visited is not None
            and producer_index is not None
            and producer_index in context.visited
            and producer_index not in chain_visited
        )
        if producer_index is None or claimed_elsewhere:
            inputs.append(ChainBuildingInput(resource.name, resource.quantity, MARKET))
        else:
            inputs.append(ChainBuildingInput(
                resource.name, resource.quantity, BUILDING, context.buildings[producer_index].name
            ))
            producers.append(producer_index)

    outputs = [
        ChainBuildingOutput(
            resource.name,
            resource.quantity,
            _find_consumer_names(context, resource.name, building_index),
        )
        for resource in building.outputs
    ]

    return ChainBuilding(building.name, level, inputs, outputs), producers


def round_ratio(value: float) -> float:
    """Round half up to 2 decimal places."""
    return math.floor(value * 100 + 0.5) / 100


def _required_ratio(building: ChainBuilding, chain_by_name: dict[str, ChainBuilding]) -> float:
    """Compute the largest ratio any in-chain consumer demands of a building.

    Precondition:
        chain_by_name maps names to the chain's buildings
        consumer ratios for lower levels are already resolved

    Postcondition:
        returns max over (output, in-chain consumer) of
            consumer input quantity * consumer ratio / output quantity
        returns 0.0 if no in-chain consumer exists
    """
    required = 0.0
    for output in building.outputs:
        output_key = resource_key(output.resource_name)
        for consumer_name in output.consumers:
            consumer = chain_by_name.get(consumer_name)
            if consumer is None:
                continue
            consumer_input = next(
                (i for i in consumer.inputs if resource_key(i.resource_name) == output_key),
                None,
            )
            if consumer_input is not None:
                required = max(required, consumer_input.quantity * consumer.ratio / output.quantity)
    return required


def resolve_ratios(chain_buildings: list[ChainBuilding]) -> None:
    """Propagate production ratios from the final product upstream.

    Precondition:
        chain_buildings have their levels assigned
        output quantities are positive

    Postcondition:
        every level-0 building has ratio 1.0
        every other building has ratio = round2(max(1.0, largest in-chain demand))
        levels are processed in increasing order so consumers are resolved first
        no building is added or removed

    Args:
        chain_buildings: buildings of one chain, modified in place
    """
    if not chain_buildings:
        return

    chain_by_name = {}
    by_level = defaultdict(list)
    for building in chain_buildings:
        chain_by_name.setdefault(building.name, building)
        by_level[building.level].append(building)

    for building in by_level[0]:
        building.ratio = 1.0

    for level in range(1, max(by_level) + 1):
        for building in by_level[level]:
            building.ratio = round_ratio(max(1.0, _required_ratio(building, chain_by_name)))


def assign_layout(chain_buildings: list[ChainBuilding], spacing: LayoutSpacing | None = None) -> None:
    """Assign layout positions level by level.

    Precondition:
        chain_buildings are in discovery order

    Postcondition:
        each level is centered on x = 0 with spacing.horizontal between buildings
        y = level * spacing.vertical
        result depends only on levels and order

    Args:
        chain_buildings: buildings of one chain, modified in place
        spacing: layout constants, defaults to LayoutSpacing()
    """
    spacing = spacing or LayoutSpacing()

    levels = defaultdict(list)
    for building in chain_buildings:
        levels[building.level].append(building)

    for level, buildings in levels.items():
        x_offset = (1 - len(buildings)) * spacing.horizontal / 2
        for index, building in enumerate(buildings):
            building.position = Position(x_offset + index * spacing.horizontal, level * spacing.vertical)


def _find_root_inputs(chain_buildings: list[ChainBuilding]) -> list[str]:
    """Collect market-sourced resource names, first-seen order, without duplicates."""
    root_inputs = []
    for building in chain_buildings:
        for chain_input in building.inputs:
            if chain_input.source_type == MARKET and chain_input.resource_name not in root_inputs:
                root_inputs.append(chain_input.resource_name)
    return root_inputs


def make_chain_id(final_products: list[str]) -> str:
    """Chain id: product names joined by '-', lower-cased, whitespace runs replaced by '-'."""
    return re.sub(r"\s+", "-", "-".join(final_products).lower())


def make_chain_name(final_products: list[str]) -> str:
    return f"{', '.join(final_products)} Production Chain"


def trace_chain(
    root: Building,
    context: ResolutionContext,
    spacing: LayoutSpacing | None = None,
) -> ProductionChain:
    """Trace the supply chain feeding a root building.

    Breadth-first from the root: each building's producers are discovered
    one level further upstream. A building already placed in any chain is
    not expanded again, so the first chain and branch reaching a building
    keeps it, at the level of that first discovery.

    Precondition:
        root is a building of context.buildings
        context.visited holds the buildings claimed by earlier chains

    Postcondition:
        returns chain with buildings in discovery order, root at level 0
        every building of the chain is added to context.visited
        ratios are resolved and positions assigned
        terminates on cyclic producer graphs

    Args:
        root: final product building
        context: resolution context shared across chains
        spacing: layout constants

    Returns:
        ProductionChain for the root
    """
    return _trace_chain_from(_index_of(context, root), context, spacing)


def _index_of(context: ResolutionContext, building: Building) -> int:
    """Registry index of a building, by identity first, then by equality."""
    for building_index, candidate in enumerate(context.buildings):
        if candidate is building:
            return building_index
    return context.buildings.index(building)


def _trace_chain_from(
    root_index: int,
    context: ResolutionContext,
    spacing: LayoutSpacing | None,
) -> ProductionChain:
    root = context.buildings[root_index]
    chain_buildings = []
    chain_visited = set()
    queue = deque([(root_index, 0)])

    while queue:
        building_index, level = queue.popleft()
        if building_index in context.visited:
            continue
        chain_visited.add(building_index)
        context.visited.add(building_index)

        chain_building, producers = _create_chain_building(context, building_index, level, chain_visited)
        chain_buildings.append(chain_building)

        for producer_index in producers:
            if producer_index not in chain_visited:
                queue.append((producer_index, level + 1))

    resolve_ratios(chain_buildings)
    assign_layout(chain_buildings, spacing)

    final_products = [output.name for output in root.outputs]
    label_products = final_products or [root.name]
    return ProductionChain(
        id=make_chain_id(label_products),
        name=make_chain_name(label_products),
        buildings=chain_buildings,
        final_products=final_products,
        root_inputs=_find_root_inputs(chain_buildings),
    )


def collect_isolated_buildings(context: ResolutionContext) -> list[ChainBuilding]:
    """Wrap every building no chain reached.

    Precondition:
        all chains have been traced with this context

    Postcondition:
        returns unvisited buildings in registry order
        each has level 0, ratio 1.0 and position at the origin
    """
    return [
        _create_chain_building(context, building_index, 0)[0]
        for building_index in range(len(context.buildings))
        if building_index not in context.visited
    ]


def _is_standalone(chain: ProductionChain, root_index: int, context: ResolutionContext) -> bool:
    """Check if a chain is a root alone that takes no inputs at all."""
    return len(chain.buildings) == 1 and not context.buildings[root_index].inputs


def resolve(buildings: list[Building], spacing: LayoutSpacing | None = None) -> ResourceTree:
    """Resolve the production chains of a building registry.

    Precondition:
        building names are non-empty; duplicates resolve to the first match
        resource names are non-empty, quantities are positive

    Postcondition:
        returns ResourceTree with one chain per final product building, in registry order
        a root with no inputs and no other building in its chain is reported as isolated
        a root fed only by the market keeps its single-building chain
        every building appears exactly once: in one chain or among the isolated buildings
        same input always gives the same tree

    Args:
        buildings: ordered registry
        spacing: layout constants, defaults to LayoutSpacing()

    Returns:
        ResourceTree
    """
    context = create_context(buildings)
    chains = []

    for root_index in _find_root_indices(context):
        if root_index in context.visited:
            continue
        chain = _trace_chain_from(root_index, context, spacing)
        if _is_standalone(chain, root_index, context):
            context.visited.discard(root_index)
            continue
        chains.append(chain)

    isolated_buildings = collect_isolated_buildings(context)

    _LOGGER.info(
        "Resolved %s buildings into %s chains, %s isolated",
        len(buildings), len(chains), len(isolated_buildings),
    )
    return ResourceTree(chains, isolated_buildings, len(chains))
