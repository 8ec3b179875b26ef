"""Export resolved resource trees as JSON data or Graphviz diagrams."""

import json
import logging

import graphviz

from resource_tree import BUILDING, MARKET, ChainBuilding, ProductionChain, ResourceTree

_LOGGER = logging.getLogger("chaingraphery")

# Graphviz positions are in points; layout units are scaled down to keep diagrams readable
_POINTS_PER_UNIT = 0.02


def _chain_building_to_dict(building: ChainBuilding) -> dict:
    """Convert a ChainBuilding to a JSON-ready dict.

    Precondition:
        building is a ChainBuilding

    Postcondition:
        returns dict with camelCase keys
        sourceBuilding is present only for building-sourced inputs
    """
    inputs = []
    for chain_input in building.inputs:
        entry = {
            "resourceName": chain_input.resource_name,
            "quantity": chain_input.quantity,
            "sourceType": chain_input.source_type,
        }
        if chain_input.source_type == BUILDING:
            entry["sourceBuilding"] = chain_input.source_building
        inputs.append(entry)

    return {
        "name": building.name,
        "ratio": building.ratio,
        "level": building.level,
        "inputs": inputs,
        "outputs": [
            {
                "resourceName": output.resource_name,
                "quantity": output.quantity,
                "consumers": list(output.consumers),
            }
            for output in building.outputs
        ],
        "position": {"x": building.position.x, "y": building.position.y},
    }


def _chain_to_dict(chain: ProductionChain) -> dict:
    return {
        "id": chain.id,
        "name": chain.name,
        "buildings": [_chain_building_to_dict(b) for b in chain.buildings],
        "finalProducts": list(chain.final_products),
        "rootInputs": list(chain.root_inputs),
    }


def tree_to_dict(tree: ResourceTree) -> dict:
    """Convert a ResourceTree to JSON-ready data.

    Precondition:
        tree is a ResourceTree returned by resolve()

    Postcondition:
        returns dict with keys chains, isolatedBuildings, totalChains
        chain and building order is preserved
        result only contains dicts, lists, strings and numbers

    Args:
        tree: resolved tree

    Returns:
        dict suitable for json.dump
    """
    return {
        "chains": [_chain_to_dict(chain) for chain in tree.chains],
        "isolatedBuildings": [_chain_building_to_dict(b) for b in tree.isolated_buildings],
        "totalChains": tree.total_chains,
    }


def save_tree_to_json(filepath: str, tree: ResourceTree) -> None:
    """Write a ResourceTree to a JSON file.

    Precondition:
        filepath is a writable path

    Postcondition:
        file contains json of tree_to_dict(tree), indented
    """
    with open(filepath, "w", encoding="utf-8") as f:
        json.dump(tree_to_dict(tree), f, indent=2)
    _LOGGER.info("Resource tree written to %s", filepath)


def _node_id(chain_index: int, building_index: int) -> str:
    return f"C{chain_index}_B{building_index}"


def _building_label(building: ChainBuilding) -> str:
    """Node label: name, ratio, and the building's per-cycle outputs."""
    outputs_str = ", ".join(f"{o.resource_name}:{o.quantity:g}" for o in building.outputs)
    lines = [building.name, f"{building.ratio:.2f}x"]
    if outputs_str:
        lines.append(outputs_str)
    return "\n".join(lines)


def _building_pos(building: ChainBuilding) -> str:
    """Pinned neato position; graphviz y grows upward so upstream buildings are drawn above."""
    x = building.position.x * _POINTS_PER_UNIT
    y = building.position.y * _POINTS_PER_UNIT
    return f"{x:g},{y:g}!"


def _add_chain_cluster(dot: graphviz.Digraph, chain_index: int, chain: ProductionChain) -> None:
    """Add one chain as a cluster with its buildings, supply edges and market node.

    Precondition:
        dot is graphviz.Digraph
        chain has its positions assigned

    Postcondition:
        cluster "cluster_<chain_index>" holds a node per building
        building-sourced inputs draw an edge producer -> consumer labeled with the resource
        market-sourced inputs draw an edge from the chain's market node
    """
    node_ids = {}
    for building_index, building in enumerate(chain.buildings):
        node_ids.setdefault(building.name, _node_id(chain_index, building_index))

    with dot.subgraph(name=f"cluster_{chain_index}") as cluster:
        cluster.attr(label=chain.name, style="filled", fillcolor="whitesmoke")

        for building_index, building in enumerate(chain.buildings):
            fillcolor = "coral" if building.level == 0 else "lightblue"
            cluster.node(
                _node_id(chain_index, building_index),
                _building_label(building),
                shape="box",
                style="filled",
                fillcolor=fillcolor,
                pos=_building_pos(building),
            )

        market_id = f"C{chain_index}_Market"
        if chain.root_inputs:
            cluster.node(market_id, "Market", shape="ellipse", style="filled", fillcolor="lightgreen")

        for building_index, building in enumerate(chain.buildings):
            consumer_id = _node_id(chain_index, building_index)
            for chain_input in building.inputs:
                if chain_input.source_type == MARKET:
                    cluster.edge(market_id, consumer_id, label=chain_input.resource_name)
                elif chain_input.source_building in node_ids:
                    cluster.edge(
                        node_ids[chain_input.source_building],
                        consumer_id,
                        label=f"{chain_input.resource_name}\n{chain_input.quantity:g}",
                    )


def _add_isolated_cluster(dot: graphviz.Digraph, buildings: list[ChainBuilding]) -> None:
    """Add the isolated buildings as an unconnected cluster."""
    with dot.subgraph(name="cluster_isolated") as cluster:
        cluster.attr(label="Isolated Buildings", style="dashed")
        for building_index, building in enumerate(buildings):
            cluster.node(
                f"Isolated_{building_index}",
                _building_label(building),
                shape="box",
                style="filled",
                fillcolor="lightgrey",
            )


def tree_to_graphviz(tree: ResourceTree) -> graphviz.Digraph:
    """Build a Graphviz diagram of a resolved resource tree.

    Precondition:
        tree is a ResourceTree returned by resolve()

    Postcondition:
        returns Digraph with one cluster per chain, in chain order
        each building node is labeled with its name and ratio
        building nodes carry their layout position for neato -n rendering
        isolated buildings, if any, are grouped in a dashed cluster

    Args:
        tree: resolved tree

    Returns:
        graphviz.Digraph
    """
    dot = graphviz.Digraph(comment="Production Chains")
    dot.attr(rankdir="BT")

    for chain_index, chain in enumerate(tree.chains):
        _add_chain_cluster(dot, chain_index, chain)

    if tree.isolated_buildings:
        _add_isolated_cluster(dot, tree.isolated_buildings)

    return dot
