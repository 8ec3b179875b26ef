"""Demonstration of production chain resolution on a small steel industry."""

from buildings import make_building
from chain_report import PriceTable, ResourcePrice, summarize_tree
from resource_tree import resolve
from tree_export import tree_to_graphviz

buildings = [
    make_building("Iron Mine", outputs=[("Iron Ore", 10)]),
    make_building("Coal Mine", outputs=[("Coal", 8)]),
    make_building("Steel Mill", inputs=[("Iron Ore", 4), ("Coal", 2)], outputs=[("Steel", 2)]),
    make_building("Rolling Mill", inputs=[("Steel", 6)], outputs=[("Steel Beam", 3)]),
    make_building("Sawmill", inputs=[("Logs", 5)], outputs=[("Planks", 10)]),
]

prices = PriceTable([
    ResourcePrice("Steel Beam", nato_sell=120.0, ussr_sell=95.0),
    ResourcePrice("Logs", nato_buy=1.5, ussr_buy=1.0),
    ResourcePrice("Planks", nato_sell=1.2, ussr_sell=0.9),
])

print("=" * 60)
print("Resolving production chains")
print("=" * 60)

tree = resolve(buildings)

for chain in tree.chains:
    print(f"\n{chain.name}")
    for building in chain.buildings:
        print(f"  level {building.level}: {building.name} x{building.ratio:.2f} at ({building.position.x:g}, {building.position.y:g})")
    print(f"  market inputs: {', '.join(chain.root_inputs) or 'none'}")

if tree.isolated_buildings:
    print(f"\nIsolated: {', '.join(b.name for b in tree.isolated_buildings)}")

print("\n" + "=" * 60)
print("Profitability per cycle")
print("=" * 60)

for summary in summarize_tree(tree, prices):
    for market, figures in summary.markets.items():
        print(f"{summary.chain_name} [{market}]: profit {figures.profit:.2f}")

print("\nRendering production_chains.png...")
tree_to_graphviz(tree).render("production_chains", format="png", engine="neato", cleanup=True)
print("Done!")
