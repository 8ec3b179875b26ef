"""Per-chain market demand and profitability from resource prices."""

import csv
import logging
from collections import defaultdict
from dataclasses import dataclass, field

from frozendict import frozendict

from buildings import resource_key
from resource_tree import MARKET, ProductionChain, ResourceTree

_LOGGER = logging.getLogger("chaingraphery")

# Markets a resource can be bought from or sold to; each is reported in its own figures
MARKETS = ("NATO", "USSR")

_CSV_HEADER = ["Resource", "NATO Buy", "NATO Sell", "USSR Buy", "USSR Sell"]


@dataclass(frozen=True)
class ResourcePrice:
    """buy and sell prices of one resource in each market"""

    name: str
    nato_buy: float = 0.0
    nato_sell: float = 0.0
    ussr_buy: float = 0.0
    ussr_sell: float = 0.0

    def buy_price(self, market: str) -> float:
        return self.nato_buy if market == "NATO" else self.ussr_buy

    def sell_price(self, market: str) -> float:
        return self.nato_sell if market == "NATO" else self.ussr_sell


class PriceTable:
    """Resource prices looked up by case-insensitive, trimmed name."""

    def __init__(self, prices: list[ResourcePrice] | None = None):
        self._prices = frozendict({resource_key(p.name): p for p in prices or []})

    def __len__(self) -> int:
        return len(self._prices)

    def __iter__(self):
        return iter(self._prices.values())

    def get(self, resource_name: str) -> ResourcePrice | None:
        """Get the prices of a resource, or None if unknown."""
        return self._prices.get(resource_key(resource_name))


@dataclass
class MarketFigures:
    """cost, revenue and profit per cycle in one market"""

    cost: float = 0.0
    revenue: float = 0.0

    @property
    def profit(self) -> float:
        return self.revenue - self.cost


@dataclass
class ChainSummary:
    """market demand, final output and profitability of one chain per cycle"""

    chain_id: str
    chain_name: str
    market_inputs: dict[str, float] = field(default_factory=dict)
    final_outputs: dict[str, float] = field(default_factory=dict)
    markets: dict[str, MarketFigures] = field(default_factory=dict)
    unpriced_resources: list[str] = field(default_factory=list)


def _parse_price(row: dict, column: str, resource: str) -> float:
    """Parse one price cell; blank cells are 0.

    Raises:
        ValueError: if the cell is not a number
    """
    value = (row.get(column) or "").strip()
    if not value:
        return 0.0
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"Invalid {column} price '{value}' for {resource}. Must be a number.") from exc


def load_prices_from_csv(filepath: str) -> PriceTable:
    """Load resource prices from a CSV file.

    Precondition:
        filepath is valid readable path to CSV file
        CSV has header row Resource, NATO Buy, NATO Sell, USSR Buy, USSR Sell

    Postcondition:
        returns PriceTable with one entry per row
        blank price cells are 0.0
        a later row for the same resource replaces an earlier one

    Args:
        filepath: path to CSV file

    Returns:
        PriceTable

    Raises:
        ValueError: if a row has no resource name or a price is not a number
    """
    prices = []
    with open(filepath, "r", newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        for row in reader:
            resource = (row.get("Resource") or "").strip()
            if not resource:
                raise ValueError(f"Row without a resource name in {filepath}")
            prices.append(ResourcePrice(
                resource,
                _parse_price(row, "NATO Buy", resource),
                _parse_price(row, "NATO Sell", resource),
                _parse_price(row, "USSR Buy", resource),
                _parse_price(row, "USSR Sell", resource),
            ))

    _LOGGER.info("Loaded prices for %s resources from %s", len(prices), filepath)
    return PriceTable(prices)


def save_prices_to_csv(filepath: str, prices: PriceTable) -> None:
    """Save resource prices to a CSV file.

    Precondition:
        filepath is valid writable path

    Postcondition:
        CSV file created at filepath with header row and data rows
        resources sorted alphabetically
    """
    with open(filepath, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(_CSV_HEADER)
        for price in sorted(prices, key=lambda p: p.name):
            writer.writerow([price.name, price.nato_buy, price.nato_sell, price.ussr_buy, price.ussr_sell])


def _collect_market_inputs(chain: ProductionChain) -> dict[str, float]:
    """Sum market-sourced input quantities scaled by each building's ratio."""
    market_inputs = defaultdict(float)
    for building in chain.buildings:
        for chain_input in building.inputs:
            if chain_input.source_type == MARKET:
                market_inputs[chain_input.resource_name] += chain_input.quantity * building.ratio
    return dict(market_inputs)


def _collect_final_outputs(chain: ProductionChain) -> dict[str, float]:
    """Sum the outputs of the chain's level-0 buildings scaled by their ratio."""
    final_outputs = defaultdict(float)
    for building in chain.buildings:
        if building.level != 0:
            continue
        for output in building.outputs:
            final_outputs[output.resource_name] += output.quantity * building.ratio
    return dict(final_outputs)


def summarize_chain(chain: ProductionChain, prices: PriceTable | None = None) -> ChainSummary:
    """Summarize what a chain buys and sells per cycle of its final product.

    Precondition:
        chain has its ratios resolved
        prices is None or a PriceTable

    Postcondition:
        market_inputs maps each market-sourced resource to
            sum of input quantity * building ratio
        final_outputs maps each final product to quantity * ratio
        markets maps each of MARKETS to cost (market inputs at buy price)
            and revenue (final outputs at sell price)
        resources without a price count as 0 and are listed in unpriced_resources

    Args:
        chain: resolved production chain
        prices: resource prices, defaults to an empty table

    Returns:
        ChainSummary
    """
    prices = prices or PriceTable()
    summary = ChainSummary(
        chain.id,
        chain.name,
        _collect_market_inputs(chain),
        _collect_final_outputs(chain),
        {market: MarketFigures() for market in MARKETS},
    )

    for resource, quantity in summary.market_inputs.items():
        price = prices.get(resource)
        if price is None:
            summary.unpriced_resources.append(resource)
            continue
        for market, figures in summary.markets.items():
            figures.cost += quantity * price.buy_price(market)

    for resource, quantity in summary.final_outputs.items():
        price = prices.get(resource)
        if price is None:
            if resource not in summary.unpriced_resources:
                summary.unpriced_resources.append(resource)
            continue
        for market, figures in summary.markets.items():
            figures.revenue += quantity * price.sell_price(market)

    if summary.unpriced_resources:
        _LOGGER.warning("No prices for %s in %s", ", ".join(summary.unpriced_resources), chain.name)

    return summary


def summarize_tree(tree: ResourceTree, prices: PriceTable | None = None) -> list[ChainSummary]:
    """Summarize every chain of a tree, in chain order."""
    return [summarize_chain(chain, prices) for chain in tree.chains]
