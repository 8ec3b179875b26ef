"""Tests for chain_report module"""

import os
import tempfile

import pytest

from buildings import make_building
from chain_report import (
    PriceTable,
    ResourcePrice,
    load_prices_from_csv,
    save_prices_to_csv,
    summarize_chain,
    summarize_tree,
)
from resource_tree import resolve


def _glass_tree():
    return resolve([
        make_building("Furnace", inputs=[("Sand", 4), ("Coal", 1)], outputs=[("Glass", 2)]),
        make_building("Glazier", inputs=[("Glass", 5)], outputs=[("Glass Pane", 1)]),
    ])


def _prices():
    return PriceTable([
        ResourcePrice("Sand", nato_buy=2.0, ussr_buy=1.0),
        ResourcePrice("Glass Pane", nato_sell=100.0, ussr_sell=80.0),
    ])


def test_price_table_lookup_is_case_insensitive():
    """PriceTable should find resources regardless of case and whitespace"""
    prices = _prices()
    assert prices.get(" sand ").nato_buy == 2.0
    assert prices.get("Iron") is None
    assert len(prices) == 2


def test_summarize_chain_quantities():
    """market inputs and final outputs should be scaled by ratio"""
    chain = _glass_tree().chains[0]
    summary = summarize_chain(chain, _prices())

    # Furnace runs 2.5 cycles per Glazier cycle
    assert summary.market_inputs == {"Sand": 10.0, "Coal": 2.5}
    assert summary.final_outputs == {"Glass Pane": 1.0}
    assert summary.chain_id == "glass-pane"


def test_summarize_chain_profit():
    """each market should get its own cost, revenue and profit"""
    summary = summarize_chain(_glass_tree().chains[0], _prices())

    nato = summary.markets["NATO"]
    ussr = summary.markets["USSR"]
    assert nato.cost == pytest.approx(20.0)
    assert nato.revenue == pytest.approx(100.0)
    assert nato.profit == pytest.approx(80.0)
    assert ussr.cost == pytest.approx(10.0)
    assert ussr.profit == pytest.approx(70.0)
    assert summary.unpriced_resources == ["Coal"]


def test_summarize_chain_without_prices():
    """without prices every resource is unpriced and figures are zero"""
    summary = summarize_chain(_glass_tree().chains[0])

    assert summary.unpriced_resources == ["Sand", "Coal", "Glass Pane"]
    assert all(figures.profit == 0.0 for figures in summary.markets.values())


def test_summarize_tree():
    """summarize_tree should report every chain in order"""
    summaries = summarize_tree(_glass_tree(), _prices())
    assert [s.chain_name for s in summaries] == ["Glass Pane Production Chain"]
    assert summarize_tree(resolve([])) == []


def test_save_and_load_prices():
    """price tables should roundtrip through CSV"""
    with tempfile.NamedTemporaryFile(mode="w", suffix=".csv", delete=False) as f:
        temp_path = f.name
    try:
        save_prices_to_csv(temp_path, _prices())
        loaded = load_prices_from_csv(temp_path)

        assert len(loaded) == 2
        assert loaded.get("Glass Pane") == ResourcePrice("Glass Pane", 0.0, 100.0, 0.0, 80.0)

        with open(temp_path, "r", encoding="utf-8") as f:
            header = f.readline().strip()
        assert header == "Resource,NATO Buy,NATO Sell,USSR Buy,USSR Sell"
    finally:
        os.remove(temp_path)


def test_load_prices_blank_and_invalid_cells():
    """blank price cells are zero, non-numeric cells are rejected"""
    with tempfile.NamedTemporaryFile(mode="w", suffix=".csv", delete=False, newline="", encoding="utf-8") as f:
        f.write("Resource,NATO Buy,NATO Sell,USSR Buy,USSR Sell\n")
        f.write("Coal,3,,,\n")
        temp_path = f.name
    try:
        assert load_prices_from_csv(temp_path).get("coal") == ResourcePrice("Coal", 3.0)

        with open(temp_path, "a", encoding="utf-8") as f:
            f.write("Iron,cheap,,,\n")
        with pytest.raises(ValueError, match="Invalid NATO Buy price 'cheap' for Iron"):
            load_prices_from_csv(temp_path)
    finally:
        os.remove(temp_path)


def test_summarize_market_fed_chain():
    """a lone building buying from the market gets its own report"""
    tree = resolve([make_building("Sawmill", inputs=[("Logs", 5)], outputs=[("Planks", 10)])])
    prices = PriceTable([
        ResourcePrice("Logs", nato_buy=1.5, ussr_buy=1.0),
        ResourcePrice("Planks", nato_sell=1.2, ussr_sell=0.9),
    ])
    summaries = summarize_tree(tree, prices)

    assert [s.chain_name for s in summaries] == ["Planks Production Chain"]
    summary = summaries[0]
    assert summary.market_inputs == {"Logs": 5.0}
    assert summary.final_outputs == {"Planks": 10.0}
    assert summary.markets["NATO"].profit == pytest.approx(4.5)
    assert summary.markets["USSR"].profit == pytest.approx(4.0)
