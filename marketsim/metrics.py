"""Metrics about the running simulation, as JSON and Prometheus text."""

from __future__ import annotations

from typing import Any

from marketsim.settings import SimulationSettings
from marketsim.state import prometheus_storage_from_settings
from marketsim.stock_exchange import StockExchange
from marketsim.storage import PrometheusMetric
from marketsim.time_handler import TimeHandler

METRICS_PREFIX = "market_sim"

METRIC_AVERAGE_STOCKS_PER_INVESTOR = "average_stocks_per_investor"
METRIC_DAY_HOUR = "time_day_hour"
METRIC_RUNNING_SIMULATION_SECONDS = "running_simulation_seconds"
METRIC_TOTAL_COMPANIES = "companies_count"
METRIC_TOTAL_INVESTORS = "investors_count"
METRIC_TOTAL_IPOS = "ipos_count"
METRIC_TOTAL_LISTED_COMPANIES = "listed_companies_count"
METRIC_TOTAL_MARKET_MAKERS = "market_makers_count"
METRIC_TOTAL_STOCKS = "stocks_count"
METRIC_TRADING_NOW = "trading_now"
METRIC_WEEKDAY = "time_weekday"


def build_json_metrics(
    time: TimeHandler, settings: SimulationSettings, se: StockExchange
) -> dict[str, Any]:
    """Current time, this year's holidays and the main settings."""
    year = time.get_virtual_year_formatted()
    return {
        "current_time": time.get_virtual_time_formatted(),
        "year_holidays": sorted(se.holidays.get(year, set())),
        "currency": se.settings.currency.value,
        "simulation_settings": {
            "flush_storage": settings.flush_storage,
            "max_duration_seconds": settings.max_duration_seconds,
            "max_investor_age": settings.max_investor_age,
            "max_orders_per_tick": settings.max_orders_per_tick,
        },
    }


def build_prometheus_metrics(
    time: TimeHandler, se: StockExchange, settings: SimulationSettings
) -> str:
    """The exchange's gauges in Prometheus text format."""
    total_stocks = sum(len(stocks) for stocks in se.owned_stocks.mapping.values())
    owners = len(se.owned_stocks.mapping)
    average_stocks = total_stocks / owners if owners else float("nan")

    metrics = [
        PrometheusMetric.simple(METRIC_WEEKDAY, time.get_weekday()),
        PrometheusMetric.simple(METRIC_DAY_HOUR, time.get_day24hour()),
        PrometheusMetric.simple(METRIC_TOTAL_COMPANIES, len(se.companies.mapping)),
        PrometheusMetric.simple(METRIC_RUNNING_SIMULATION_SECONDS, time.get_running_seconds()),
        PrometheusMetric.simple(METRIC_TOTAL_INVESTORS, len(se.investors.mapping)),
        PrometheusMetric.simple(METRIC_TOTAL_LISTED_COMPANIES, len(se.listed_companies.mapping)),
        PrometheusMetric.simple(METRIC_TOTAL_MARKET_MAKERS, len(se.market_makers.mapping)),
        PrometheusMetric.simple(METRIC_TOTAL_STOCKS, total_stocks),
        PrometheusMetric.simple(METRIC_AVERAGE_STOCKS_PER_INVESTOR, average_stocks),
        PrometheusMetric.simple(METRIC_TOTAL_IPOS, len(se.ipos.mapping)),
        PrometheusMetric.simple(METRIC_TRADING_NOW, 1.0 if se.can_trade_now(time) else 0.0),
    ]

    for symbol in sorted(se.prices.mapping):
        company = se.companies.mapping.get(symbol)
        if company is None:
            continue
        metrics.append(
            PrometheusMetric(
                name="price_ask",
                value=se.prices.mapping[symbol].ask.to_float(),
                labels={"name": company.name, "symbol": str(company.symbol)},
            )
        )

    storage = prometheus_storage_from_settings(settings)
    return storage.get_metrics_text(METRICS_PREFIX, metrics)