"""Command line entry points for PocketLedger."""

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import click

from .config import BaseConfig
from .logging_config import setup_logging
from .services.analytics import AnalyticsSnapshot, aggregate
from .services.export_csv import export_transactions_csv
from .services.import_csv import import_csv_file
from .services.ledger_service import (
    DateRangePreset,
    LedgerFilters,
    filter_transactions,
    sort_transactions,
)
from .services.normalizer import NormalizationResult


def _parse_now(value: Optional[str]) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    try:
        moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise click.BadParameter(f"not an ISO timestamp: {value}", param_hint="--now") from None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def _import(csv_path: Path, config: BaseConfig) -> NormalizationResult:
    try:
        return import_csv_file(csv_path=csv_path, default_currency=config.DEFAULT_CURRENCY)
    except ValueError as exc:
        raise click.ClickException(f"cannot read {csv_path}: {exc}") from exc


def _report(snapshot: AnalyticsSnapshot, dropped: int) -> None:
    click.echo(f"Transactions: {snapshot.transaction_count} (dropped {dropped})")
    click.echo(f"Income:       {snapshot.total_income}")
    click.echo(f"Expenses:     {snapshot.total_expense}")
    click.echo(f"Net:          {snapshot.net_amount}")
    click.echo(f"Average:      {snapshot.average_transaction}")
    click.echo(f"Trend:        {snapshot.spending_trend.value}")
    if snapshot.category_data:
        click.echo("Top categories:")
        for item in snapshot.category_data:
            click.echo(f"  {item.name}: {item.value} ({item.percentage}%, {item.count} txns)")
    click.echo("Monthly:")
    for month in snapshot.monthly_trends:
        click.echo(
            f"  {month.full_date}: income {month.income} expenses {month.expenses} net {month.net}"
        )


@click.group()
@click.pass_context
def main(ctx: click.Context) -> None:
    """PocketLedger: normalize, filter and analyze transaction exports."""

    config = BaseConfig()
    setup_logging(config)
    ctx.obj = config


@main.command("analyze")
@click.argument("csv_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--now", "now_value", default=None, help="Anchor time (ISO-8601); defaults to now")
@click.option(
    "--date-range",
    type=click.Choice([p.value for p in DateRangePreset]),
    default=DateRangePreset.ALL.value,
    show_default=True,
)
@click.option("--category", default=None, help="Only this category")
@click.option("--search", default=None, help="Case-insensitive text search")
@click.option("--as-json", is_flag=True, default=False, help="Print the snapshot as JSON")
@click.pass_obj
def analyze(
    config: BaseConfig,
    csv_path: Path,
    now_value: Optional[str],
    date_range: str,
    category: Optional[str],
    search: Optional[str],
    as_json: bool,
) -> None:
    """Import a manual-entry CSV and print its analytics."""

    now = _parse_now(now_value)
    result = _import(csv_path, config)
    filters = LedgerFilters(search_query=search, category=category, date_range=date_range)
    selected = filter_transactions(result.transactions, filters, now=now)
    snapshot = aggregate(
        selected,
        now,
        top_categories=config.TOP_CATEGORIES,
        trend_months=config.TREND_MONTHS,
    )
    if as_json:
        payload = asdict(snapshot)
        payload["net_amount"] = snapshot.net_amount
        payload["dropped"] = result.dropped
        click.echo(json.dumps(payload, default=str, indent=2))
        return
    _report(snapshot, result.dropped)


@main.command("export")
@click.argument("csv_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("output_path", type=click.Path(dir_okay=False, path_type=Path))
@click.pass_obj
def export(config: BaseConfig, csv_path: Path, output_path: Path) -> None:
    """Normalize a manual-entry CSV and write canonical CSV, newest first."""

    result = _import(csv_path, config)
    path = export_transactions_csv(
        transactions=sort_transactions(result.transactions), output_path=output_path
    )
    click.echo(f"Exported {len(result.transactions)} transactions to {path}")
    if result.dropped:
        click.echo(f"Dropped {result.dropped} invalid rows", err=True)


if __name__ == "__main__":  # pragma: no cover
    main()
