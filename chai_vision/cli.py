from pathlib import Path
from typing import Optional

import click
from loguru import logger
from rich.console import Console
from rich.table import Table

from chai_vision.config import load_config
from chai_vision.display_utils import format_currency, format_growth, format_percent, kpi_label
from chai_vision.errors import ChaiVisionError
from chai_vision.exporters import ReportExporter, write_upload_template
from chai_vision.models import GroupField, PeriodKind
from chai_vision.normalizer import ValidationSettings, normalize_records
from chai_vision.periods import reporting_today, resolve_range
from chai_vision.registry import Registry
from chai_vision.services.dashboard_service import DashboardService
from chai_vision.sources import CSVRecordSource
from chai_vision.utils.paths import resolve_path

console = Console()

VIEW_CHOICES = [PeriodKind.ANNUAL.value, PeriodKind.QUARTERLY.value, PeriodKind.MONTHLY.value]
GROUP_CHOICES = [f.value for f in GroupField]


class ChaiVisionApp:
    def __init__(self, config_path: Optional[str] = None):
        self.config = load_config(config_path)
        self.setup_logging()
        self.service = DashboardService.from_config(self.config)

    def setup_logging(self):
        """Configure logging"""
        log_path = Path(self.config['paths']['log_dir'])
        log_path.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_path / 'chai_vision_{time}.log',
            rotation='1 day',
            retention='30 days',
            level=self.config.get('logging', {}).get('level', 'INFO')
        )

    def build_view(self, view, year, quarter, month, brand, channels, group_by, compare_mode=None):
        try:
            return self.service.build_view(
                view, year, quarter=quarter, month=month,
                brand=brand, channels=list(channels) or None,
                group_by=list(group_by) or [GroupField.CHANNEL],
                compare_mode=compare_mode,
            )
        except ChaiVisionError as e:
            raise click.ClickException(str(e))


def _key_label(key) -> str:
    return " / ".join(str(part) for part in key)


def print_view(view, kpi_threshold):
    summary = view.summary
    title = f"{view.period.label} - {view.brand or 'All Brands'}"

    cards = Table(title=title, show_header=False)
    cards.add_column("Metric", style="cyan")
    cards.add_column("Value", justify="right")
    cards.add_row("Total Revenue", format_currency(summary.total_revenue, compact=False))
    cards.add_row("Target", format_currency(summary.target, compact=False))
    cards.add_row("Achievement", format_percent(summary.achievement_percent))
    cards.add_row(kpi_label(kpi_threshold), format_currency(summary.kpi_target, compact=False))
    cards.add_row("KPI Achievement", format_percent(summary.kpi_achievement_percent))
    cards.add_row("Days Elapsed", f"{summary.days_elapsed} / {summary.days_in_period}")
    cards.add_row("Run Rate (daily)", format_currency(summary.run_rate, compact=False))
    cards.add_row("Projected (realistic)", format_currency(summary.projections.get('realistic'), compact=False))
    console.print(cards)

    group_names = [f.value.title() for f in view.aggregate.group_by]
    table = Table(title="Revenue vs Target")
    for name in group_names:
        table.add_column(name, style="cyan")
    table.add_column("Revenue", justify="right")
    table.add_column("Target", justify="right")
    table.add_column("Achievement", justify="right")
    for key, item in view.targets.items():
        table.add_row(
            *[str(part) for part in key],
            format_currency(item.actual, compact=False),
            format_currency(item.target, compact=False),
            format_percent(item.performance_percent),
        )
    console.print(table)

    if view.comparison is not None:
        print_growth(view.comparison)


def print_growth(comparison):
    table = Table(title=f"Growth: {comparison.current.period.label} vs {comparison.prior.period.label}")
    table.add_column("Key", style="cyan")
    table.add_column("Current", justify="right")
    table.add_column("Prior", justify="right")
    table.add_column("Change", justify="right")
    table.add_column("Growth", justify="right")
    for key, row in comparison.rows.items():
        table.add_row(
            _key_label(key),
            format_currency(row.current, compact=False),
            format_currency(row.prior, compact=False),
            format_currency(row.growth_amount, compact=False),
            format_growth(row.growth_percent),
        )
    if comparison.total is not None:
        table.add_row(
            "Total",
            format_currency(comparison.total.current, compact=False),
            format_currency(comparison.total.prior, compact=False),
            format_currency(comparison.total.growth_amount, compact=False),
            format_growth(comparison.total.growth_percent),
            style="bold",
        )
    console.print(table)


def period_options(func):
    """Shared view selection options"""
    options = [
        click.option('--view', '-v', type=click.Choice(VIEW_CHOICES), default='annual', show_default=True),
        click.option('--year', '-y', required=True, help='Calendar year, e.g. 2025'),
        click.option('--quarter', '-q', help='Quarter for the quarterly view (1-4 or Q1-Q4)'),
        click.option('--month', '-m', help='Month for the monthly view (1-12)'),
        click.option('--brand', '-b', help='Brand name, or "All Brands" for the company total'),
        click.option('--channel', '-c', 'channels', multiple=True, help='Restrict to these channels'),
        click.option('--group-by', '-g', 'group_by', multiple=True, type=click.Choice(GROUP_CHOICES),
                     help='Grouping fields (default: channel)'),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option('--config', 'config_path', help='Path to config.yaml')
@click.pass_context
def cli(ctx, config_path):
    """Chai Vision - Sales performance and target tracking"""
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config_path


@cli.command()
@period_options
@click.option('--compare', 'compare_mode', type=click.Choice(['yoy', 'pop']),
              help='Add growth against the prior period')
@click.pass_context
def summary(ctx, view, year, quarter, month, brand, channels, group_by, compare_mode):
    """Show KPI cards and revenue vs target for a period"""
    app = ChaiVisionApp(ctx.obj['config_path'])
    result = app.build_view(view, year, quarter, month, brand, channels, group_by, compare_mode)
    print_view(result, app.service.kpi_settings.threshold)


@cli.command()
@period_options
@click.option('--mode', type=click.Choice(['yoy', 'pop']), default='yoy', show_default=True)
@click.option('--start', type=click.DateTime(formats=['%Y-%m-%d']), help='Custom range start (overrides --view)')
@click.option('--end', type=click.DateTime(formats=['%Y-%m-%d']), help='Custom range end, inclusive')
@click.pass_context
def growth(ctx, view, year, quarter, month, brand, channels, group_by, mode, start, end):
    """Compare a period against the same period last year or the one before"""
    app = ChaiVisionApp(ctx.obj['config_path'])
    try:
        if start or end:
            if not (start and end):
                raise click.UsageError("--start and --end must be given together")
            period = resolve_range(start.date(), end.date())
        else:
            period = app.service.resolve_period(view, year, quarter, month)
        comparison = app.service.compare_periods(
            period, mode, group_by=list(group_by) or [GroupField.CHANNEL],
            brand=brand, channels=list(channels) or None,
        )
    except ChaiVisionError as e:
        raise click.ClickException(str(e))
    print_growth(comparison)


@cli.command()
@period_options
@click.option('--compare', 'compare_mode', type=click.Choice(['yoy', 'pop']))
@click.option('--excel', is_flag=True, help='Write one Excel workbook instead of CSV files')
@click.pass_context
def export(ctx, view, year, quarter, month, brand, channels, group_by, compare_mode, excel):
    """Export a period's tables to the output directory"""
    app = ChaiVisionApp(ctx.obj['config_path'])
    result = app.build_view(view, year, quarter, month, brand, channels, group_by, compare_mode)
    exporter = ReportExporter(app.config)

    if excel:
        path = exporter.export_workbook(result)
        click.echo(f"Saved {path}")
    else:
        for name, path in exporter.export_view(result).items():
            click.echo(f"{name}: {path}")


@cli.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
@click.option('--show', default=20, show_default=True, help='Number of rejected rows to list')
@click.pass_context
def validate(ctx, file, show):
    """Check an upload file and report rows that would be rejected"""
    config = load_config(ctx.obj['config_path'])
    rows = CSVRecordSource(file).load_sales_data()
    result = normalize_records(
        rows, Registry.from_config(config), ValidationSettings.from_config(config),
        reporting_today(config['reporting']['timezone'])
    )

    click.echo(f"{len(result.records)} of {result.total_rows} rows valid")
    if not result.errors:
        return

    table = Table(title=f"Rejected rows ({len(result.errors)})")
    table.add_column("Row", justify="right")
    table.add_column("Field", style="cyan")
    table.add_column("Problem", style="red")
    for error in result.errors[:show]:
        # +2 for the header line and 1-based numbering
        table.add_row(str(error.index + 2), error.field or '', error.message)
    console.print(table)
    if len(result.errors) > show:
        click.echo(f"... and {len(result.errors) - show} more")
    ctx.exit(1)


@cli.command()
@click.argument('path', required=False)
@click.option('--sku', is_flag=True, help='Include SKU, product name and units columns')
def template(path, sku):
    """Write a blank upload template CSV"""
    if path is None:
        path = resolve_path('data', 'sku_upload_template.csv' if sku else 'upload_template.csv')
    written = write_upload_template(path, sku=sku)
    click.echo(f"Template written to {written}")


@cli.command()
@click.pass_context
def channels(ctx):
    """List configured channels and their accepted aliases"""
    registry = Registry.from_config(load_config(ctx.obj['config_path']))
    aliases = {}
    for alias, channel in registry.channel_aliases.items():
        aliases.setdefault(channel, []).append(alias)

    for channel in registry.channels:
        extra = f" (also: {', '.join(aliases[channel])})" if channel in aliases else ""
        click.echo(f"  {channel}{extra}")


@cli.command()
@click.pass_context
def years(ctx):
    """List years that have sales data"""
    app = ChaiVisionApp(ctx.obj['config_path'])
    click.echo(", ".join(str(y) for y in app.service.year_options()))


if __name__ == '__main__':
    cli()
