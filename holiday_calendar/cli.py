"""Command line interface module."""

import click
import functools
import json
import os
from datetime import datetime, date
from typing import Optional, Dict, Any

from .config import Config, SUPPORTED_LOCALES
from .error_handler import BaseApplicationError, ConfigurationError, ValidationError, handle_error
from .ics_generator import ICSGenerator
from .japanese_holidays import JapaneseHolidays
from .logging_config import LoggingManager, LogFormat, setup_logging, cleanup_logging
from .official_data import OfficialHolidayData, reconcile
from .security import (
    SecureFileHandler, validate_date_input, validate_file_path_input, validate_year_input
)


def _abort(error: BaseApplicationError, context: Optional[Dict[str, Any]] = None):
    """エラーを記録してコマンドを中断（記録済みのエラーは再記録されない）"""
    handle_error(error, context)
    prefix = "Validation Error" if isinstance(error, ValidationError) else "Error"
    click.echo(f"{prefix}: {error.get_user_message()}", err=True)
    raise click.Abort()


def _format_holiday(holiday_date: date, name, day_name: str, english: bool = False) -> str:
    label = name.english if english else str(name)
    return f"{holiday_date.isoformat()} ({day_name}) {label}"


def _report_performance(logging_manager: LoggingManager):
    """--enable-monitoring 指定時、終了前に計測結果を stderr へ出力"""
    summary = logging_manager.get_performance_summary()
    if not summary.get('total_operations'):
        click.echo("Performance: no monitored operations", err=True)
        return

    click.echo(f"Performance: {summary['total_operations']} operations, "
               f"{summary['error_count']} failed, {summary['total_duration']:.3f}s total", err=True)
    for name, stats in sorted(summary['operations'].items()):
        click.echo(f"  {name}: {stats['count']} calls, {stats['total_duration']:.3f}s", err=True)


@click.group()
@click.option('--config', '-c', help='Configuration file path')
@click.option('--locale', type=click.Choice(SUPPORTED_LOCALES), help='Day-of-week name locale')
@click.option('--debug', is_flag=True, help='Enable debug mode with verbose logging')
@click.option('--log-level', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
              default='WARNING', help='Set logging level')
@click.option('--log-format', type=click.Choice(['simple', 'detailed', 'json', 'structured']),
              default='simple', help='Set log format')
@click.option('--enable-monitoring', is_flag=True, help='Enable performance monitoring')
@click.pass_context
def cli(ctx, config: Optional[str], locale: Optional[str], debug: bool,
        log_level: str, log_format: str, enable_monitoring: bool):
    """Japanese holiday calendar: day-of-week and national holiday lookup.

    Examples:
      python main.py check --date 2024-11-04
      python main.py holidays --year 2024
      python main.py export --year 2024 -o holidays.ics
      python main.py verify --from-year 2020 --to-year 2024
    """
    ctx.ensure_object(dict)

    try:
        logging_manager = setup_logging(
            log_level=log_level,
            log_format=getattr(LogFormat, log_format.upper()),
            enable_performance_monitoring=enable_monitoring,
            debug_mode=debug
        )
        ctx.obj['logging_manager'] = logging_manager
        ctx.call_on_close(cleanup_logging)
        if enable_monitoring:
            # close コールバックは登録の逆順に実行される（cleanup より先）
            ctx.call_on_close(functools.partial(_report_performance, logging_manager))

        ctx.obj['config'] = Config(config)
        if locale:
            ctx.obj['config'].set('calendar.locale', locale)

        ctx.obj['holidays'] = JapaneseHolidays(locale=ctx.obj['config'].get_locale())

    except BaseApplicationError as e:
        _abort(e, {"operation": "cli_initialization"})
    except Exception as e:
        _abort(ConfigurationError(
            f"Failed to initialize application: {e}",
            operation="cli_initialization",
            cause=e
        ))


@cli.command()
@click.option('--date', '-d', 'date_str', help='Date to check (YYYY-MM-DD format, default: today)')
@click.pass_context
def check(ctx, date_str: Optional[str]):
    """Check if a specific date is a Japanese holiday."""
    jp_holidays = ctx.obj['holidays']

    try:
        check_date = validate_date_input(date_str) if date_str else date.today()
        validate_year_input(check_date.year, allow_out_of_range=True)
    except ValidationError as e:
        _abort(e, {"operation": "check", "date": date_str})

    day_name = jp_holidays.get_day_of_week(check_date)
    holiday = jp_holidays.get_holiday_name(check_date)

    if holiday:
        click.echo(f"{check_date.isoformat()} ({day_name}) is a Japanese holiday: {holiday}")
        return

    click.echo(f"{check_date.isoformat()} ({day_name}) is not a Japanese holiday")

    next_holiday = jp_holidays.get_next_holiday(check_date)
    if next_holiday:
        next_date, next_name = next_holiday
        days_until = (next_date - check_date).days
        click.echo(f"Next holiday: {next_date.isoformat()} ({next_name}) in {days_until} days")


@cli.command()
@click.argument('date_str', metavar='DATE')
@click.option('--json', 'as_json', is_flag=True, help='Output as JSON')
@click.pass_context
def info(ctx, date_str: str, as_json: bool):
    """Show day-of-week and holiday information for DATE (YYYY-MM-DD)."""
    try:
        target = validate_date_input(date_str)
    except ValidationError as e:
        _abort(e, {"operation": "info", "date": date_str})

    date_info = ctx.obj['holidays'].get_date_info(target)

    if as_json:
        payload = {'date': target.isoformat()}
        payload.update(date_info.to_dict())
        click.echo(json.dumps(payload, ensure_ascii=False))
        return

    click.echo(f"{target.isoformat()} ({date_info.day_of_week})")
    if date_info.holiday:
        click.echo(f"  Holiday: {date_info.holiday} ({date_info.holiday.english})")
    else:
        click.echo("  Holiday: -")
    click.echo(f"  Sunday: {'yes' if date_info.is_sunday else 'no'}")
    click.echo(f"  Saturday: {'yes' if date_info.is_saturday else 'no'}")


@cli.command()
@click.option('--year', '-y', type=int, help='Year to list (default: current year)')
@click.option('--english', is_flag=True, help='Show English holiday names')
@click.pass_context
def holidays(ctx, year: Optional[int], english: bool):
    """List Japanese holidays for a year."""
    jp_holidays = ctx.obj['holidays']
    year = year or datetime.now().year

    try:
        validate_year_input(year, allow_out_of_range=True)
    except ValidationError as e:
        _abort(e, {"operation": "holidays", "year": year})

    year_holidays = jp_holidays.get_holidays_by_year(year)

    click.echo(f"Japanese holidays for {year}:")
    for holiday_date, name in year_holidays:
        day_name = jp_holidays.get_day_of_week(holiday_date)
        click.echo(f"  {_format_holiday(holiday_date, name, day_name, english)}")
    click.echo(f"\nTotal: {len(year_holidays)} holidays")


@cli.command()
@click.option('--year', '-y', type=int, help='First year to export (default: current year)')
@click.option('--end-year', type=int, help='Last year to export (default: same as --year)')
@click.option('--output', '-o', help='Output file path')
@click.option('--english', is_flag=True, help='Use English holiday names in event summaries')
@click.pass_context
def export(ctx, year: Optional[int], end_year: Optional[int], output: Optional[str], english: bool):
    """Export Japanese holidays to an ICS file."""
    config = ctx.obj['config']
    logging_manager = ctx.obj['logging_manager']
    year = year or datetime.now().year
    end_year = end_year or year

    with logging_manager.monitor_operation("export_holidays", {"year": year, "end_year": end_year}):
        try:
            validate_year_input(year, allow_out_of_range=True)
            validate_year_input(end_year, allow_out_of_range=True)
            if end_year < year:
                raise ValidationError(
                    f"--end-year ({end_year}) must not be before --year ({year})",
                    field="end_year", value=end_year
                )

            if not output:
                output_config = config.get_output_config()
                output_dir = output_config.get('directory', './output')
                os.makedirs(output_dir, exist_ok=True)

                year_label = str(year) if end_year == year else f"{year}-{end_year}"
                template = output_config.get('filename_template', 'japanese_holidays_{year}.ics')
                output = os.path.join(output_dir, template.format(year=year_label))

            ics_generator = ICSGenerator(
                ctx.obj['holidays'],
                tz_name=config.get('calendar.timezone', 'Asia/Tokyo'),
                english_names=english
            )
            ics_generator.add_holidays_for_years(year, end_year)
            saved_path = ics_generator.save_to_file(output)

            stats = ics_generator.get_generation_stats()
            click.echo(f"Exported {stats['total_events']} holidays to: {saved_path}")
            if stats['total_events']:
                click.echo(f"  Range: {stats['first_date']} to {stats['last_date']}")

        except BaseApplicationError as e:
            _abort(e, {"operation": "export_holidays", "year": year, "end_year": end_year})
        except OSError as e:
            _abort(ConfigurationError(
                f"Cannot prepare output directory: {e}",
                config_key='output.directory',
                operation="export_holidays",
                cause=e
            ))


@cli.command()
@click.option('--from-year', type=int, help='First year to check (default: current year)')
@click.option('--to-year', type=int, help='Last year to check (default: same as --from-year)')
@click.option('--source', help='Local Cabinet Office CSV file (default: download)')
@click.option('--output', '-o', help='Write the reconciliation report as JSON')
@click.pass_context
def verify(ctx, from_year: Optional[int], to_year: Optional[int],
           source: Optional[str], output: Optional[str]):
    """Reconcile computed holidays with the Cabinet Office CSV."""
    config = ctx.obj['config']
    from_year = from_year or datetime.now().year
    to_year = to_year or from_year

    try:
        validate_year_input(from_year)
        validate_year_input(to_year)

        official_config = config.get_official_data_config()
        loader = OfficialHolidayData(
            url=official_config.get('url'),
            timeout=official_config.get('timeout', 30)
        )
        official = loader.load(source)
        report = reconcile(official, ctx.obj['holidays'], from_year, to_year)

        if output:
            validated_output = validate_file_path_input(output, allow_create=True)
            SecureFileHandler.write_secure_file(
                validated_output,
                json.dumps(report.to_dict(), ensure_ascii=False, indent=2),
                permissions=SecureFileHandler.READABLE_FILE_PERMISSIONS
            )

    except BaseApplicationError as e:
        _abort(e, {"operation": "verify", "from_year": from_year, "to_year": to_year})

    click.echo(f"Checked {report.checked} dates ({from_year}-{to_year})")

    for holiday_date, official_name in report.missing:
        click.echo(f"  missing:  {holiday_date.isoformat()} {official_name}")
    for holiday_date, computed_name in report.extra:
        click.echo(f"  extra:    {holiday_date.isoformat()} {computed_name}")
    for holiday_date, computed_name, official_name in report.mismatched:
        click.echo(f"  mismatch: {holiday_date.isoformat()} {computed_name} != {official_name}")

    if output:
        click.echo(f"Report written to: {output}")

    if report.is_consistent:
        click.echo("OK: computed holidays match official data")
    else:
        click.echo(f"NG: {report.discrepancy_count} discrepancies found", err=True)
        ctx.exit(1)


if __name__ == '__main__':
    cli()
