"""
CLI main entry point.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from ..config import Config, ConfigValidationError, create_default_config, load_config
from ..errors import ReconciliationError
from ..services import (
    ForecastImportService,
    GLImportService,
    ImportResult,
    ReconciliationService,
    RecordService,
)
from ..state_store import StateStore

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def create_cli() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="gl-reconcile",
        description="Import GL extracts and order forecasts, and reconcile them per period",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config.yaml"),
        help="Path to config file (default: config.yaml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    subparsers.add_parser("init-config", help="Write a default config file")

    # import commands
    import_gl_parser = subparsers.add_parser("import-gl", help="Import a GL ledger extract (CSV)")
    import_gl_parser.add_argument("file", type=Path, help="22-column GL CSV file")
    import_gl_parser.add_argument(
        "--encoding",
        type=str,
        help="Explicit file encoding (default: configured value, else auto-detect)",
    )

    import_fc_parser = subparsers.add_parser(
        "import-forecasts", help="Bulk-load order forecasts (CSV)"
    )
    import_fc_parser.add_argument("file", type=Path, help="5-column forecast CSV file")
    import_fc_parser.add_argument("--encoding", type=str, help="Explicit file encoding")

    # reconciliation commands
    reconcile_parser = subparsers.add_parser("reconcile", help="Run reconciliation for a period")
    reconcile_parser.add_argument("period", type=str, help="Accounting period (YYYY-MM)")
    reconcile_parser.add_argument("--json", action="store_true", help="Print the result as JSON")

    for name, help_text in (
        ("match", "Force-match a GL entry with an order forecast"),
        ("unmatch", "Clear the match between a GL entry and an order forecast"),
    ):
        pair_parser = subparsers.add_parser(name, help=help_text)
        pair_parser.add_argument("--gl-id", type=int, required=True, help="GL entry id")
        pair_parser.add_argument("--order-id", type=int, required=True, help="Order forecast id")

    # exclusion commands
    for name, help_text in (
        ("exclude", "Exclude records from reconciliation"),
        ("include", "Re-include excluded records"),
    ):
        toggle_parser = subparsers.add_parser(name, help=help_text)
        toggle_parser.add_argument("kind", choices=["forecast", "gl"], help="Record type")
        toggle_parser.add_argument("ids", type=int, nargs="+", help="Record ids")
        if name == "exclude":
            toggle_parser.add_argument("--reason", type=str, help="Exclusion reason")

    delete_parser = subparsers.add_parser(
        "delete-period", help="Delete a period's GL entries (counterparts are unmatched first)"
    )
    delete_parser.add_argument("period", type=str, help="Accounting period (YYYY-MM)")
    delete_parser.add_argument(
        "--forecasts",
        action="store_true",
        help="Delete the period's order forecasts instead of its GL entries",
    )

    # reporting commands
    logs_parser = subparsers.add_parser("logs", help="Show reconciliation run logs")
    logs_parser.add_argument("--period", type=str, help="Exact period (YYYY-MM)")
    logs_parser.add_argument("--from", dest="period_from", type=str, help="First period")
    logs_parser.add_argument("--to", dest="period_to", type=str, help="Last period")
    logs_parser.add_argument(
        "--sort-by", choices=["executed_at", "period"], default="executed_at"
    )
    logs_parser.add_argument("--asc", action="store_true", help="Oldest first")
    logs_parser.add_argument("--limit", type=int, default=20, help="Maximum logs (default: 20)")
    logs_parser.add_argument("--offset", type=int, default=0)
    logs_parser.add_argument("--latest", action="store_true", help="Only the most recent log")
    logs_parser.add_argument("--stats", action="store_true", help="Aggregate statistics")
    logs_parser.add_argument("--json", action="store_true", help="Print as JSON")

    summary_parser = subparsers.add_parser("summary", help="Per-account summary for a period")
    summary_parser.add_argument("period", type=str, help="Accounting period (YYYY-MM)")
    summary_parser.add_argument("--json", action="store_true", help="Print as JSON")

    status_parser = subparsers.add_parser("status", help="Show record counts and statistics")
    status_parser.add_argument("--period", type=str, help="Restrict statistics to one period")

    return parser


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _print_import_result(label: str, result: ImportResult) -> None:
    print(f"\n📥 {label} import ({result.encoding})")
    print("=" * 40)
    print(f"  Rows read:     {result.total_rows}")
    print(f"  Imported:      {result.imported_rows}")
    print(f"  Skipped:       {result.skipped_rows}")
    print(f"  Errors:        {len(result.errors)}")
    if result.periods:
        print(f"  Periods:       {', '.join(result.periods)}")
    for error in result.errors:
        print(f"   - row {error.row}: {error.message}")
    print()


def cmd_init_config(config_path: Path) -> int:
    """Write a default config file."""
    if config_path.exists():
        print(f"❌ {config_path} already exists")
        return 1
    create_default_config(config_path)
    print(f"✓ Wrote default config to {config_path}")
    return 0


def cmd_import_gl(config: Config, file: Path, encoding: str | None) -> int:
    """Import a GL extract."""
    print(f"📄 Importing GL extract {file}...")
    store = StateStore(config.state_db_path)
    result = GLImportService(store, config).import_from_file(file, encoding=encoding)
    _print_import_result("GL", result)
    print(f"✓ Imported {result.imported_rows} GL entries")
    return 0


def cmd_import_forecasts(config: Config, file: Path, encoding: str | None) -> int:
    """Bulk-load order forecasts."""
    print(f"📄 Importing forecasts {file}...")
    store = StateStore(config.state_db_path)
    result = ForecastImportService(store, config).import_from_file(file, encoding=encoding)
    _print_import_result("Forecast", result)
    print(f"✓ Imported {result.imported_rows} order forecasts")
    return 0


def cmd_reconcile(config: Config, period: str, as_json: bool = False) -> int:
    """Run reconciliation for one period."""
    store = StateStore(config.state_db_path)
    service = ReconciliationService(store, config)

    if not as_json:
        print(f"🔄 Reconciling {period}...")
    result = service.execute_reconciliation(period)

    if as_json:
        _print_json(result.to_dict())
        return 0 if result.success else 1

    print()
    print("📊 Reconciliation Results")
    print("=" * 40)
    print(f"  Status:              {result.state.value}")
    print(f"  Matched:             {result.matched_count}")
    print(f"  Unmatched forecasts: {result.unmatched_order_count}")
    print(f"  Unmatched GL:        {result.unmatched_gl_count}")
    print(f"  Total forecasts:     {result.total_order_count}")
    print(f"  Total GL entries:    {result.total_gl_count}")
    print(f"  Already matched:     {result.already_matched_count}")
    print(f"  Excluded:            {result.excluded_count}")
    print(f"  Duration:            {result.duration_ms}ms")
    print()

    if result.errors:
        print("⚠️  Pair commits rolled back:")
        for error in result.errors:
            print(f"   - {error}")
        return 1

    print(f"✓ Reconciliation completed (log #{result.log_id})")
    return 0


def cmd_match(config: Config, gl_id: int, order_id: int) -> int:
    """Force-match a pair."""
    service = ReconciliationService(StateStore(config.state_db_path), config)
    service.manual_reconcile(gl_id, order_id)
    print(f"✓ Matched GL entry {gl_id} with forecast {order_id}")
    return 0


def cmd_unmatch(config: Config, gl_id: int, order_id: int) -> int:
    """Clear a pair."""
    service = ReconciliationService(StateStore(config.state_db_path), config)
    if service.unmatch_reconciliation(gl_id, order_id):
        print(f"✓ Unmatched GL entry {gl_id} and forecast {order_id}")
    else:
        print(f"ℹ️  GL entry {gl_id} and forecast {order_id} were not matched")
    return 0


def cmd_toggle_exclusion(
    config: Config, kind: str, ids: list[int], is_excluded: bool, reason: str | None = None
) -> int:
    """Exclude or re-include records."""
    records = RecordService(StateStore(config.state_db_path))
    if kind == "forecast":
        updated = records.set_forecast_exclusion(ids, is_excluded, reason)
    else:
        updated = records.set_gl_exclusion(ids, is_excluded, reason)

    action = "Excluded" if is_excluded else "Re-included"
    print(f"✓ {action} {updated} of {len(set(ids))} record(s)")
    return 0


def cmd_delete_period(config: Config, period: str, forecasts: bool = False) -> int:
    """Delete all GL entries (or forecasts) of a period."""
    store = StateStore(config.state_db_path)
    if forecasts:
        deleted = RecordService(store).delete_forecasts_by_period(period)
        print(f"🗑️  Deleted {deleted} forecast(s) for {period}")
    else:
        deleted = ReconciliationService(store, config).delete_by_period(period)
        print(f"🗑️  Deleted {deleted} GL entr{'y' if deleted == 1 else 'ies'} for {period}")
    return 0


def cmd_logs(config: Config, parsed: argparse.Namespace) -> int:
    """Show reconciliation logs, the latest log, or aggregate statistics."""
    service = ReconciliationService(StateStore(config.state_db_path), config)

    if parsed.stats:
        stats = service.get_statistics()
        if parsed.json:
            _print_json(stats)
            return 0
        print("\n📊 Reconciliation Statistics")
        print("=" * 40)
        print(f"  Runs:                 {stats['total_runs']}")
        print(f"  Matched (total):      {stats['total_matched']}")
        print(f"  Unmatched forecasts:  {stats['total_unmatched_orders']}")
        print(f"  Unmatched GL:         {stats['total_unmatched_gl']}")
        print(f"  Average match rate:   {stats['average_match_rate']:.2f}%")
        print(f"  Last run:             {stats['last_executed_at'] or '-'}")
        print()
        return 0

    if parsed.latest:
        logs, total = [service.get_latest_log(parsed.period)], 1
    else:
        logs, total = service.list_logs(
            period=parsed.period,
            period_from=parsed.period_from,
            period_to=parsed.period_to,
            sort_by=parsed.sort_by,
            sort_order="asc" if parsed.asc else "desc",
            limit=parsed.limit,
            offset=parsed.offset,
        )

    if parsed.json:
        _print_json({"total": total, "logs": [log.to_dict() for log in logs]})
        return 0

    print(f"\n📜 Reconciliation logs ({len(logs)} of {total})")
    print("=" * 72)
    for log in logs:
        print(
            f"  #{log.id:<5} {log.period}  {log.executed_at}  "
            f"matched={log.matched_count} unmatched={log.unmatched_order_count}/"
            f"{log.unmatched_gl_count} total={log.total_order_count}/{log.total_gl_count}"
        )
    print()
    return 0


def cmd_summary(config: Config, period: str, as_json: bool = False) -> int:
    """Per-account summary for a period."""
    service = ReconciliationService(StateStore(config.state_db_path), config)
    summary = service.account_summary(period)

    if as_json:
        _print_json(summary)
        return 0

    print(f"\n📊 Account summary {period}")
    print("=" * 72)
    print(f"  {'Account':<24} {'GL':>14} {'Forecast':>14} {'Difference':>14}")
    for row in summary["differences"]:
        label = f"{row['account_code']} {row['account_name']}"
        print(
            f"  {label:<24} {row['gl_amount']:>14} {row['order_amount']:>14} "
            f"{row['difference']:>14}"
        )
    totals = summary["totals"]
    print(
        f"  {'Total':<24} {totals['gl_amount']:>14} {totals['order_amount']:>14} "
        f"{totals['difference']:>14}"
    )
    print()
    return 0


def cmd_status(config: Config, period: str | None = None) -> int:
    """Show record counts and statistics."""
    store = StateStore(config.state_db_path)
    records = RecordService(store)
    stats = store.get_stats()
    gl_stats = records.gl_statistics(period)
    forecast_stats = records.forecast_statistics(period)

    scope = f" ({period})" if period else ""
    print(f"\n📊 Reconciliation Status{scope}")
    print("=" * 40)
    print(f"  Forecasts:              {forecast_stats['total_count']}")
    print(f"    matched:              {forecast_stats['matched_count']}")
    print(f"    unmatched:            {forecast_stats['unmatched_count']}")
    print(f"    excluded:             {forecast_stats['excluded_count']}")
    print(f"  GL entries:             {gl_stats['total_count']}")
    print(f"    matched:              {gl_stats['matched_count']}")
    print(f"    unmatched:            {gl_stats['unmatched_count']}")
    print(f"    excluded:             {gl_stats['excluded_count']}")
    print(f"  GL debit total:         {gl_stats['total_debit_amount']}")
    print(f"  GL credit total:        {gl_stats['total_credit_amount']}")
    print(f"  GL matched amount:      {gl_stats['matched_amount']}")
    print(f"  GL periods loaded:      {stats['gl_periods']}")
    print(f"  Reconciliation runs:    {stats['reconciliation_logs']}")
    print()

    return 0


def _run_command(config: Config, parsed: argparse.Namespace) -> int:
    if parsed.command == "import-gl":
        return cmd_import_gl(config, parsed.file, parsed.encoding)
    elif parsed.command == "import-forecasts":
        return cmd_import_forecasts(config, parsed.file, parsed.encoding)
    elif parsed.command == "reconcile":
        return cmd_reconcile(config, parsed.period, parsed.json)
    elif parsed.command == "match":
        return cmd_match(config, parsed.gl_id, parsed.order_id)
    elif parsed.command == "unmatch":
        return cmd_unmatch(config, parsed.gl_id, parsed.order_id)
    elif parsed.command == "exclude":
        return cmd_toggle_exclusion(config, parsed.kind, parsed.ids, True, parsed.reason)
    elif parsed.command == "include":
        return cmd_toggle_exclusion(config, parsed.kind, parsed.ids, False)
    elif parsed.command == "delete-period":
        return cmd_delete_period(config, parsed.period, parsed.forecasts)
    elif parsed.command == "logs":
        return cmd_logs(config, parsed)
    elif parsed.command == "summary":
        return cmd_summary(config, parsed.period, parsed.json)
    elif parsed.command == "status":
        return cmd_status(config, parsed.period)
    return 1


def main(args: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_cli()
    parsed = parser.parse_args(args)

    setup_logging(parsed.verbose)

    if not parsed.command:
        parser.print_help()
        return 1

    if parsed.command == "init-config":
        return cmd_init_config(parsed.config)

    # Load config
    try:
        config = load_config(parsed.config)
        problems = config.validate()
        if problems:
            raise ConfigValidationError("; ".join(problems))
    except (ConfigValidationError, OSError, ValueError) as e:
        print(f"❌ Failed to load config: {e}")
        return 1

    try:
        return _run_command(config, parsed)
    except ReconciliationError as e:
        payload = e.to_dict(include_detail=not config.is_production)
        print(f"❌ {payload['message']}")
        if "detail" in payload:
            print(f"   {json.dumps(payload['detail'], ensure_ascii=False)}")
        logger.debug("Command %s failed", parsed.command, exc_info=True)
        return 2 if e.status_code < 500 else 1


if __name__ == "__main__":
    sys.exit(main())
