"""
Command line entry point for the envelope budget.

Commands:
    init-db     Create the database tables
    assign      Set the amount assigned to a category for a month
    move        Move assigned money between two categories
    rta         Show Ready to Assign (optionally with its breakdown)
    refresh     Recompute category and credit card activity for a month
    reconcile   Reconcile an account against a statement balance

Amounts on the command line are display amounts (e.g. 12.50); they are
converted to milliunits before reaching the budget manager.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from tabulate import tabulate

from budget_engine import from_milliunits, to_milliunits
from budgeting import BudgetManager
from config_manager import get_budget_setting, load_config
from database_ops import DatabaseManager
from exceptions import BudgetAppError, ConfigError
from utils import ensure_data_dir, resolve_connection_string, resolve_log_path

# Configure module-level logger
logger = logging.getLogger(__name__)


def setup_logging(config: dict) -> None:
    """
    Configure logging based on config settings.

    Args:
        config: Configuration dictionary with logging settings
    """
    log_config = config.get("logging", {})
    level_name = str(log_config.get("level", "INFO")).upper()
    log_level = getattr(logging, level_name, None)
    log_format = log_config.get("format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    log_file = log_config.get("file")

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        try:
            log_path = resolve_log_path(log_file)
        except OSError as exc:
            raise RuntimeError(f"Unable to prepare log file path '{log_file}': {exc}") from exc
        handlers.append(logging.FileHandler(log_path))

    logging.basicConfig(
        level=log_level if isinstance(log_level, int) else logging.INFO,
        format=log_format,
        handlers=handlers,
        force=True
    )
    if not isinstance(log_level, int):
        logger.warning(f"Unknown log level '{level_name}', using INFO")


def _format_amount(value: int) -> str:
    return f"{from_milliunits(value):,.2f}"


def build_manager(config: dict, connection_string: str) -> BudgetManager:
    """Create the database manager (tables included) and wrap it in a BudgetManager."""
    db_manager = DatabaseManager(connection_string)
    db_manager.create_tables()
    return BudgetManager(db_manager, config=config)


def handle_init_db_command(args: argparse.Namespace, config: dict, connection_string: str) -> int:
    """Handle the init-db command."""
    build_manager(config, connection_string)
    print("Database initialized")
    return 0


def handle_assign_command(args: argparse.Namespace, config: dict, connection_string: str) -> int:
    """Handle the assign command."""
    manager = build_manager(config, connection_string)
    result = manager.update_budget_assignment(args.category_id, args.month, to_milliunits(args.amount))
    if result.should_skip:
        print("Nothing to assign")
        return 0
    print(tabulate(
        [[args.category_id, args.month, _format_amount(result.delta), _format_amount(result.new_available)]],
        headers=["Category", "Month", "Change", "Available"],
        tablefmt="simple"
    ))
    return 0


def handle_move_command(args: argparse.Namespace, config: dict, connection_string: str) -> int:
    """Handle the move command."""
    manager = build_manager(config, connection_string)
    result = manager.move_money(args.source_id, args.target_id, args.month, to_milliunits(args.amount))
    if not result.valid:
        print(f"Move rejected: {result.error.value}", file=sys.stderr)
        return 1
    print(f"Moved {_format_amount(result.clamped_amount)} from {args.source_id} to {args.target_id}")
    if result.warning:
        print(f"Warning: {result.warning.value}")
    return 0


def handle_rta_command(args: argparse.Namespace, config: dict, connection_string: str) -> int:
    """Handle the rta command."""
    manager = build_manager(config, connection_string)
    if not args.breakdown:
        print(f"Ready to Assign ({args.month}): {_format_amount(manager.get_ready_to_assign(args.month))}")
        return 0

    breakdown = manager.get_ready_to_assign_breakdown(args.month)
    rows = [
        ["Left over from previous month", _format_amount(breakdown.left_over_from_previous_month)],
        ["Inflow this month", _format_amount(breakdown.inflow_this_month)],
        ["Positive credit card balances", _format_amount(breakdown.positive_cc_balances)],
        ["Cash overspending last month", _format_amount(-breakdown.cash_overspending_previous_month)],
        ["Assigned this month", _format_amount(-breakdown.assigned_this_month)],
        ["Ready to Assign", _format_amount(breakdown.ready_to_assign)],
        ["Assigned in future months", _format_amount(breakdown.assigned_in_future)],
    ]
    print(tabulate(rows, headers=["", args.month], tablefmt="simple"))
    return 0


def handle_refresh_command(args: argparse.Namespace, config: dict, connection_string: str) -> int:
    """Handle the refresh command."""
    manager = build_manager(config, connection_string)
    refreshed = manager.refresh_all_budget_activity(args.month)
    print(f"Refreshed {refreshed} categories for {args.month}")
    return 0


def handle_reconcile_command(args: argparse.Namespace, config: dict, connection_string: str) -> int:
    """Handle the reconcile command."""
    manager = build_manager(config, connection_string)
    count = manager.db_manager.reconcile_account(
        args.account_id,
        to_milliunits(args.statement_balance),
        tolerance=int(get_budget_setting(config, 'reconcile_tolerance'))
    )
    print(f"Reconciled {count} transactions")
    return 0


COMMAND_HANDLERS = {
    "init-db": handle_init_db_command,
    "assign": handle_assign_command,
    "move": handle_move_command,
    "rta": handle_rta_command,
    "refresh": handle_refresh_command,
    "reconcile": handle_reconcile_command,
}


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        description="Envelope budget manager",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("init-db", help="Create database tables")

    assign_parser = subparsers.add_parser("assign", help="Assign money to a category")
    assign_parser.add_argument("category_id", type=int, help="Category ID")
    assign_parser.add_argument("month", type=str, help="Month (YYYY-MM)")
    assign_parser.add_argument("amount", type=float, help="Amount to assign")

    move_parser = subparsers.add_parser("move", help="Move money between categories")
    move_parser.add_argument("source_id", type=int, help="Category to move money from")
    move_parser.add_argument("target_id", type=int, help="Category to move money to")
    move_parser.add_argument("month", type=str, help="Month (YYYY-MM)")
    move_parser.add_argument("amount", type=float, help="Amount to move")

    rta_parser = subparsers.add_parser("rta", help="Show Ready to Assign")
    rta_parser.add_argument("month", type=str, help="Month (YYYY-MM)")
    rta_parser.add_argument("--breakdown", action="store_true", help="Show the breakdown")

    refresh_parser = subparsers.add_parser("refresh", help="Recompute activity for a month")
    refresh_parser.add_argument("month", type=str, help="Month (YYYY-MM)")

    reconcile_parser = subparsers.add_parser("reconcile", help="Reconcile an account")
    reconcile_parser.add_argument("account_id", type=int, help="Account ID")
    reconcile_parser.add_argument("statement_balance", type=float, help="Statement balance")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Handle case where no command is provided
    if not args.command:
        parser.print_help()
        return 1

    try:
        config = load_config(Path(args.config))
    except ConfigError as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return 1

    try:
        ensure_data_dir(config)
    except OSError as exc:
        print(f"Failed to prepare data directory: {exc}", file=sys.stderr)
        return 1

    setup_logging(config)
    connection_string = resolve_connection_string(config)

    try:
        return COMMAND_HANDLERS[args.command](args, config, connection_string)
    except BudgetAppError as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
