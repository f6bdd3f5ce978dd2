"""GlowGuard CLI — operate the product-safety enforcement engine."""

import logging
from dataclasses import replace
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from glowguard import __version__
from glowguard.config import Settings

console = Console()

_SEVERITY_STYLES = {"critical": "bold red", "high": "red", "medium": "yellow", "low": "dim"}
_STATUS_STYLES = {"ACTIVE": "green", "LOCKED": "yellow", "BANNED": "bold red"}


def _context(ctx: click.Context):
    """Build the service context on first use and reuse it afterwards."""
    from glowguard.context import create_context

    if "services" not in ctx.obj:
        services = create_context(ctx.obj["settings"], use_advisory=ctx.obj["advisory"])
        ctx.call_on_close(services.close)
        ctx.obj["services"] = services
    return ctx.obj["services"]


def _fail(message: str, code: str = "") -> None:
    suffix = f" [dim]({code})[/]" if code else ""
    console.print(f"[red]x[/] {message}{suffix}")
    raise SystemExit(1)


@click.group()
@click.version_option(version=__version__)
@click.option("--home", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Data directory (default: $GLOWGUARD_HOME or ~/.glowguard)")
@click.option("--log-level", default="WARNING",
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False))
@click.option("--advisory/--no-advisory", default=True, help="Consult the AI advisory check when scanning")
@click.pass_context
def main(ctx: click.Context, home: Path | None, log_level: str, advisory: bool):
    """GlowGuard — product-safety enforcement for marketplace sellers.

    Screens ingredient lists against the toxicity registry and manages
    the warning, lock and ban ladder with its appeals process.
    """
    logging.basicConfig(
        level=log_level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )
    settings = Settings.from_env()
    if home is not None:
        settings = replace(settings, home=home)
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    ctx.obj["advisory"] = advisory


# ── Registry ─────────────────────────────────────────────────────────


@main.group()
def registry():
    """Manage the toxicity registry."""


@registry.command()
@click.option("--file", "-f", "seed_file", default=None, help="Seed YAML (default: bundled dataset)")
@click.pass_context
def seed(ctx: click.Context, seed_file: str | None):
    """Import substances from a seed file. Existing names are skipped."""
    from glowguard.registry.seed import load_seed_file

    try:
        substances = load_seed_file(seed_file)
    except ValueError as e:
        _fail(str(e))
    result = _context(ctx).registry.seed(substances)
    console.print(
        f"[green]v[/] Seeded registry: {result.added} added, {result.skipped} already existed "
        f"({result.total} in seed)"
    )
    for error in result.errors:
        console.print(f"  [yellow]![/] {error}")


@registry.command(name="list")
@click.option("--severity", "-s", default=None,
              type=click.Choice(["critical", "high", "medium", "low"]), help="Filter by severity")
@click.pass_context
def list_substances(ctx: click.Context, severity: str | None):
    """List registry substances, most severe first."""
    substances = _context(ctx).registry.list_all()
    if severity:
        substances = [s for s in substances if s.severity.value == severity]
    if not substances:
        console.print("[yellow]Registry is empty. Run 'glowguard registry seed'.[/]")
        return

    table = Table(title=f"Toxicity Registry ({len(substances)} substances)")
    table.add_column("Name", style="cyan")
    table.add_column("Severity")
    table.add_column("Aliases")
    table.add_column("Reason")
    for s in substances:
        style = _SEVERITY_STYLES[s.severity.value]
        table.add_row(s.name, f"[{style}]{s.severity.value}[/]", ", ".join(s.aliases[:4]), s.reason[:60])
    console.print(table)


@registry.command()
@click.argument("name")
@click.option("--severity", "-s", default="medium", type=click.Choice(["critical", "high", "medium", "low"]))
@click.option("--alias", "-a", "aliases", multiple=True, help="Alternative name (repeatable)")
@click.option("--reason", "-r", default="", help="Why the substance is restricted")
@click.pass_context
def add(ctx: click.Context, name: str, severity: str, aliases: tuple, reason: str):
    """Add a single substance to the registry."""
    from glowguard.registry.models import ToxicSubstance

    substance = ToxicSubstance(name=name, severity=severity, aliases=list(aliases), reason=reason)
    result = _context(ctx).registry.add_substance(substance)
    if not result.success:
        _fail(result.message, result.code)
    console.print(f"[green]v[/] {result.message}")


@registry.command()
@click.pass_context
def stats(ctx: click.Context):
    """Show registry counts by severity."""
    from glowguard.registry.seed import load_seed_file

    services = _context(ctx)
    seed_names = {s.name for s in load_seed_file()}
    available = len(seed_names - {s.name for s in services.registry.snapshot()})
    result = services.registry.stats(available_to_seed=available)

    table = Table(title=f"Registry v{services.registry.version}")
    table.add_column("Severity")
    table.add_column("Count", justify="right")
    for name, count in result.by_severity.items():
        table.add_row(f"[{_SEVERITY_STYLES[name]}]{name}[/]", str(count))
    console.print(table)
    console.print(f"  Total: {result.total_in_registry}  Available to seed: {result.available_to_seed}")


@registry.command(name="validate")
@click.argument("seed_file")
def validate_seed(seed_file: str):
    """Check a seed YAML file without importing it."""
    import yaml

    from glowguard.registry.seed import validate_seed_data

    try:
        with open(seed_file, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        _fail(f"Failed to parse: {e}")

    issues = validate_seed_data(data)
    if issues:
        console.print("[red]Seed validation FAILED:[/]")
        for issue in issues:
            console.print(f"  [red]x[/] {issue}")
        raise SystemExit(1)
    console.print(f"[green]v[/] {len(data['substances'])} substances, no issues")


# ── Scan ─────────────────────────────────────────────────────────────


@main.command()
@click.argument("ingredients")
@click.option("--name", "-n", "product_name", default="", help="Product name")
@click.option("--description", "-d", default="", help="Product description")
@click.pass_context
def scan(ctx: click.Context, ingredients: str, product_name: str, description: str):
    """Screen an ingredient list against the registry."""
    verdict = _context(ctx).scanner.scan(ingredients, product_name, description)

    flags = verdict.blocking + verdict.warnings
    if flags:
        table = Table(title="Flagged Ingredients")
        table.add_column("Ingredient", style="cyan")
        table.add_column("Severity")
        table.add_column("Match")
        table.add_column("Blocks", justify="center")
        table.add_column("Reason")
        for flag in flags:
            style = _SEVERITY_STYLES[flag.severity.value]
            table.add_row(
                flag.name,
                f"[{style}]{flag.severity.value}[/]",
                flag.match_kind.value,
                "yes" if flag in verdict.blocking else "",
                flag.reason[:70],
            )
        console.print(table)

    status = "[green]SAFE[/]" if verdict.safe else "[red]BLOCKED[/]"
    console.print(Panel(f"{status}  {verdict.message}", title=f"Severity: {verdict.severity}"))
    if verdict.error:
        console.print(f"  [yellow]![/] {verdict.error}")
    if not verdict.safe:
        raise SystemExit(2)


# ── Sellers ──────────────────────────────────────────────────────────


@main.group()
def seller():
    """Inspect and administer seller accounts."""


@seller.command()
@click.argument("seller_id")
@click.argument("email")
@click.option("--name", "full_name", default="", help="Seller's full name")
@click.pass_context
def register(ctx: click.Context, seller_id: str, email: str, full_name: str):
    """Register a seller account."""
    result = _context(ctx).penalties.register_seller(seller_id, email, full_name)
    if not result.success:
        _fail(result.message, result.code)
    console.print(f"[green]v[/] Registered seller {seller_id}")


@seller.command()
@click.argument("seller_id")
@click.pass_context
def status(ctx: click.Context, seller_id: str):
    """Show a seller's account status."""
    account = _context(ctx).penalties.get_account_status(seller_id)
    if account is None:
        _fail("Seller not found", "SELLER_NOT_FOUND")

    style = _STATUS_STYLES[account.account_status.value]
    lines = [
        f"Status:      [{style}]{account.account_status.value}[/]",
        f"Violations:  {account.violation_count}",
        f"Probation:   {'yes (since ' + account.probation_started_at + ')' if account.is_under_probation else 'no'}",
        f"Last strike: {account.last_violation_at or '-'}",
    ]
    console.print(Panel("\n".join(lines), title=f"{account.id} <{account.email}>"))


@seller.command()
@click.argument("seller_id")
@click.pass_context
def violations(ctx: click.Context, seller_id: str):
    """List a seller's violations, newest first."""
    history = _context(ctx).penalties.get_violation_history(seller_id)
    if not history:
        console.print("[yellow]No violations recorded.[/]")
        return
    _print_violations(history, title=f"Violations for {seller_id}")


@seller.command()
@click.argument("seller_id")
@click.option("--admin", "admin_id", required=True, help="Admin performing the unlock")
@click.pass_context
def unlock(ctx: click.Context, seller_id: str, admin_id: str):
    """Unlock a seller and place them on probation."""
    result = _context(ctx).penalties.unlock_account(seller_id, admin_id)
    if not result.success:
        _fail(result.message, result.code)
    console.print(f"[green]v[/] {result.message}")


@seller.command(name="problems")
@click.pass_context
def problem_sellers(ctx: click.Context):
    """List sellers with strikes or a locked/banned account."""
    sellers = _context(ctx).penalties.list_problem_sellers()
    if not sellers:
        console.print("[green]No problem sellers.[/]")
        return
    table = Table(title=f"Problem Sellers ({len(sellers)})")
    table.add_column("Seller", style="cyan")
    table.add_column("Email")
    table.add_column("Status")
    table.add_column("Strikes", justify="right")
    table.add_column("Probation", justify="center")
    for s in sellers:
        style = _STATUS_STYLES[s.account_status.value]
        table.add_row(
            s.id, s.email, f"[{style}]{s.account_status.value}[/]",
            str(s.violation_count), "yes" if s.is_under_probation else "",
        )
    console.print(table)


def _print_violations(views, title: str) -> None:
    table = Table(title=title)
    table.add_column("Violation", style="dim")
    table.add_column("Seller", style="cyan")
    table.add_column("Product")
    table.add_column("#", justify="right")
    table.add_column("Penalty")
    table.add_column("Substances")
    table.add_column("Appeal")
    table.add_column("Created")
    for view in views:
        v = view.violation
        table.add_row(
            v.id[:8],
            v.seller_id,
            v.product_name,
            str(v.violation_number),
            v.penalty_applied.value,
            ", ".join(s.get("name", "") for s in v.detected_substances),
            view.appeal_status.value if view.appeal_status else "-",
            v.created_at[:19],
        )
    console.print(table)


# ── Appeals ──────────────────────────────────────────────────────────


@main.group()
def appeal():
    """Submit and review violation appeals."""


@appeal.command()
@click.argument("seller_id")
@click.argument("violation_id")
@click.argument("reason")
@click.pass_context
def submit(ctx: click.Context, seller_id: str, violation_id: str, reason: str):
    """Appeal a violation on behalf of a seller."""
    result = _context(ctx).appeals.submit_appeal(seller_id, violation_id, reason)
    if not result.success:
        if result.cooldown_ends_at:
            console.print(f"  Cooldown ends at {result.cooldown_ends_at}")
        _fail(result.message, result.code)
    console.print(f"[green]v[/] {result.message} (appeal {result.appeal_id})")


@appeal.command()
@click.argument("appeal_id")
@click.argument("decision", type=click.Choice(["approved", "rejected"]))
@click.option("--admin", "admin_id", required=True, help="Reviewing admin")
@click.option("--notes", default="", help="Notes recorded with the decision")
@click.pass_context
def review(ctx: click.Context, appeal_id: str, decision: str, admin_id: str, notes: str):
    """Approve or reject a pending appeal."""
    result = _context(ctx).appeals.review_appeal(appeal_id, admin_id, decision, notes)
    if not result.success:
        _fail(result.message, result.code)
    console.print(f"[green]v[/] {result.message}")
    if result.account_unlocked:
        console.print("  Account unlocked and placed on probation")


@appeal.command(name="list")
@click.option("--status", "-s", "status_filter", default="pending",
              type=click.Choice(["pending", "approved", "rejected", "all"]))
@click.pass_context
def list_appeals(ctx: click.Context, status_filter: str):
    """List appeals (pending by default)."""
    appeals = _context(ctx).appeals.list_appeals(None if status_filter == "all" else status_filter)
    if not appeals:
        console.print("[yellow]No appeals found.[/]")
        return
    table = Table(title=f"Appeals ({len(appeals)})")
    table.add_column("Appeal", style="dim")
    table.add_column("Seller", style="cyan")
    table.add_column("Violation", style="dim")
    table.add_column("Status")
    table.add_column("Reason")
    table.add_column("Submitted")
    for a in appeals:
        table.add_row(a.id, a.seller_id, a.violation_id[:8], a.status.value, a.reason[:50], a.created_at[:19])
    console.print(table)


@appeal.command(name="violations")
@click.option("--appeal-status", default=None,
              type=click.Choice(["pending", "approved", "rejected", "no_appeal"]))
@click.pass_context
def list_violations(ctx: click.Context, appeal_status: str | None):
    """List all violations, optionally filtered by appeal status."""
    views = _context(ctx).appeals.list_violations(appeal_status)
    if not views:
        console.print("[yellow]No violations found.[/]")
        return
    _print_violations(views, title=f"Violations ({len(views)})")


# ── Blacklist ────────────────────────────────────────────────────────


@main.group()
def blacklist():
    """Query the banned-email blacklist."""


@blacklist.command()
@click.argument("email")
@click.pass_context
def check(ctx: click.Context, email: str):
    """Check whether an email is blacklisted."""
    result = _context(ctx).penalties.is_blacklisted(email)
    if result.blacklisted:
        console.print(f"[red]BLACKLISTED[/] {email}: {result.reason}")
        raise SystemExit(1)
    console.print(f"[green]v[/] {email} is not blacklisted")


@blacklist.command(name="list")
@click.pass_context
def list_blacklist(ctx: click.Context):
    """List blacklisted emails."""
    entries = _context(ctx).penalties.list_blacklist()
    if not entries:
        console.print("[yellow]Blacklist is empty.[/]")
        return
    table = Table(title=f"Blacklist ({len(entries)})")
    table.add_column("Email", style="cyan")
    table.add_column("Seller")
    table.add_column("Reason")
    table.add_column("Banned")
    for e in entries:
        table.add_row(e.email, e.original_user_id, e.ban_reason, e.created_at[:19])
    console.print(table)


if __name__ == "__main__":
    main()
