"""CLI commands for Connex."""

import dataclasses
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from connex import __version__
from connex.core.config import (
    CONFIG_KEYS,
    ConnexConfig,
    get_config_display,
    get_config_path,
    get_setting_value,
    load_config,
    reset_config,
    update_config,
)
from connex.core.constants import (
    DEFAULT_EXPLORATION_DEPTH,
    EXIT_CONFIG_ERROR,
    EXIT_INTERNAL_ERROR,
    EXIT_SUCCESS,
    EXIT_USER_ERROR,
    MAX_EXPLORATION_DEPTH,
    NODE_PERSON,
)
from connex.core.engine import build_context, who_to_talk_to
from connex.core.exceptions import ConfigError, InputError
from connex.core.graph import EntityGraph
from connex.core.graph_ops import (
    extract_neighborhood,
    find_bridge_opportunities,
    find_help_matches,
    find_path,
    find_shared_context,
    suggest_bridge_intro,
)
from connex.core.loaders import load_graph, load_profile, load_profiles, load_transcript
from connex.core.matching import format_node_suggestions, fuzzy_find_node
from connex.core.types import (
    BridgeOpportunity,
    DiscoveryContext,
    Node,
    Profile,
    Recommendation,
    ScanReport,
)
from connex.viz import render_ascii

logger = logging.getLogger(__name__)
console = Console()
error_console = Console(stderr=True)

INPUT_FILE = click.Path(exists=True, dir_okay=False, path_type=Path)
REFERENCE_TIME = click.DateTime(formats=["%Y-%m-%d", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M:%S"])

URGENCY_STYLES: dict[str, str] = {
    "urgent": "red bold",
    "high": "yellow",
    "normal": "blue",
}


def _configure_logging(debug: bool) -> None:
    """Configure logging levels based on debug flag."""
    if debug:
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@contextmanager
def _command_errors(command: str) -> Iterator[None]:
    """Map errors raised inside a command to exit codes and messages."""
    try:
        yield
    except InputError as e:
        error_console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise SystemExit(EXIT_USER_ERROR)
    except ConfigError as e:
        error_console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        raise SystemExit(EXIT_CONFIG_ERROR)
    except SystemExit:
        raise
    except Exception:
        logger.exception("Unhandled exception in %s command", command)
        error_console.print("[red]Unexpected error[/red]")
        raise SystemExit(EXIT_INTERNAL_ERROR)


def _load_context(
    transcript: Path, graph_path: Path | None, now: datetime | None = None
) -> DiscoveryContext:
    messages, members = load_transcript(transcript)
    extra_graph = load_graph(graph_path) if graph_path is not None else None
    return build_context(messages, members, now or datetime.now(), extra_graph)


def _resolve_node(graph: EntityGraph, query: str, node_type: str | None = None) -> Node:
    """Find a node by name or exit with suggestions."""
    match_result = fuzzy_find_node(graph, query, node_type=node_type)
    if match_result.match is None:
        error_console.print(f"[red]Error:[/red] '{escape(query)}' not found in graph.")
        console.print()
        console.print(format_node_suggestions(match_result.suggestions))
        raise SystemExit(EXIT_USER_ERROR)

    if not match_result.is_exact:
        console.print(
            f"[dim]Matched: {escape(match_result.match.label)} "
            f"(score: {match_result.score:.0f}%)[/dim]"
        )
    return match_result.match


def format_recommendation(rec: Recommendation, rank: int) -> Panel:
    """Build the panel shown for one recommendation.

    Args:
        rec: The recommendation to display.
        rank: 1-based position in the ranking.

    Returns:
        A Rich panel with reasons, timing, warm path, outreach and evidence.
    """
    lines: list[str] = ["[bold]Why:[/bold]"]
    lines.extend(f"  • {escape(s.description)}" for s in rec.signals[:5])

    if rec.timing is not None:
        detail = rec.timing.location or rec.timing.detail
        lines.append("")
        lines.append(
            f"[bold]Timing:[/bold] {rec.timing.type} ({escape(detail)}, "
            f"{rec.timing.days_since} days ago)"
        )

    if rec.warm_path is not None:
        lines.append(f"[bold]Warm path:[/bold] {escape(rec.warm_path.description)}")

    if rec.activation is not None:
        lines.append("")
        lines.append(f"[bold]Next step:[/bold] {escape(rec.activation.action)}")
        lines.append(f'[italic]"{escape(rec.activation.message)}"[/italic]')

    if rec.evidence:
        lines.append("")
        lines.append("[dim]Evidence:[/dim]")
        lines.extend(f'[dim]  "{escape(e.quote)}"[/dim]' for e in rec.evidence)

    urgency = rec.activation.urgency if rec.activation is not None else "normal"
    return Panel(
        "\n".join(lines),
        title=f"[bold]#{rank} {escape(rec.person)}[/bold]",
        subtitle=f"Score: {rec.score}   Urgency: {urgency}",
        border_style=URGENCY_STYLES.get(urgency, "blue"),
    )


def format_bridge(opportunity: BridgeOpportunity) -> Panel:
    """Build the panel shown for one bridge opportunity."""
    opp = opportunity
    lines = [
        f"[bold]{escape(opp.person_a)}[/bold] ──wants to meet──► "
        f"[bold]{escape(opp.person_b)}[/bold]",
        "You know both.",
        "",
        f"What {escape(opp.person_a)} wants: {escape(opp.what_a_wants)}",
        f"You → {escape(opp.person_a)}: {opp.your_relationship_to_a}",
        f"You → {escape(opp.person_b)}: {opp.your_relationship_to_b}",
        "",
        f'[italic]"{escape(suggest_bridge_intro(opp))}"[/italic]',
    ]
    return Panel(
        "\n".join(lines),
        title="[bold]BRIDGE OPPORTUNITY[/bold]",
        subtitle=f"Strength: {opp.strength}",
        border_style="green",
    )


def display_report(report: ScanReport) -> None:
    title = f"[bold]Who to talk to: {escape(report.requester.name)}[/bold]"
    console.print(Panel(escape(report.summary), title=title))
    for rank, rec in enumerate(report.recommendations, start=1):
        console.print(format_recommendation(rec, rank))
    for opportunity in report.bridges:
        console.print(format_bridge(opportunity))
    stats = report.stats
    console.print(
        f"[dim]{stats.get('messages', 0)} messages, {stats.get('intents', 0)} intents, "
        f"{stats.get('timing_signals', 0)} timing signals, "
        f"{stats.get('relationships', 0)} relationships analysed[/dim]"
    )


@click.group()
@click.option("--debug", "-d", is_flag=True, help="Enable debug logging output")
@click.version_option(version=__version__, prog_name="connex")
@click.pass_context
def main(ctx: click.Context, debug: bool) -> None:
    """Connex - who should you talk to right now, and why?

    Mines a group-chat transcript for intents, timing and relationships,
    then ranks the people worth contacting with a suggested message.

    Example: connex scan chat.json --name "Nathan"
    """
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    _configure_logging(debug)


@main.command()
@click.argument("transcript", type=INPUT_FILE)
@click.option("--profile", "profile_path", type=INPUT_FILE, help="Your profile (JSON).")
@click.option("--name", help="Your name in the chat (when no --profile is given).")
@click.option(
    "--profiles", "profiles_path", type=INPUT_FILE, help="Known candidate profiles (JSON)."
)
@click.option("--graph", "graph_path", type=INPUT_FILE, help="Known entity graph (JSON).")
@click.option("--now", type=REFERENCE_TIME, help="Reference time (default: now).")
@click.option("--city", help="Your city (overrides profile and config).")
@click.option("--max-results", type=click.IntRange(min=1), help="Maximum recommendations.")
@click.option("--min-score", type=click.IntRange(0, 100), help="Minimum score to show.")
@click.option("--workers", type=click.IntRange(min=1), help="Threads used for scoring.")
@click.option(
    "--format", "output_format", type=click.Choice(["text", "json"]), help="Output format."
)
@click.pass_context
def scan(
    ctx: click.Context,
    transcript: Path,
    profile_path: Path | None,
    name: str | None,
    profiles_path: Path | None,
    graph_path: Path | None,
    now: datetime | None,
    city: str | None,
    max_results: int | None,
    min_score: int | None,
    workers: int | None,
    output_format: str | None,
) -> None:
    """Rank the people in TRANSCRIPT you should talk to right now.

    Examples:
        connex scan chat.json --name "Nathan"
        connex scan chat.json --profile me.json --city bkk
        connex scan chat.json --profile me.json --format json
    """
    with _command_errors("scan"):
        if profile_path is None and not name:
            error_console.print("[red]Error:[/red] Provide --profile or --name.")
            raise SystemExit(EXIT_USER_ERROR)

        config = load_config()
        requester = load_profile(profile_path) if profile_path else Profile(name=name or "")
        if city:
            requester = dataclasses.replace(requester, city=city)

        options = config.scan_options()
        options = dataclasses.replace(
            options,
            reference_city=city or options.reference_city,
            max_results=max_results or options.max_results,
            min_score=min_score if min_score is not None else options.min_score,
        )

        messages, members = load_transcript(transcript)
        profiles = load_profiles(profiles_path) if profiles_path else None
        extra_graph = load_graph(graph_path) if graph_path else None

        report = who_to_talk_to(
            requester,
            messages,
            members,
            now or datetime.now(),
            options=options,
            profiles=profiles,
            extra_graph=extra_graph,
            workers=workers or config.workers,
        )

        if (output_format or config.default_format) == "json":
            console.print_json(data=dataclasses.asdict(report))
        else:
            display_report(report)

        raise SystemExit(EXIT_SUCCESS)


@main.command()
@click.argument("transcript", type=INPUT_FILE)
@click.option("--now", type=REFERENCE_TIME, help="Reference time (default: now).")
@click.option("--sender", help="Only show signals from this person.")
@click.pass_context
def signals(ctx: click.Context, transcript: Path, now: datetime | None, sender: str | None) -> None:
    """Show the intent and timing signals found in TRANSCRIPT."""
    with _command_errors("signals"):
        context = _load_context(transcript, None, now)
        intents = [i for i in context.intents if sender is None or i.sender == sender]
        timing = [t for t in context.timing_signals if sender is None or t.sender == sender]

        if not intents and not timing:
            console.print("[green]No intent or timing signals found.[/green]")
            raise SystemExit(EXIT_SUCCESS)

        if intents:
            table = Table(title="Intent signals")
            table.add_column("Sender")
            table.add_column("Type")
            table.add_column("Detail")
            table.add_column("Days ago", justify="right")
            table.add_column("Strength", justify="right")
            for intent in intents:
                table.add_row(
                    escape(intent.sender),
                    intent.type,
                    escape(intent.detail or intent.full_text[:50]),
                    str(intent.days_since),
                    f"{intent.strength:.2f}",
                )
            console.print(table)

        if timing:
            table = Table(title="Timing signals")
            table.add_column("Sender")
            table.add_column("Type")
            table.add_column("Location / detail")
            table.add_column("Days ago", justify="right")
            table.add_column("Strength", justify="right")
            for signal in timing:
                table.add_row(
                    escape(signal.sender),
                    signal.type,
                    escape(signal.location or signal.detail),
                    str(signal.days_since),
                    f"{signal.strength:.2f}",
                )
            console.print(table)

        raise SystemExit(EXIT_SUCCESS)


@main.command()
@click.argument("transcript", type=INPUT_FILE)
@click.argument("name")
@click.option("--graph", "graph_path", type=INPUT_FILE, help="Known entity graph (JSON).")
@click.pass_context
def bridges(ctx: click.Context, transcript: Path, name: str, graph_path: Path | None) -> None:
    """Find people NAME knows who want to meet each other.

    Example: connex bridges chat.json "Nathan" --graph network.json
    """
    with _command_errors("bridges"):
        graph = _load_context(transcript, graph_path).graph
        you = _resolve_node(graph, name, node_type=NODE_PERSON)
        opportunities = find_bridge_opportunities(graph, you.id)

        if not opportunities:
            console.print("[green]No bridge opportunities found.[/green]")
            raise SystemExit(EXIT_SUCCESS)

        console.print(f"Found {len(opportunities)} bridge opportunity(s)!")
        for opportunity in opportunities:
            console.print(format_bridge(opportunity))
            shared = find_shared_context(graph, opportunity.person_a, opportunity.person_b)
            for ctx_item in shared:
                console.print(
                    f"  [dim]Both connected to: {escape(ctx_item.node)} "
                    f"({ctx_item.node_type})[/dim]"
                )

        raise SystemExit(EXIT_SUCCESS)


@main.command()
@click.argument("transcript", type=INPUT_FILE)
@click.argument("source")
@click.argument("target")
@click.option("--graph", "graph_path", type=INPUT_FILE, help="Known entity graph (JSON).")
@click.option("--depth", type=click.IntRange(min=1), help="Maximum hops (default: from config).")
@click.pass_context
def path(
    ctx: click.Context,
    transcript: Path,
    source: str,
    target: str,
    graph_path: Path | None,
    depth: int | None,
) -> None:
    """Find the shortest path from SOURCE to TARGET."""
    with _command_errors("path"):
        config = load_config()
        graph = _load_context(transcript, graph_path).graph
        start = _resolve_node(graph, source)
        end = _resolve_node(graph, target)
        max_depth = depth or config.max_path_depth

        found = find_path(graph, start.id, end.id, max_depth=max_depth)
        if found is None:
            console.print(
                f"No path from {escape(start.label)} to {escape(end.label)} "
                f"within {max_depth} hops."
            )
            raise SystemExit(EXIT_SUCCESS)

        console.print(" → ".join(escape(graph.label(node_id)) for node_id in found))
        console.print(f"[dim]Distance: {len(found) - 1} hop(s)[/dim]")
        raise SystemExit(EXIT_SUCCESS)


@main.command()
@click.argument("transcript", type=INPUT_FILE)
@click.argument("person_a")
@click.argument("person_b")
@click.option("--graph", "graph_path", type=INPUT_FILE, help="Known entity graph (JSON).")
@click.pass_context
def shared(
    ctx: click.Context,
    transcript: Path,
    person_a: str,
    person_b: str,
    graph_path: Path | None,
) -> None:
    """Show what PERSON_A and PERSON_B are both connected to."""
    with _command_errors("shared"):
        graph = _load_context(transcript, graph_path).graph
        a = _resolve_node(graph, person_a)
        b = _resolve_node(graph, person_b)
        found = find_shared_context(graph, a.id, b.id)

        if not found:
            console.print("No direct shared context found.")
            raise SystemExit(EXIT_SUCCESS)

        for item in found:
            console.print(f"[bold]{escape(item.node)}[/bold] ({item.node_type})")
            console.print(f"   {escape(a.label)}: {item.your_relation}")
            console.print(f"   {escape(b.label)}: {item.their_relation}")
            if item.same_year:
                console.print("   [yellow]Same year[/yellow]")
        raise SystemExit(EXIT_SUCCESS)


@main.command(name="help-matches")
@click.argument("transcript", type=INPUT_FILE)
@click.argument("name")
@click.option("--graph", "graph_path", type=INPUT_FILE, help="Known entity graph (JSON).")
@click.pass_context
def help_matches(ctx: click.Context, transcript: Path, name: str, graph_path: Path | None) -> None:
    """Match people NAME knows who need help with those who can give it."""
    with _command_errors("help-matches"):
        graph = _load_context(transcript, graph_path).graph
        you = _resolve_node(graph, name, node_type=NODE_PERSON)
        matches = find_help_matches(graph, you.id)

        if not matches:
            console.print("[green]No help matches found.[/green]")
            raise SystemExit(EXIT_SUCCESS)

        for match in matches:
            console.print(
                f"[bold]{escape(match.needer)}[/bold] needs help with "
                f"[italic]{escape(match.topic)}[/italic] ← "
                f"[bold]{escape(match.helper)}[/bold] can help"
            )
        raise SystemExit(EXIT_SUCCESS)


@main.command(name="graph")
@click.argument("transcript", type=INPUT_FILE)
@click.argument("node", required=False)
@click.option("--graph", "graph_path", type=INPUT_FILE, help="Known entity graph (JSON).")
@click.option(
    "--depth",
    "-d",
    type=int,
    default=DEFAULT_EXPLORATION_DEPTH,
    help=(
        f"Relationship hops to display "
        f"(default: {DEFAULT_EXPLORATION_DEPTH}, max: {MAX_EXPLORATION_DEPTH})."
    ),
)
@click.pass_context
def graph_cmd(
    ctx: click.Context,
    transcript: Path,
    node: str | None,
    graph_path: Path | None,
    depth: int,
) -> None:
    """Explore the entity graph built from TRANSCRIPT.

    If NODE is provided, displays the neighborhood around that node.
    If NODE is omitted, displays the entire graph.

    Examples:
        connex graph chat.json                  # Show full graph
        connex graph chat.json "Alice" -d 1     # Immediate neighbors only
    """
    with _command_errors("graph"):
        if depth < 0:
            error_console.print("[red]Error:[/red] Depth must be non-negative.")
            raise SystemExit(EXIT_USER_ERROR)

        if depth > MAX_EXPLORATION_DEPTH:
            console.print(
                f"[yellow]Warning:[/yellow] Maximum depth is {MAX_EXPLORATION_DEPTH}. "
                f"Using --depth {MAX_EXPLORATION_DEPTH}."
            )
            depth = MAX_EXPLORATION_DEPTH

        graph = _load_context(transcript, graph_path).graph

        if node is None:
            console.print(render_ascii(graph), markup=False)
            raise SystemExit(EXIT_SUCCESS)

        focal = _resolve_node(graph, node)
        neighborhood = extract_neighborhood(graph, focal.id, depth=depth)
        console.print(render_ascii(neighborhood, focal_id=focal.id), markup=False)
        console.print()
        console.print(
            f"[dim]Showing {len(neighborhood)} nodes, "
            f"{len(neighborhood.edges)} relationships "
            f"(depth {depth} from {escape(focal.label)})[/dim]"
        )
        raise SystemExit(EXIT_SUCCESS)


@main.command(name="config")
@click.argument("key", required=False)
@click.argument("value", required=False)
@click.option("--reset", is_flag=True, help="Restore default settings.")
@click.pass_context
def config_cmd(ctx: click.Context, key: str | None, value: str | None, reset: bool) -> None:
    """Show or change settings.

    Examples:
        connex config                      # Show all settings
        connex config reference_city       # Show one setting
        connex config reference_city bkk   # Change a setting
        connex config --reset              # Restore defaults
    """
    with _command_errors("config"):
        if reset:
            reset_config()
            console.print(f"Configuration reset to defaults ({get_config_path()}).")
            raise SystemExit(EXIT_SUCCESS)

        if key is None:
            config: ConnexConfig = load_config()
            console.print(
                Panel(
                    escape(get_config_display(config)),
                    title="[bold]Connex settings[/bold]",
                    subtitle=str(get_config_path()),
                )
            )
            raise SystemExit(EXIT_SUCCESS)

        if value is None:
            console.print(get_setting_value(load_config(), key), markup=False)
            raise SystemExit(EXIT_SUCCESS)

        update_config(key, value)
        description, _ = CONFIG_KEYS[key]
        console.print(f"[green]Updated[/green] {key} = {escape(value)}  [dim]({description})[/dim]")
        raise SystemExit(EXIT_SUCCESS)


if __name__ == "__main__":
    main()
