"""CLI entry point for session-inspect."""

import asyncio
import json
import logging
import sys
from pathlib import Path

import click

from .budget import BudgetConfig, BudgetConfigError, ContextBudgetSimulator, SPEEDS


BUDGET_KEYS = ('contextWindow', 'reserveTokens', 'keepRecentTokens', 'softThresholdTokens')


def _echo_warnings(warnings):
    for warning in warnings:
        location = f"line {warning.line_number}: " if warning.line_number else ""
        click.echo(f"Warning: {location}{warning.reason}", err=True)


def _load_view(session, sessions_dir):
    """Load a session given either a path to a JSONL file or a session id."""
    from .config import get_sessions_dir
    from .sessions import build_session_view, load_session_view

    candidate = Path(session)
    try:
        if candidate.suffix == '.jsonl' and candidate.is_file():
            view = build_session_view(candidate.stem, str(candidate), candidate.read_text(encoding='utf-8'))
        else:
            view = load_session_view(get_sessions_dir(sessions_dir), session)
    except (FileNotFoundError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    _echo_warnings(view.warnings)
    return view


@click.group()
@click.version_option(package_name="session-inspect")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def main(verbose):
    """Session Inspect - agent session log timeline, stats and context budget simulation."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.option("--sessions-dir", default=None, help="Path to session logs directory")
def sessions(sessions_dir):
    """List session logs, most recent first."""
    from .config import get_sessions_dir
    from .report import format_sessions_list
    from .sessions import list_sessions

    sessions_path = get_sessions_dir(sessions_dir)

    if not sessions_path.exists():
        click.echo(f"Error: Sessions directory not found: {sessions_path}", err=True)
        sys.exit(1)

    click.echo(f"Sessions dir: {sessions_path}")
    click.echo(format_sessions_list(list_sessions(sessions_path)))


@main.command()
@click.argument("session")
@click.option("--sessions-dir", default=None, help="Path to session logs directory")
@click.option("--format", "output_format", default="text", type=click.Choice(['text', 'json']), help="Output format")
def stats(session, sessions_dir, output_format):
    """Show token and tool usage for SESSION (id or .jsonl path)."""
    from .report import format_stats_report
    from .toolgroups import group_tools

    view = _load_view(session, sessions_dir)

    if output_format == 'json':
        s = view.stats
        data = {
            'totalMessages': s.total_messages,
            'totalTokens': s.total_tokens,
            'inputTokens': s.input_tokens,
            'outputTokens': s.output_tokens,
            'toolCalls': s.tool_calls,
            'duration': s.duration,
            'toolUsage': s.tool_usage,
            'toolGroups': {g.name: g.tools for g in group_tools(s.tool_usage)},
        }
        click.echo(json.dumps(data, indent=2))
        return

    click.echo(format_stats_report(view.stats, title=view.name))
    if view.config is not None:
        click.echo("")
        click.echo(f"Model: {view.config.provider or '?'}/{view.config.model or '?'}")
        if view.config.context_tokens:
            click.echo(f"Context tokens: {view.config.context_tokens:,}")


@main.command()
@click.argument("session")
@click.option("--sessions-dir", default=None, help="Path to session logs directory")
@click.option("--format", "output_format", default="text", type=click.Choice(['text', 'json']), help="Output format")
@click.option("--check-links", is_flag=True, help="Warn about tool results whose call is missing")
def timeline(session, sessions_dir, output_format, check_links):
    """Print the normalized timeline of SESSION (id or .jsonl path)."""
    from .report import format_timeline, timeline_to_json
    from .timeline import find_dangling_parents

    view = _load_view(session, sessions_dir)

    if check_links:
        _echo_warnings(find_dangling_parents(view.timeline))

    if output_format == 'json':
        click.echo(json.dumps(timeline_to_json(view.timeline), indent=2, default=str))
    else:
        click.echo(format_timeline(view.timeline))


@main.command()
@click.argument("session")
@click.argument("query")
@click.option("--sessions-dir", default=None, help="Path to session logs directory")
@click.option("--next", "next_steps", default=0, type=click.IntRange(min=0), help="Move focus forward N matches")
@click.option("--previous", "previous_steps", default=0, type=click.IntRange(min=0), help="Move focus back N matches")
def search(session, query, sessions_dir, next_steps, previous_steps):
    """Find QUERY in the timeline of SESSION; the focused match is marked with '>'."""
    from .report import format_matches
    from .search import MatchIndex

    view = _load_view(session, sessions_dir)
    index = MatchIndex(view.timeline, query)

    for _ in range(next_steps):
        index.next()
    for _ in range(previous_steps):
        index.previous()

    click.echo(format_matches(view.timeline, index))


@main.command()
@click.option("--session", default=None, help="Replay a session (id or .jsonl path) instead of synthetic messages")
@click.option("--sessions-dir", default=None, help="Path to session logs directory")
@click.option("--speed", default="1", type=click.Choice([str(s) for s in SPEEDS]), help="Pacing multiplier")
@click.option("--delay", default=0.5, type=click.FloatRange(min=0), help="Seconds between messages at 1x")
@click.option("--max-messages", default=None, type=click.IntRange(min=1), help="Stop after N messages")
@click.option("--seed", default=None, type=int, help="Random seed for synthetic messages")
@click.option("--quiet", is_flag=True, help="Only show flush, compaction and info events")
def simulate(session, sessions_dir, speed, delay, max_messages, seed, quiet):
    """Replay messages through the memory flush / compaction policy."""
    from .budget import messages_from_timeline, synthetic_messages
    from .config import get_budget_config
    from .report import format_budget_summary, format_event

    try:
        budget = get_budget_config()
    except BudgetConfigError as e:
        click.echo(f"Error: invalid budget config: {e}", err=True)
        sys.exit(1)

    if session:
        view = _load_view(session, sessions_dir)
        messages = messages_from_timeline(view.timeline)
        click.echo(f"Loaded session: {view.path}")
    else:
        messages = synthetic_messages(seed)
        if max_messages is None:
            # Synthetic input never ends on its own
            max_messages = 300

    simulator = ContextBudgetSimulator(
        budget,
        step_delay=delay,
        phase_delay=delay * 2,
        speed=int(speed),
    )

    async def drive():
        async for event in simulator.stream(messages, max_messages=max_messages):
            if quiet and event.kind == 'message':
                continue
            click.echo(format_event(event))

    try:
        asyncio.run(drive())
    except KeyboardInterrupt:
        click.echo("Interrupted.", err=True)

    click.echo("")
    click.echo(format_budget_summary(simulator.state, simulator.config))


@main.command()
@click.option("--set", "assignments", multiple=True, metavar="KEY=VALUE",
              help=f"Persist a setting ({', '.join(BUDGET_KEYS)}, sessions_dir)")
def config(assignments):
    """Show or update the effective configuration."""
    from .config import get_budget_config, get_config_file_path, get_sessions_dir, load_config, save_config
    from .report import format_budget_config

    if assignments:
        budget_updates = {}
        sessions_dir = None
        for assignment in assignments:
            key, sep, value = assignment.partition('=')
            if not sep:
                raise click.BadParameter(f"Expected KEY=VALUE, got {assignment!r}", param_hint="--set")
            if key == 'sessions_dir':
                sessions_dir = Path(value)
            elif key in BUDGET_KEYS:
                try:
                    budget_updates[key] = int(value)
                except ValueError:
                    raise click.BadParameter(f"{key} must be an integer", param_hint="--set")
            else:
                raise click.BadParameter(f"Unknown key: {key}", param_hint="--set")

        merged = dict(load_config().get('budget') or {})
        merged.update(budget_updates)
        try:
            BudgetConfig.from_dict(merged).validate()
        except BudgetConfigError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)

        save_config(sessions_dir=sessions_dir, budget=budget_updates)
        click.echo(f"Saved: {get_config_file_path()}")

    try:
        budget = get_budget_config()
    except BudgetConfigError as e:
        click.echo(f"Error: invalid budget config: {e}", err=True)
        sys.exit(1)

    click.echo(f"Config file: {get_config_file_path()}")
    click.echo(f"Sessions dir: {get_sessions_dir()}")
    click.echo(format_budget_config(budget))


if __name__ == "__main__":
    main()
