"""
Guild Battle Analyzer CLI.

Commands:
  login               Set up the Anthropic API key
  logout              Remove the stored API key
  init-db             Initialize the SQLite schema
  seasons             Show the season table

Analysis Commands:
  analyze-sheet       Analyze a published Google Sheet range
  analyze-file        Analyze a local .csv/.xlsx leaderboard grid
  analyze-text        Analyze OCR text files (one per screenshot)
  analyze-screenshot  Transcribe and analyze leaderboard screenshots
  show-latest         Show the stored analysis for a season and guild
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from guildbattle.config import (
    clear_api_key, get_api_key, get_config_path, get_db_path, get_setting,
    interactive_login, load_seasons,
)
from guildbattle.core.seasons import get_season
from guildbattle.core.stats import performance_grade
from guildbattle.db.store import AnalysisStore
from guildbattle.export import export_players_xlsx
from guildbattle.ingest.damage import format_damage
from guildbattle.ingest.models import AnalysisResult, SheetLayout
from guildbattle.ingest.pipeline import AnalysisPipeline, roster_fallback
from guildbattle.llm.gateway import ClaudeGateway, TranscriptionError
from guildbattle.sources.sheets import SheetFetchError, SheetsClient, load_grid_file

logger = logging.getLogger(__name__)


def init_db(args):
    """Initialize the database schema."""
    store = AnalysisStore(args.db)
    store.ensure_schema()
    print(f"Initialized database at {args.db}")


def login_cmd(args):
    """Interactive login to set up API key."""
    success = interactive_login()
    sys.exit(0 if success else 1)


def logout_cmd(args):
    """Remove stored API key."""
    clear_api_key()
    print(f"Logged out. API key removed from {get_config_path()}")


def seasons_cmd(args):
    """Print the season table."""
    table = load_seasons()
    if args.json:
        print(json.dumps([table[k].to_dict() for k in sorted(table)], indent=2))
        return
    for key in sorted(table):
        config = table[key]
        bosses = " + ".join(b.label for b in config.active_bosses)
        print(f"Season {key}: {bosses}")
        print(f"  tickets: max {config.max_tickets}, min {config.min_tickets} "
              f"({config.tickets_per_boss} per boss)")
        for boss, requirement in config.damage_requirements.items():
            print(f"  {boss.label} requirement: {format_damage(requirement)}")


def analyze_sheet_cmd(args):
    """Analyze a Google Sheet range."""
    spreadsheet_id = args.spreadsheet_id or get_setting("spreadsheet_id")
    if not spreadsheet_id:
        print("Error: No spreadsheet ID given (use --spreadsheet-id or GUILDBATTLE_SPREADSHEET_ID)",
              file=sys.stderr)
        sys.exit(1)

    pipeline = _build_pipeline(args, sheets_client=SheetsClient())
    result = pipeline.analyze_sheet(spreadsheet_id, args.range or get_setting("range"))
    _finish(args, pipeline, result)


def analyze_file_cmd(args):
    """Analyze a local spreadsheet export."""
    grid = load_grid_file(args.path, sheet=args.sheet)
    pipeline = _build_pipeline(args)
    result = pipeline.analyze_grid(grid, source=Path(args.path).name)
    _finish(args, pipeline, result)


def analyze_text_cmd(args):
    """Analyze OCR or CSV transcription text files."""
    texts = [Path(p).read_text(encoding="utf-8") for p in args.paths]
    pipeline = _build_pipeline(args)
    if args.csv:
        result = pipeline.analyze_transcripts(texts)
    else:
        result = pipeline.analyze_texts(texts)
    _finish(args, pipeline, result)


def analyze_screenshot_cmd(args):
    """Transcribe screenshots with Claude and analyze them."""
    api_key = get_api_key()
    if not api_key:
        print("Error: No API key found. Run 'login' or set ANTHROPIC_API_KEY.", file=sys.stderr)
        sys.exit(1)

    gateway = ClaudeGateway(api_key=api_key, model=get_setting("model"))
    pipeline = _build_pipeline(args, gateway=gateway)
    result = pipeline.analyze_screenshots(args.paths, structured=args.structured)
    _finish(args, pipeline, result)


def show_latest_cmd(args):
    """Show the stored analysis for a season and guild."""
    store = AnalysisStore(args.db)
    store.ensure_schema()
    stored = store.load_latest(args.season_name, args.guild)
    if stored is None:
        print(f"No stored analysis for {args.season_name} / {args.guild}.")
        sys.exit(1)

    if args.json:
        print(json.dumps({
            "seasonName": stored["season_name"],
            "guildName": stored["guild_name"],
            "updatedAt": stored["updated_at"],
            "players": [p.to_dict() for p in stored["players"]],
            "stats": stored["stats"],
            "insights": stored["insights"],
        }, indent=2))
        return

    print(f"{stored['season_name']} / {stored['guild_name']} (saved {stored['updated_at']})")
    _print_players(stored["players"])
    _print_insights(stored["insights"])


# =============================================================================
# Helpers
# =============================================================================

def _build_pipeline(args, **collaborators) -> AnalysisPipeline:
    season = get_season(args.season or get_setting("season"), load_seasons())
    layout = SheetLayout(damage_scale=1) if getattr(args, "raw_damage", False) else SheetLayout()

    fallback = None
    if getattr(args, "fallback", None):
        fallback = roster_fallback(args.fallback)

    store = None
    if args.save:
        store = AnalysisStore(args.db)
        store.ensure_schema()

    return AnalysisPipeline(
        season=season,
        layout=layout,
        store=store,
        fallback_provider=fallback,
        **collaborators,
    )


def _finish(args, pipeline: AnalysisPipeline, result: AnalysisResult) -> None:
    if args.export:
        path = export_players_xlsx(result.players, args.export)
        print(f"Exported {len(result.players)} players to {path}", file=sys.stderr)

    if args.save:
        analysis_id = pipeline.save(result, args.season_name, args.guild)
        print(f"Saved analysis {analysis_id} for {args.season_name} / {args.guild}", file=sys.stderr)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
        return

    stats = result.stats
    print(f"\n{'='*60}")
    print(f"Season {stats.season} - {stats.total_players} players ({result.source})")
    if result.fallback_used:
        print("Note: fallback data was substituted for unreadable screenshots")
    print(f"{'='*60}")
    _print_players(result.players)
    print(f"\nGuild score: {format_damage(stats.guild_score)}")
    print(f"Highest damage: {format_damage(stats.highest_damage)}")
    print(f"Average damage: {format_damage(stats.average_damage)}")
    print(f"Total battles: {stats.total_battles_done}")
    _print_insights(result.insights)


def _print_players(players) -> None:
    top = max((p.total_damage for p in players), default=0)
    print(f"\n{'Rank':>4}  {'Player':<20} {'Damage':>10} {'Battles':>8} {'Grade':>5}")
    print(f"{'-'*4}  {'-'*20} {'-'*10} {'-'*8} {'-'*5}")
    for player in players:
        grade = performance_grade(player.total_damage, top)
        print(f"{player.rank:>4}  {player.player_name:<20} "
              f"{format_damage(player.total_damage):>10} {player.total_battles:>8} {grade:>5}")


def _print_insights(insights) -> None:
    if not insights:
        return
    print("\nInsights:")
    for line in insights:
        print(f"  - {line}")


def _add_analysis_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--season", help="Season selector 1-4 (default: setting or 1)")
    parser.add_argument("--json", action="store_true", help="Output the full result as JSON")
    parser.add_argument("--export", metavar="PATH.xlsx", help="Export players to an Excel file")
    parser.add_argument("--save", action="store_true", help="Store the result in the database")
    parser.add_argument("--season-name", default="Current Season", help="Season name used with --save")
    parser.add_argument("--guild", default="Guild", help="Guild name used with --save")


def build_parser():
    parser = argparse.ArgumentParser(
        description="Guild Battle Analyzer - leaderboard parsing, statistics and insights"
    )
    parser.add_argument(
        "--db",
        default=str(get_db_path()),
        help="SQLite database path (default: config directory)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command")

    # login / logout
    login_parser = sub.add_parser("login", help="Set up API key")
    login_parser.set_defaults(func=login_cmd)

    logout_parser = sub.add_parser("logout", help="Remove stored API key")
    logout_parser.set_defaults(func=logout_cmd)

    # init-db
    init_db_parser = sub.add_parser("init-db", help="Initialize the SQLite schema")
    init_db_parser.set_defaults(func=init_db)

    # seasons
    seasons_parser = sub.add_parser("seasons", help="Show the season table")
    seasons_parser.add_argument("--json", action="store_true", help="Output as JSON")
    seasons_parser.set_defaults(func=seasons_cmd)

    # analyze-sheet
    sheet_parser = sub.add_parser("analyze-sheet", help="Analyze a Google Sheet range")
    sheet_parser.add_argument("--spreadsheet-id", help="Spreadsheet ID (default: setting)")
    sheet_parser.add_argument("--range", help="Range such as 'Sheet1!A1:AD60' (default: setting)")
    sheet_parser.add_argument("--raw-damage", action="store_true",
                              help="Damage cells hold raw points instead of billions")
    _add_analysis_options(sheet_parser)
    sheet_parser.set_defaults(func=analyze_sheet_cmd)

    # analyze-file
    file_parser = sub.add_parser("analyze-file", help="Analyze a local .csv/.xlsx grid")
    file_parser.add_argument("path", help="Grid file")
    file_parser.add_argument("--sheet", help="Worksheet name for .xlsx files")
    file_parser.add_argument("--raw-damage", action="store_true",
                             help="Damage cells hold raw points instead of billions")
    _add_analysis_options(file_parser)
    file_parser.set_defaults(func=analyze_file_cmd)

    # analyze-text
    text_parser = sub.add_parser("analyze-text", help="Analyze OCR text files, one per screenshot")
    text_parser.add_argument("paths", nargs="+", help="Text files")
    text_parser.add_argument("--csv", action="store_true", help="Files hold CSV transcriptions")
    text_parser.add_argument("--fallback", metavar="ROSTER.yaml", help="Fallback roster for unreadable screenshots")
    _add_analysis_options(text_parser)
    text_parser.set_defaults(func=analyze_text_cmd)

    # analyze-screenshot
    shot_parser = sub.add_parser("analyze-screenshot", help="Transcribe and analyze screenshots")
    shot_parser.add_argument("paths", nargs="+", help="Screenshot images")
    shot_parser.add_argument("--structured", action="store_true", help="Request JSON rows instead of CSV")
    shot_parser.add_argument("--fallback", metavar="ROSTER.yaml", help="Fallback roster for unreadable screenshots")
    _add_analysis_options(shot_parser)
    shot_parser.set_defaults(func=analyze_screenshot_cmd)

    # show-latest
    latest_parser = sub.add_parser("show-latest", help="Show the stored analysis")
    latest_parser.add_argument("--season-name", default="Current Season", help="Season name")
    latest_parser.add_argument("--guild", default="Guild", help="Guild name")
    latest_parser.add_argument("--json", action="store_true", help="Output as JSON")
    latest_parser.set_defaults(func=show_latest_cmd)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return

    try:
        args.func(args)
    except (SheetFetchError, TranscriptionError, ValueError, FileNotFoundError) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
