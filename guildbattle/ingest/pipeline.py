"""Analysis pipeline orchestrator.

Wires the stages together for each kind of input:

    grid         segment -> extract -> merge (assign once) -> finalize
    sheet        fetch grid -> grid path
    texts        freeform parse per screenshot -> merge (additive) -> finalize
    screenshots  transcribe per image -> parse -> merge (additive) -> finalize

finalize ranks the players, computes statistics and generates insights.
Collaborators (sheets client, gateway, store, fallback) are optional and
injected; the core stages never touch the network or disk.
"""

import logging
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence

from ..core.insights import generate_insights
from ..core.seasons import DEFAULT_SEASON, SeasonSelector, get_season
from ..core.stats import compute_stats, rank_players
from ..llm.gateway import ScreenshotImage, TranscriptionGateway, load_schema
from ..llm.prompt_registry import PromptRegistry
from .extract import extract_grid
from .freeform import DEFAULT_TEXT_BOSSES, match_freeform_text
from .merge import merge_encounters, merge_player_sets
from .models import AnalysisResult, CanonicalPlayer, MergeMode, SheetLayout
from .segment import DEFAULT_LAYOUT, Row
from .transcript import parse_transcribed_csv, parse_transcribed_rows
from .utils import load_roster

logger = logging.getLogger(__name__)

CSV_PROMPT = "transcribe_csv"
ROWS_PROMPT = "transcribe_rows"

# Called with the screenshot index when that screenshot yields no players.
FallbackProvider = Callable[[int], Optional[list[CanonicalPlayer]]]


def roster_fallback(path: str | Path) -> FallbackProvider:
    """Fallback provider serving one roster batch per screenshot index."""
    batches = load_roster(Path(path))

    def provide(index: int) -> Optional[list[CanonicalPlayer]]:
        if index < len(batches):
            return batches[index]
        return None

    return provide


class AnalysisPipeline:
    """Runs one analysis for one season."""

    def __init__(
        self,
        season: SeasonSelector = DEFAULT_SEASON,
        layout: SheetLayout = DEFAULT_LAYOUT,
        gateway: Optional[TranscriptionGateway] = None,
        prompt_registry: Optional[PromptRegistry] = None,
        sheets_client=None,
        store=None,
        fallback_provider: Optional[FallbackProvider] = None,
    ):
        """
        Args:
            season: Season selector for ticket accounting.
            layout: Column conventions of the spreadsheet grid.
            gateway: Transcription gateway for screenshot input.
            prompt_registry: Source of transcription prompts.
            sheets_client: Object with fetch_grid(spreadsheet_id, cell_range).
            store: AnalysisStore used by save().
            fallback_provider: Substitute players for unreadable screenshots.
        """
        self.season = get_season(season)
        self.layout = layout
        self.gateway = gateway
        self.registry = prompt_registry or PromptRegistry()
        self.sheets = sheets_client
        self.store = store
        self.fallback = fallback_provider

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def analyze_grid(self, grid: Sequence[Row], source: str = "grid") -> AnalysisResult:
        """Analyze an origin-addressed spreadsheet grid."""
        encounters = extract_grid(grid, self.layout)
        players = merge_encounters(encounters, MergeMode.ASSIGN_ONCE)
        return self.finalize(players, source)

    def analyze_sheet(self, spreadsheet_id: str, cell_range: Optional[str] = None) -> AnalysisResult:
        """Fetch a spreadsheet range and analyze it.

        Raises:
            SheetFetchError: When the sheet cannot be fetched.
        """
        if self.sheets is None:
            raise ValueError("No sheets client configured")
        grid = self.sheets.fetch_grid(spreadsheet_id, cell_range)
        return self.analyze_grid(grid, source="sheet")

    def analyze_texts(self, texts: Iterable[str]) -> AnalysisResult:
        """Analyze OCR text, one text per screenshot."""
        batches, fallback_used = [], False
        for index, text in enumerate(texts):
            match = match_freeform_text(text, DEFAULT_TEXT_BOSSES)
            players = match.players if match.confident else []
            players, used = self._fallback(index, players)
            batches.append(players)
            fallback_used |= used
        return self.finalize(merge_player_sets(*batches), "text", fallback_used)

    def analyze_transcripts(self, transcripts: Iterable[str]) -> AnalysisResult:
        """Analyze CSV transcriptions that were produced earlier."""
        batches, fallback_used = [], False
        for index, text in enumerate(transcripts):
            players = merge_encounters(parse_transcribed_csv(text), MergeMode.ASSIGN_ONCE)
            players, used = self._fallback(index, players)
            batches.append(players)
            fallback_used |= used
        return self.finalize(merge_player_sets(*batches), "transcript", fallback_used)

    def analyze_screenshots(
        self,
        images: Iterable[ScreenshotImage | str | Path],
        structured: bool = False,
    ) -> AnalysisResult:
        """Transcribe and analyze screenshots.

        Args:
            images: Screenshots, one reporting window each.
            structured: Ask for schema-validated JSON rows instead of CSV.

        Raises:
            TranscriptionError: When the gateway gives up on an image.
        """
        if self.gateway is None:
            raise ValueError("No transcription gateway configured")

        batches, fallback_used = [], False
        for index, image in enumerate(images):
            if not isinstance(image, ScreenshotImage):
                image = ScreenshotImage.from_path(image)
            players = self._transcribe(image, structured)
            logger.info("Screenshot %d (%s): %d players", index + 1, image.name or "<bytes>", len(players))
            players, used = self._fallback(index, players)
            batches.append(players)
            fallback_used |= used
        return self.finalize(merge_player_sets(*batches), "screenshot", fallback_used)

    def finalize(
        self,
        players: Sequence[CanonicalPlayer],
        source: str = "",
        fallback_used: bool = False,
    ) -> AnalysisResult:
        """Rank, compute statistics and generate insights."""
        ranked = rank_players(players)
        stats = compute_stats(ranked, self.season)
        insights = generate_insights(ranked, stats, self.season)
        return AnalysisResult(
            players=ranked,
            stats=stats,
            insights=insights,
            source=source,
            fallback_used=fallback_used,
        )

    def save(self, result: AnalysisResult, season_name: str, guild_name: str) -> Optional[int]:
        """Store the result when a store is configured."""
        if self.store is None:
            return None
        return self.store.save(season_name, guild_name, result.players, result.stats, result.insights)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _transcribe(self, image: ScreenshotImage, structured: bool) -> list[CanonicalPlayer]:
        if structured:
            prompt = self.registry.get_prompt(ROWS_PROMPT)
            schema = load_schema(prompt.schema_name)
            response = self.gateway.transcribe_structured(image, prompt.body, schema)
            encounters = parse_transcribed_rows(response.content.get("rows", []))
        else:
            prompt = self.registry.get_prompt(CSV_PROMPT)
            response = self.gateway.transcribe(image, prompt.body)
            encounters = parse_transcribed_csv(response.text)
        return merge_encounters(encounters, MergeMode.ASSIGN_ONCE)

    def _fallback(self, index: int, players: list[CanonicalPlayer]) -> tuple[list[CanonicalPlayer], bool]:
        """Return (players, used), substituting fallback players when none were read."""
        if players or self.fallback is None:
            return players, False
        substitute = self.fallback(index)
        if not substitute:
            return [], False
        players = substitute
        logger.warning(
            "Screenshot %d could not be read; substituting %d fallback players",
            index + 1, len(players),
        )
        return players, True
