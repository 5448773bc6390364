"""Deck Player MCP Server - MCP tools for driving interactive slide playback."""

from mcp.server.fastmcp import FastMCP, Context
import json
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Any, Optional
from pathlib import Path

# Player imports
from deckplayer.config import PlayerSettings
from deckplayer.core.errors import DeckError
from deckplayer.core.slides import Deck
from deckplayer.narration.narrator import LoggingNarrator
from deckplayer.playback import AsyncioScheduler, PlaybackEngine, load_deck

# Configure logging
logging.basicConfig(level=logging.INFO,
                    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger("DeckPlayerMCP")


# ── Global State ────────────────────────────────────────────────────────

_settings: Optional[PlayerSettings] = None
_engine: Optional[PlaybackEngine] = None


def get_settings() -> PlayerSettings:
    global _settings
    if _settings is None:
        _settings = PlayerSettings.from_env()
        logging.getLogger("DeckPlayer").setLevel(_settings.log_level.upper())
    return _settings


def _require_engine() -> PlaybackEngine:
    if _engine is None:
        raise RuntimeError("No deck loaded. Use load_deck first.")
    return _engine


def _state_json(engine: PlaybackEngine) -> str:
    summary = engine.state.to_summary()
    summary["slide_count"] = len(engine.deck)
    summary["current_title"] = engine.current_slide().title
    return json.dumps(summary, indent=2, default=str)


def _close_engine() -> None:
    global _engine
    if _engine is not None:
        _engine.close()
        _engine = None


# ── Server Setup ────────────────────────────────────────────────────────

@asynccontextmanager
async def server_lifespan(server: FastMCP) -> AsyncIterator[Dict[str, Any]]:
    try:
        logger.info("DeckPlayerMCP server starting up")
        settings = get_settings()
        if not settings.tts_url:
            logger.info("No TTS endpoint configured - narration goes to the log")
        yield {}
    finally:
        _close_engine()
        logger.info("DeckPlayerMCP server shut down")


mcp = FastMCP("DeckPlayerMCP", lifespan=server_lifespan)


# ═══════════════════════════════════════════════════════════════════════
# DECK TOOLS
# ═══════════════════════════════════════════════════════════════════════

@mcp.tool(name="load_deck")
async def open_deck(ctx: Context, file_path: str = "", deck_json: str = "") -> str:
    """Load a deck and prepare it for playback. Replaces any deck already loaded.

    Parameters:
    - file_path: Path to a deck JSON file ({"slides": [...]})
    - deck_json: Inline deck JSON, used when file_path is empty
    """
    global _engine
    if not file_path and not deck_json:
        return "Error: Provide either file_path or deck_json"

    try:
        deck = Deck.load(Path(file_path)) if file_path else Deck.from_json(deck_json)
    except (DeckError, FileNotFoundError, ValueError) as e:
        return f"Error loading deck: {str(e)}"

    _close_engine()
    _engine = load_deck(
        deck,
        scheduler=AsyncioScheduler(),
        narrator=LoggingNarrator(),
        settings=get_settings(),
    )
    logger.info(f"Loaded deck with {len(deck)} slides")

    return json.dumps({
        "status": "loaded",
        "slide_count": len(deck),
        "slides": deck.to_summary(),
    }, indent=2)


@mcp.tool()
async def get_deck_summary(ctx: Context) -> str:
    """List the slides of the loaded deck with durations and branch targets."""
    if _engine is None:
        return "Error: No deck loaded. Use load_deck first."
    return json.dumps(_engine.deck.to_summary(), indent=2)


@mcp.tool()
async def close_presentation(ctx: Context) -> str:
    """Stop playback and unload the current deck."""
    if _engine is None:
        return "No deck loaded."
    _close_engine()
    return "Presentation closed."


# ═══════════════════════════════════════════════════════════════════════
# PLAYBACK TOOLS
# ═══════════════════════════════════════════════════════════════════════

@mcp.tool()
async def start_presentation(ctx: Context) -> str:
    """Show the first slide without starting autoplay."""
    try:
        engine = _require_engine()
    except RuntimeError as e:
        return f"Error: {str(e)}"
    engine.start()
    return _state_json(engine)


@mcp.tool()
async def play(ctx: Context) -> str:
    """Start or resume autoplay. Slides with duration 0 wait for manual navigation."""
    try:
        engine = _require_engine()
    except RuntimeError as e:
        return f"Error: {str(e)}"
    engine.play()
    return _state_json(engine)


@mcp.tool()
async def pause(ctx: Context) -> str:
    """Pause autoplay, keeping the current slide's progress."""
    try:
        engine = _require_engine()
    except RuntimeError as e:
        return f"Error: {str(e)}"
    engine.pause()
    return _state_json(engine)


@mcp.tool()
async def next_slide(ctx: Context) -> str:
    """Go to the next slide (linear order, or a static branch if the slide has one)."""
    try:
        engine = _require_engine()
        engine.next()
    except (RuntimeError, DeckError) as e:
        return f"Error: {str(e)}"
    return _state_json(engine)


@mcp.tool()
async def previous_slide(ctx: Context) -> str:
    """Go to the previous slide in deck order (wraps to the last slide)."""
    try:
        engine = _require_engine()
        engine.previous()
    except (RuntimeError, DeckError) as e:
        return f"Error: {str(e)}"
    return _state_json(engine)


@mcp.tool()
async def go_to_slide(ctx: Context, index: int = -1, slide_id: str = "") -> str:
    """Jump to a slide by position or by id.

    Parameters:
    - index: Zero-based slide position (wraps around the deck)
    - slide_id: Slide id, used when given instead of index
    """
    try:
        engine = _require_engine()
        if slide_id:
            engine.go_to_slide(slide_id)
        elif index >= 0:
            engine.go_to(index)
        else:
            return "Error: Provide index or slide_id"
    except (RuntimeError, DeckError) as e:
        return f"Error: {str(e)}"
    return _state_json(engine)


@mcp.tool()
async def answer(ctx: Context, value: str) -> str:
    """Submit an answer on the current slide and follow its branch rules.

    Parameters:
    - value: The answer; JSON values (numbers, objects) are decoded, anything else is sent as text
    """
    try:
        parsed: Any = json.loads(value)
    except json.JSONDecodeError:
        parsed = value

    try:
        engine = _require_engine()
        engine.answer(parsed)
    except (RuntimeError, DeckError) as e:
        return f"Error: {str(e)}"
    return _state_json(engine)


@mcp.tool()
async def get_playback_state(ctx: Context) -> str:
    """Get the current slide, phase, progress, and recorded answers."""
    if _engine is None:
        return json.dumps({"deck_loaded": False, "message": "No deck loaded. Use load_deck."}, indent=2)
    return _state_json(_engine)


# ═══════════════════════════════════════════════════════════════════════
# PROMPTS
# ═══════════════════════════════════════════════════════════════════════

@mcp.prompt()
def playback_workflow() -> str:
    """Step-by-step guide for running an interactive deck"""
    return """Deck Player Workflow:

1. **Load**: Use load_deck() with a deck file or inline JSON.
   - Each slide needs a unique id and a duration in milliseconds
   - duration 0 means the slide waits for manual navigation or an answer
   - branches: [{"target_id": "...", "op": "equals", "value": "yes"}]

2. **Run**: Use play() for autoplay, or start_presentation() for manual mode.
   - next_slide() / previous_slide() / go_to_slide() navigate at any time
   - Navigation keeps autoplay on if it was on

3. **Quiz slides**: Use answer() to submit a response.
   - The first matching branch wins; no match falls through to the next slide

4. **Inspect**: Use get_playback_state() for slide, progress, and answers.

Tips:
- Check last_error in the state after a failed navigation
- Use pause() / play() to hold a slide without losing its progress
"""


# ── Main ────────────────────────────────────────────────────────────────

def main():
    """Run the MCP server"""
    mcp.run()


if __name__ == "__main__":
    main()
