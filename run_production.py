"""
Run a complete production: script, narrated audio and per-section images.

Usage:
    python3 run_production.py "<topic>" [output_dir]

Example:
    python3 run_production.py "The history of the printing press" printing-press
"""

import asyncio
import logging
import sys
from datetime import datetime

from scriptcast.exceptions import GenerationError
from scriptcast.models.events import ProgressEvent
from scriptcast.services import GenerationOrchestrator

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def print_event(event: ProgressEvent) -> None:
    """Print section, chunk and error events as they arrive."""
    if event.type == "section":
        print(f"   📝 Section {event.section_number} ({len(event.content):,} chars)")
    elif event.type == "audio_chunk":
        print(f"   🎙️  Audio chunk {event.chunk_index}/{event.total_chunks}")
    elif event.type == "image_chunk" and event.current:
        print(f"   🖼️  Images {event.current}/{event.total}")
    elif event.type == "error":
        print(f"   ❌ [{event.channel.value}] {event.message}")


async def run_production(topic: str, output_dir: str) -> None:
    """Generate the script, then audio and images concurrently."""
    print("=" * 80)
    print("PRODUCTION")
    print("=" * 80)
    print(f"\n📋 Topic: {topic}")
    print(f"📁 Output: {output_dir}")
    print(f"⏰ Started at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")

    orchestrator = GenerationOrchestrator()
    result = await orchestrator.produce(topic, output_dir=output_dir, listener=print_event)

    print("\n" + "=" * 80)
    print("✅ PRODUCTION COMPLETE" if not result.errors else "⚠️  PRODUCTION COMPLETE WITH ERRORS")
    print("=" * 80)
    print(f"\n📝 Script: {result.script.script_path} ({len(result.script.sections)} sections)")
    if result.audio:
        print(f"🎧 Audio: {result.audio.output_path}")
    image_count = sum(len(batch.images) for batch in result.images.values())
    print(f"🖼️  Images: {image_count} across {len(result.images)} sections")
    for error in result.errors:
        print(f"   - {error}")


def main():
    """Main entry point."""
    if len(sys.argv) < 2:
        print("Usage: python3 run_production.py \"<topic>\" [output_dir]")
        sys.exit(2)

    topic = sys.argv[1]
    output_dir = sys.argv[2] if len(sys.argv) > 2 else "production"

    try:
        asyncio.run(run_production(topic, output_dir))
        sys.exit(0)
    except GenerationError as e:
        print(f"\n❌ Failed: {e.message}")
        sys.exit(1)


if __name__ == "__main__":
    main()
